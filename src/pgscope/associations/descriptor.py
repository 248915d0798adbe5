from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Self, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import InstrumentedAttribute, RelationshipDirection, RelationshipProperty

from pgscope.errors import ConfigurationError
from pgscope.sql_fragment import SqlFragment


class AssociationKind(str, Enum):
    BELONGS_TO              = "belongs_to"
    HAS_MANY                = "has_many"
    HAS_AND_BELONGS_TO_MANY = "has_and_belongs_to_many"


class AssociationDescriptor(BaseModel):
    """Everything needed to write the SQL for one association, independent of how it was declared.

    Key naming follows Rails:

    - `has_and_belongs_to_many`: `foreign_key` and `association_foreign_key` are the join table
      columns pointing at the owner and at the target; `primary_key` and `association_primary_key`
      are the owner's and the target's primary keys.
    - `has_many`: `foreign_key` is the target column pointing at the owner's `primary_key`.
    - `belongs_to`: `foreign_key` is the owner column pointing at the target's `association_primary_key`.

    `conditions` is raw SQL, either a string or a `(sql, *params)` tuple with `?` placeholders.
    `order` is raw SQL or a tuple of SQLAlchemy order expressions.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name                    : str                   = Field(...,          description="Association name on the owner")
    kind                    : AssociationKind       = Field(...,          description="Association macro")
    owner                   : Optional[Type[Any]]   = Field(default=None, description="Model class declaring the association")
    target                  : Optional[Type[Any]]   = Field(default=None, description="Associated model class")
    join_table              : Optional[str]         = Field(default=None, description="Join table name, habtm only")
    foreign_key             : Optional[str]         = Field(default=None, description="See class docstring")
    association_foreign_key : Optional[str]         = Field(default=None, description="Join table column pointing at the target, habtm only")
    primary_key             : Optional[str]         = Field(default=None, description="Owner primary key column")
    association_primary_key : Optional[str]         = Field(default=None, description="Target primary key column")
    conditions              : Any                   = Field(default=None, description="Extra raw SQL condition")
    order                   : Any                   = Field(default=None, description="Declared ordering")

    @property
    def is_collection(self) -> bool:
        return self.kind is not AssociationKind.BELONGS_TO

    @property
    def conditions_fragment(self) -> SqlFragment | None:
        if self.conditions is None or (isinstance(self.conditions, str) and not self.conditions.strip()):
            return None
        if isinstance(self.conditions, SqlFragment):
            return self.conditions
        if isinstance(self.conditions, str):
            return SqlFragment(self.conditions)
        if isinstance(self.conditions, (list, tuple)) and self.conditions and isinstance(self.conditions[0], str):
            return SqlFragment(self.conditions[0], tuple(self.conditions[1:]))
        raise ConfigurationError(f"Association {self.name!r} has unusable conditions {self.conditions!r}")

    @property
    def order_clauses(self) -> Tuple[Any, ...]:
        if self.order is None or self.order is False or (isinstance(self.order, str) and not self.order.strip()):
            return ()
        if isinstance(self.order, (list, tuple)):
            return tuple(self.order)
        return (self.order,)

    # == Introspection ==================================================

    @classmethod
    def from_attribute(cls, attribute: InstrumentedAttribute) -> Self:
        """Build from a relationship attribute such as `User.groups`."""
        if not isinstance(getattr(attribute, "property", None), RelationshipProperty):
            raise ConfigurationError(f"{attribute!r} is not a relationship attribute")
        return cls.from_relationship(attribute.class_, attribute.key)

    @classmethod
    def from_relationship(cls, owner: type, name: str) -> Self:
        """Build from the SQLAlchemy `relationship()` called `name` on `owner`.

        Extra conditions and ordering are read from `relationship(info={"conditions": ..., "order": ...})`;
        without an `order` entry the relationship's own `order_by` is used.
        """
        try:
            mapper = inspect(owner)
        except NoInspectionAvailable as e:
            raise ConfigurationError(f"{owner!r} is not a mapped class") from e

        rel = mapper.relationships.get(name)
        if rel is None:
            raise ConfigurationError(f"{owner.__name__} has no relationship named {name!r}")

        info = rel.info or {}
        common = dict(
            name=name,
            owner=owner,
            target=rel.mapper.class_,
            conditions=info.get("conditions"),
            order=info.get("order", rel.order_by or None),
        )

        if rel.secondary is not None:
            primary_key, foreign_key = _single_pair(rel.synchronize_pairs, owner, name)
            association_primary_key, association_foreign_key = _single_pair(rel.secondary_synchronize_pairs, owner, name)
            return cls(
                kind=AssociationKind.HAS_AND_BELONGS_TO_MANY,
                join_table=rel.secondary.fullname,
                foreign_key=foreign_key.name,
                association_foreign_key=association_foreign_key.name,
                primary_key=primary_key.name,
                association_primary_key=association_primary_key.name,
                **common,
            )

        if rel.direction is RelationshipDirection.MANYTOONE:
            foreign_key, association_primary_key = _single_pair(rel.local_remote_pairs, owner, name)
            return cls(
                kind=AssociationKind.BELONGS_TO,
                foreign_key=foreign_key.name,
                association_primary_key=association_primary_key.name,
                **common,
            )

        primary_key, foreign_key = _single_pair(rel.local_remote_pairs, owner, name)
        return cls(
            kind=AssociationKind.HAS_MANY,
            foreign_key=foreign_key.name,
            primary_key=primary_key.name,
            **common,
        )


def _single_pair(pairs, owner: type, name: str):
    pairs = list(pairs or [])
    if len(pairs) != 1:
        raise ConfigurationError(
            f"{owner.__name__}.{name} must join on exactly one column pair, found {len(pairs)}"
        )
    return pairs[0]
