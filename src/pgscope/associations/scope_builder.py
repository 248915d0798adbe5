from __future__ import annotations

import logging

from typing import Any, ClassVar, Dict, Type

from sqlalchemy import inspect

from pgscope.associations.descriptor import AssociationDescriptor, AssociationKind
from pgscope.errors import ConfigurationError, InvalidArgument
from pgscope.models.query_builder import QueryBuilder
from pgscope.quoting import quote_identifier, quote_table_name, quoted_table
from pgscope.sql_fragment import SqlFragment


logger = logging.getLogger(__name__)


class AssociationScopeBuilder:
    """Builds the unexecuted relation that loads one association.

    `outside` is the owning side. Pass the owner *class* to get a correlated scope that
    references the owner's table (for use as a sub-select inside a query on that table),
    or an owner *instance* to bind its key values and get a standalone scope.
    """

    builders: ClassVar[Dict[AssociationKind, Type["AssociationScopeBuilder"]]] = {}
    kind: ClassVar[AssociationKind]

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if "kind" in cls.__dict__:
            AssociationScopeBuilder.builders[cls.kind] = cls

    def __init__(self, association: AssociationDescriptor, outside: Any = None):
        self.association = association
        self.outside = association.owner if outside is None else outside
        if self.outside is None:
            raise ConfigurationError(f"Association {association.name!r} has no owner to scope from")

    @classmethod
    def for_association(cls, association: AssociationDescriptor, outside: Any = None) -> "AssociationScopeBuilder":
        builder_class = cls.builders.get(association.kind)
        if builder_class is None:
            raise ConfigurationError(f"No scope builder for {association.kind!r} associations")
        return builder_class(association, outside)

    def scope(self) -> QueryBuilder:
        raise NotImplementedError

    # == Descriptor fields ==========================================

    def require(self, field: str) -> Any:
        value = getattr(self.association, field)
        if value is None or value == "":
            raise ConfigurationError(f"Association {self.association.name!r} is missing {field}")
        return value

    @property
    def target(self) -> type: return self.require("target")

    @property
    def outside_class(self) -> type:
        return self.outside if isinstance(self.outside, type) else type(self.outside)

    @property
    def is_correlated(self) -> bool: return isinstance(self.outside, type)

    @property
    def outside_table(self) -> str: return quoted_table(self.outside_class)

    @property
    def association_table(self) -> str: return quoted_table(self.target)

    @property
    def join_table(self) -> str: return quote_table_name(self.require("join_table"))

    @property
    def foreign_key(self) -> str: return quote_identifier(self.require("foreign_key"))

    @property
    def association_foreign_key(self) -> str: return quote_identifier(self.require("association_foreign_key"))

    @property
    def primary_key(self) -> str: return quote_identifier(self.require("primary_key"))

    @property
    def association_primary_key(self) -> str: return quote_identifier(self.require("association_primary_key"))

    # == Helpers ====================================================

    def link(self, outside_column: str, other: str) -> SqlFragment:
        """`<outside table>.<column> = <other>`, or `<other> = ?` bound to the outside instance."""
        if self.is_correlated:
            return SqlFragment(f"{self.outside_table}.{quote_identifier(outside_column)} = {other}")
        return SqlFragment(f"{other} = ?", (self.outside_value(outside_column),))

    def outside_value(self, column_name: str) -> Any:
        mapper = inspect(self.outside_class)
        column = mapper.local_table.columns.get(column_name)
        if column is None:
            raise ConfigurationError(f"{self.outside_class.__name__} has no column {column_name!r}")
        value = getattr(self.outside, mapper.get_property_by_column(column).key)
        if value is None:
            raise InvalidArgument(f"{self.outside_class.__name__}.{column_name} is not set, cannot scope {self.association.name!r}")
        return value

    def apply_declared(self, scope: QueryBuilder) -> QueryBuilder:
        """AND the association's declared conditions and apply its declared order."""
        if (conditions := self.association.conditions_fragment) is not None:
            scope = scope.where(conditions)
        if order := self.association.order_clauses:
            scope = scope.order(*order)
        return scope


class HasAndBelongsToManyScopeBuilder(AssociationScopeBuilder):
    kind = AssociationKind.HAS_AND_BELONGS_TO_MANY

    def scope(self) -> QueryBuilder:
        association_scope = (
            QueryBuilder(self.target)
            .join_table(
                self.require("join_table"),
                f"{self.join_table}.{self.association_foreign_key} = {self.association_table}.{self.association_primary_key}",
            )
            .where(self.link(self.require("primary_key"), f"{self.join_table}.{self.foreign_key}"))
        )
        association_scope = self.apply_declared(association_scope)
        logger.debug("habtm scope %s.%s: %r", self.outside_class.__name__, self.association.name, association_scope.conditions)
        return association_scope


class HasManyScopeBuilder(AssociationScopeBuilder):
    kind = AssociationKind.HAS_MANY

    def scope(self) -> QueryBuilder:
        association_scope = QueryBuilder(self.target).where(
            self.link(self.require("primary_key"), f"{self.association_table}.{self.foreign_key}")
        )
        return self.apply_declared(association_scope)


class BelongsToScopeBuilder(AssociationScopeBuilder):
    kind = AssociationKind.BELONGS_TO

    def scope(self) -> QueryBuilder:
        association_scope = QueryBuilder(self.target).where(
            self.link(self.require("foreign_key"), f"{self.association_table}.{self.association_primary_key}")
        )
        return self.apply_declared(association_scope)


def resolve_association(association: Any, outside: Any = None) -> AssociationDescriptor:
    """Accept a descriptor, a relationship attribute (`User.groups`) or a relationship name on `outside`."""
    if isinstance(association, AssociationDescriptor):
        return association
    if isinstance(association, str):
        if outside is None:
            raise ConfigurationError(f"Cannot resolve association {association!r} without an owner")
        owner = outside if isinstance(outside, type) else type(outside)
        return AssociationDescriptor.from_relationship(owner, association)
    return AssociationDescriptor.from_attribute(association)


def build_association_scope(association: Any, outside: Any = None) -> QueryBuilder:
    """The unexecuted relation of `association` as seen from `outside`.

    Examples:
        build_association_scope(User.groups, user)        # groups of one user
        build_association_scope("groups", User)           # correlated, for sub-selects on users
    """
    descriptor = resolve_association(association, outside)
    return AssociationScopeBuilder.for_association(descriptor, outside).scope()
