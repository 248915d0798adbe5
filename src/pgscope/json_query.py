"""
JSON generation in the database.

`row_json` and `array_json` wrap a relation in `row_to_json`/`array_to_json` so
PostgreSQL returns ready-to-serve JSON. Associations named in `include` become
correlated sub-selects built from the association scope builders, nested as deep
as the `include` mapping goes.

    User.where(id=5).to_json_row(columns=["id", "name"], include={"groups": {"columns": ["name"]}})

renders roughly

    SELECT row_to_json(t) FROM (
        SELECT users.id, users.name,
               (SELECT array_to_json(coalesce(array_agg(row_to_json(t)), '{}'))
                  FROM (SELECT groups.name FROM groups JOIN memberships ON ...
                         WHERE "users"."id" = "memberships"."user_id") AS t) AS groups
        FROM users WHERE users.id = 5
    ) AS t
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Sequence, Tuple

from sqlalchemy import func, literal_column, select
from sqlalchemy.sql.selectable import Select

from pgscope.associations import AssociationDescriptor, AssociationScopeBuilder
from pgscope.errors import InvalidArgument
from pgscope.quoting import resolve_column, table_of


if TYPE_CHECKING:
    from pgscope.models.query_builder import QueryBuilder

ROW_ALIAS = "t"
_INCLUDE_OPTIONS = {"columns", "include"}


def _normalize_include(include: Any) -> List[Tuple[str, Dict[str, Any]]]:
    if include is None:
        return []
    if isinstance(include, str):
        return [(include, {})]
    if isinstance(include, Mapping):
        normalized = []
        for name, options in include.items():
            options = dict(options or {})
            if unknown := set(options) - _INCLUDE_OPTIONS:
                raise InvalidArgument(f"Unknown include options for {name!r}: {sorted(unknown)}")
            normalized.append((name, options))
        return normalized
    if isinstance(include, (list, tuple)):
        normalized = []
        for item in include:
            normalized.extend(_normalize_include(item))
        return normalized
    raise InvalidArgument(f"include must be a name, list or mapping, got {type(include).__name__}")


def _rows(relation: "QueryBuilder", columns: Sequence[str] | None, include: Any) -> Select:
    """The relation's select narrowed to `columns` plus one labelled sub-select per include."""
    model = relation.model
    if columns:
        selected: List[Any] = [resolve_column(model, column) for column in columns]
    else:
        selected = list(table_of(model).columns)

    for name, options in _normalize_include(include):
        descriptor = AssociationDescriptor.from_relationship(model, name)
        association_scope = AssociationScopeBuilder.for_association(descriptor, model).scope()
        to_json = array_json if descriptor.is_collection else row_json
        nested = to_json(association_scope, columns=options.get("columns"), include=options.get("include"))
        selected.append(nested.correlate(None).scalar_subquery().label(name))

    return relation.statement.with_only_columns(*selected)


def row_json(relation: "QueryBuilder", columns: Sequence[str] | None = None, include: Any = None) -> Select:
    """`SELECT row_to_json(t) FROM (...) t`, one JSON object per row."""
    rows = _rows(relation, columns, include).subquery(ROW_ALIAS)
    return select(func.row_to_json(literal_column(ROW_ALIAS))).select_from(rows)


def array_json(relation: "QueryBuilder", columns: Sequence[str] | None = None, include: Any = None) -> Select:
    """`SELECT array_to_json(coalesce(array_agg(row_to_json(t)), '{}')) FROM (...) t`, a single JSON array."""
    rows = _rows(relation, columns, include).subquery(ROW_ALIAS)
    aggregated = func.coalesce(func.array_agg(func.row_to_json(literal_column(ROW_ALIAS))), literal_column("'{}'"))
    return select(func.array_to_json(aggregated)).select_from(rows)
