"""
Array containment scopes: `@>` (contains) and `&&` (overlaps).

The right hand side is always `ARRAY[...]` cast to the column's own array type.
PostgreSQL needs both operands of `@>`/`&&` to share an element type, and untyped
bound values would otherwise be read as `text[]`.
"""
from __future__ import annotations

import logging

from typing import TYPE_CHECKING, Any, List, Literal, Sequence

from pgscope.errors import InvalidArgument
from pgscope.quoting import array_cast, quoted_column, resolve_column
from pgscope.sql_fragment import SqlFragment, flatten, unique


if TYPE_CHECKING:
    from pgscope.models.query_builder import QueryBuilder

logger = logging.getLogger(__name__)

CONTAINS = "@>"
OVERLAPS = "&&"

_JOIN_OPERATORS = {"and": "AND", "or": "OR"}


def _flat_values(values: Sequence[Any]) -> List[Any]:
    if not isinstance(values, (list, tuple)):
        raise InvalidArgument(f"values must be a list or tuple, got {type(values).__name__}")
    return flatten(values)


def array_predicate(model, column, operator: str, values: List[Any]) -> SqlFragment:
    """`"table"."column" <operator> ARRAY[?]::<type>[]` for already flattened values."""
    lhs = quoted_column(model, column)
    cast = array_cast(model, column)
    if not values:
        return SqlFragment(f"{lhs} {operator} ARRAY[]{cast}")
    return SqlFragment(f"{lhs} {operator} ARRAY[?]{cast}", (list(values),))


def contains_all(relation: "QueryBuilder", column, values: Sequence[Any]) -> "QueryBuilder":
    """Require the array `column` to contain every one of `values`.

    Examples:
        User.contains_all("permissions", ["manage_users"])
        User.contains_all("permissions", ["manage_users", "manage_roles"])
        User.contains_all("permissions", [["manage_users"], ["manage_roles"]])
    """
    fragment = array_predicate(relation.model, column, CONTAINS, _flat_values(values))
    logger.debug("contains_all on %s: %s", relation.model.__name__, fragment.sql)
    return relation.where(fragment)


def contains_any(relation: "QueryBuilder", column, values: Sequence[Any]) -> "QueryBuilder":
    """Require the array `column` to share at least one element with `values`.

    Examples:
        User.contains_any("permissions", ["manage_users", "manage_roles"])
    """
    fragment = array_predicate(relation.model, column, OVERLAPS, _flat_values(values))
    logger.debug("contains_any on %s: %s", relation.model.__name__, fragment.sql)
    return relation.where(fragment)


def any_column_contains_all(
    relation: "QueryBuilder",
    columns: Sequence[Any],
    join_type: Literal["and", "or"],
    values: Sequence[Any],
) -> "QueryBuilder":
    """Require the array columns to contain every one of `values`, all of them (`and`) or at least one (`or`).

    Examples:
        User.any_column_contains_all(["permissions", "roles"], "and", ["manage_users"])
        User.any_column_contains_all(["permissions", "roles"], "or", ["manage_users", "manage_roles"])
    """
    if not isinstance(columns, (list, tuple)):
        raise InvalidArgument("columns must be a list; use contains_all for a single column")
    if not columns:
        raise InvalidArgument("columns must not be empty")
    operator = _JOIN_OPERATORS.get(str(join_type).lower())
    if operator is None:
        raise InvalidArgument(f"join_type must be 'and' or 'or', got {join_type!r}")

    flat = _flat_values(values)
    resolved = unique(resolve_column(relation.model, column) for column in columns)

    # each column gets its own copy of the values, casts can differ per column
    predicates = [array_predicate(relation.model, column, CONTAINS, flat) for column in resolved]
    fragment = SqlFragment.join(predicates, operator).parenthesize()
    logger.debug("any_column_contains_all on %s: %s", relation.model.__name__, fragment.sql)
    return relation.where(fragment)
