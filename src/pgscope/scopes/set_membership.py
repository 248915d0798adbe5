"""
`column = ANY(VALUES (v1),(v2),...)` membership scope.

For large value lists PostgreSQL plans `= ANY(VALUES ...)` as a join against a
values list, which is often much faster than a long `IN (...)`. The values are
written into the SQL as literals, not bound, so the planner sees them.
Only pass trusted values such as ids read from your own database.
"""
from __future__ import annotations

import logging

from typing import TYPE_CHECKING, Any, Sequence

from pgscope.errors import InvalidArgument
from pgscope.quoting import quoted_column, render_literal
from pgscope.sql_fragment import CONTRADICTION, SqlFragment, flatten, unique


if TYPE_CHECKING:
    from pgscope.models.query_builder import QueryBuilder

logger = logging.getLogger(__name__)


def values_list(values: Sequence[Any]) -> str:
    """`(1),(2),(3)` for flattened, de-duplicated values."""
    return ",".join(f"({render_literal(value)})" for value in unique(flatten(values)))


def member_of_set(relation: "QueryBuilder", column, values: Sequence[Any]) -> "QueryBuilder":
    """Require `column` to equal one of `values`.

    Examples:
        User.member_of_set("id", [1, 2, 3])
        User.member_of_set("id", [[1, 2], [2, 3]])   # same as [1, 2, 3]
    """
    if not isinstance(values, (list, tuple)):
        raise InvalidArgument(f"values must be a list or tuple, got {type(values).__name__}")

    lhs = quoted_column(relation.model, column)
    rendered = values_list(values)
    if not rendered:
        fragment = SqlFragment(CONTRADICTION)
    else:
        fragment = SqlFragment(f"{lhs} = ANY(VALUES {rendered})")

    logger.debug("member_of_set on %s: %s", relation.model.__name__, fragment.sql)
    return relation.where(fragment)
