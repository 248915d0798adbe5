from __future__ import annotations

import logging

from typing import TYPE_CHECKING, Any, Iterable, List, Type

from pgscope.errors import InvalidArgument
from pgscope.sql_fragment import TAUTOLOGY, SqlFragment


if TYPE_CHECKING:
    from pgscope.models.query_builder import QueryBuilder

logger = logging.getLogger(__name__)


def _group(relation: "QueryBuilder") -> SqlFragment | None:
    """AND-join the raw conditions of one relation, None when it has no conditions."""
    conditions = relation.conditions
    for condition in conditions:
        if not isinstance(condition, SqlFragment):
            raise InvalidArgument(
                f"Cannot OR-merge {relation.model.__name__} relation: condition {condition!r} is not a raw SQL fragment"
            )
    if not conditions:
        return None
    if len(conditions) > 1:
        # `a OR b` ANDed with `c` stays `(a OR b) AND (c)`
        conditions = tuple(condition.parenthesize() for condition in conditions)
    return SqlFragment.join(conditions, "AND").parenthesize()


def merged_condition(relations: Iterable["QueryBuilder"]) -> SqlFragment:
    """OR together the condition groups of `relations`.

    A relation without conditions is unrestricted, and so is an empty `relations`;
    either way the result is the tautology `1=1`.
    """
    relations = list(relations)
    groups: List[SqlFragment] = []
    unrestricted = not relations
    for relation in relations:
        group = _group(relation)
        if group is None:
            unrestricted = True
        else:
            groups.append(group)

    if unrestricted:
        return SqlFragment(TAUTOLOGY)
    return SqlFragment.join(groups, "OR")


def merge_with_or(model: Type[Any], *relations: "QueryBuilder") -> "QueryBuilder":
    """A fresh relation on `model` matching rows matched by any of `relations`.

    Only WHERE conditions are merged; joins and ordering of the inputs are dropped.

    Example:
        User.merge_with_or(User.where("id = ?", 1), User.where("id = ?", 2))
    """
    from pgscope.models.query_builder import QueryBuilder

    fragment = merged_condition(relations)
    logger.debug("merge_with_or on %s: %s", model.__name__, fragment.sql)
    return QueryBuilder(model).where(fragment)
