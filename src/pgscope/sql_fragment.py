from __future__ import annotations

import re

from dataclasses import dataclass
from typing import Any, Iterable, List, Literal, Sequence, Tuple

from sqlalchemy import bindparam, text
from sqlalchemy.sql.elements import TextClause

from pgscope.errors import InvalidArgument
from pgscope.settings import get_settings


PLACEHOLDER = "?"
ESCAPED_PLACEHOLDER = "??"
TAUTOLOGY = "1=1"
CONTRADICTION = "1=0"

# `??` is a literal question mark, a lone `?` is a placeholder.
_PLACEHOLDER_TOKEN = re.compile(r"(\?\?|\?)")

# A colon that SQLAlchemy's text() would read as a named bind parameter. `::` casts never match.
_NAMED_BIND_COLON = re.compile(r"(?<![:\w\$\\]):(?=[\w\$])")


def flatten(values: Iterable[Any]) -> List[Any]:
    """Recursively collapse nested lists and tuples into one flat list.

    >>> flatten([["a", "b"], ["c"], "d"])
    ['a', 'b', 'c', 'd']
    """
    flat: List[Any] = []
    for value in values:
        if isinstance(value, (list, tuple)):
            flat.extend(flatten(value))
        else:
            flat.append(value)
    return flat


def unique(values: Iterable[Any]) -> List[Any]:
    """De-duplicate while keeping the first occurrence of each value."""
    values = list(values)
    try:
        return list(dict.fromkeys(values))
    except TypeError:
        # unhashable values, fall back to the quadratic scan
        seen: List[Any] = []
        for value in values:
            if value not in seen:
                seen.append(value)
        return seen


def escape_placeholders(sql: str) -> str:
    """Escape literal question marks so they are not read as placeholders."""
    return sql.replace(PLACEHOLDER, ESCAPED_PLACEHOLDER)


def _tokenize(sql: str) -> List[str]:
    """Split into alternating text / placeholder tokens."""
    return _PLACEHOLDER_TOKEN.split(sql)


@dataclass(frozen=True)
class SqlFragment:
    """A raw SQL condition with positional `?` placeholders and the parameters that fill them.

    A list or tuple parameter expands into a comma separated list of placeholders, so
    `SqlFragment("id IN (?)", ([1, 2, 3],))` binds three values. An empty list renders `NULL`.
    Write `??` for a literal question mark.
    """
    sql: str
    params: Tuple[Any, ...] = ()

    def __post_init__(self):
        if not isinstance(self.sql, str):
            raise InvalidArgument(f"SQL fragment must be a string, got {type(self.sql).__name__}")
        if not isinstance(self.params, tuple):
            object.__setattr__(self, "params", tuple(self.params))
        expected = self.placeholder_count
        if expected != len(self.params):
            raise InvalidArgument(
                f"SQL fragment {self.sql!r} has {expected} placeholder(s) but {len(self.params)} parameter(s)"
            )

    @property
    def placeholder_count(self) -> int:
        return sum(1 for token in _tokenize(self.sql) if token == PLACEHOLDER)

    @classmethod
    def of(cls, sql: str, *params: Any) -> "SqlFragment":
        return cls(sql, params)

    @classmethod
    def join(cls, fragments: Sequence["SqlFragment"], operator: Literal["AND", "OR"] = "AND") -> "SqlFragment":
        """Join fragments with AND/OR, keeping the parameters in placeholder order."""
        params: List[Any] = []
        for fragment in fragments:
            params.extend(fragment.params)
        return cls(f" {operator} ".join(fragment.sql for fragment in fragments), tuple(params))

    def parenthesize(self) -> "SqlFragment":
        return SqlFragment(f"({self.sql})", self.params)

    def to_text(self, prefix: str | None = None) -> TextClause:
        """Compile into a SQLAlchemy text clause with unique bind parameters.

        Bind parameters are marked unique so fragments coming from different relations,
        or from nested subqueries, can share one statement without name clashes.
        """
        prefix = prefix or get_settings().bind_prefix
        params = iter(enumerate(self.params))

        sql = ""
        binds = []
        for token in _tokenize(_NAMED_BIND_COLON.sub(r"\\:", self.sql)):
            if token == ESCAPED_PLACEHOLDER:
                sql += PLACEHOLDER
            elif token == PLACEHOLDER:
                index, param = next(params)
                if isinstance(param, (list, tuple)):
                    items = flatten(param)
                    names = [f"{prefix}_{index}_{position}" for position in range(len(items))]
                    binds.extend(bindparam(name, item, unique=True) for name, item in zip(names, items))
                    sql += ", ".join(f":{name}" for name in names) or "NULL"
                else:
                    name = f"{prefix}_{index}"
                    binds.append(bindparam(name, param, unique=True))
                    sql += f":{name}"
            else:
                sql += token

        return text(sql).bindparams(*binds)

    def __str__(self) -> str:
        return self.sql
