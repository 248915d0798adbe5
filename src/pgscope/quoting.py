"""
Identifier quoting, column resolution and literal rendering.

Every piece of raw SQL pgscope writes gets its identifiers, casts and (for the
set membership builder) literals from here, so the places that splice text into
SQL stay in one module.
"""
from __future__ import annotations

import datetime, decimal, math, uuid

from typing import Any, Type

from sqlalchemy import Column, Table
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.types import ARRAY, TypeDecorator, TypeEngine

from pgscope.errors import InvalidArgument
from pgscope.sql_fragment import escape_placeholders


DIALECT = postgresql.dialect()


# ==================================
# Identifiers
# ==================================

def quote_identifier(name: str) -> str:
    """Always double quote, doubling any embedded quote characters."""
    return DIALECT.identifier_preparer.quote_identifier(name)


def quote_table_name(name: str) -> str:
    """Quote `table` or `schema.table`, one part at a time."""
    return ".".join(quote_identifier(part) for part in name.split("."))


def table_of(model: Type[Any]) -> Table:
    table = getattr(model, "__table__", None)
    if table is None:
        raise InvalidArgument(f"{model!r} is not a mapped model with a __table__")
    return table


def quoted_table(model: Type[Any]) -> str:
    return quote_table_name(table_of(model).fullname)


def resolve_column(model: Type[Any], column: str | InstrumentedAttribute | Column) -> Column:
    """Resolve a column name, mapped attribute or Column to the table Column of `model`."""
    table = table_of(model)

    if isinstance(column, str):
        if column in table.columns:
            return table.columns[column]
        # mapped attribute key that differs from the column name
        attr = model.__mapper__.column_attrs.get(column) if hasattr(model, "__mapper__") else None
        if attr is not None and attr.columns and isinstance(attr.columns[0], Column):
            return attr.columns[0]
        raise InvalidArgument(f"Unknown column {column!r} for table {table.name!r}")

    if isinstance(column, InstrumentedAttribute):
        columns = getattr(column.property, "columns", None)
        if columns and isinstance(columns[0], Column):
            return columns[0]
        raise InvalidArgument(f"{column!r} is not a column attribute")

    if isinstance(column, Column):
        return column

    raise InvalidArgument(f"Cannot resolve a column from {column!r}")


def quoted_column(model: Type[Any], column: str | InstrumentedAttribute | Column) -> str:
    """`"table"."column"` for a column of `model`."""
    resolved = resolve_column(model, column)
    return f"{quote_table_name(resolved.table.fullname)}.{quote_identifier(resolved.name)}"


# ==================================
# Types
# ==================================

def _dialect_type(type_: TypeEngine) -> TypeEngine:
    if isinstance(type_, TypeDecorator):
        return type_.load_dialect_impl(DIALECT)
    return type_


def array_element_type(model: Type[Any], column: str | InstrumentedAttribute | Column) -> str:
    """PostgreSQL name of the element type of an array column, e.g. `VARCHAR` for `VARCHAR[]`."""
    resolved = resolve_column(model, column)
    type_ = _dialect_type(resolved.type)
    if not isinstance(type_, ARRAY):
        raise InvalidArgument(f"Column {resolved.name!r} is {type_!r}, not an array column")
    return type_.item_type.compile(dialect=DIALECT)


def array_cast(model: Type[Any], column: str | InstrumentedAttribute | Column) -> str:
    """Cast suffix for an array literal compared against `column`, e.g. `::INTEGER[]`."""
    return f"::{array_element_type(model, column)}[]"


# ==================================
# Literals
# ==================================

_NUMBERS = (int, float, decimal.Decimal)
_QUOTED = (str, uuid.UUID, datetime.date, datetime.time)

def _is_finite(value: int | float | decimal.Decimal) -> bool:
    if isinstance(value, int):
        return True
    return math.isfinite(value) if isinstance(value, float) else value.is_finite()


def _string_literal(value: str) -> str:
    # assumes standard_conforming_strings=on, the PostgreSQL default
    return "'" + value.replace("'", "''") + "'"


def render_literal(value: Any) -> str:
    """Render a trusted value as SQL literal text.

    Numbers render bare; strings, UUIDs and dates render as quoted string literals with
    embedded quotes doubled. Anything else is rejected. Only used where the output is
    spliced straight into SQL, so callers must still treat the input as trusted.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidArgument(f"Cannot render {value!r} as a literal")
    if isinstance(value, _NUMBERS):
        if not _is_finite(value):
            raise InvalidArgument(f"Cannot render non-finite number {value!r} as a literal")
        return str(value)
    if isinstance(value, _QUOTED):
        raw = value.isoformat() if isinstance(value, (datetime.date, datetime.time)) else str(value)
        return escape_placeholders(_string_literal(raw))
    raise InvalidArgument(f"Cannot render {type(value).__name__} value {value!r} as a literal")
