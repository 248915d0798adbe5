from __future__ import annotations

import copy

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, List, Literal, Optional, Sequence, Tuple, Type, TypeVar, Union, overload

from sqlalchemy import and_, asc, desc, select, table, text
from sqlalchemy.exc import CompileError
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.selectable import Select

from pgscope.errors import InvalidArgument
from pgscope.quoting import DIALECT
from pgscope.sql_fragment import CONTRADICTION, SqlFragment


if TYPE_CHECKING:
    from pgscope.models.mixin import PgScopeMixin

T = TypeVar("T", bound="PgScopeMixin")

Condition = Union[SqlFragment, ColumnElement[bool]]


@dataclass(frozen=True)
class RawJoin:
    """`JOIN <table> ON <raw condition>` against a table that has no mapped model."""
    table_name: str
    on: SqlFragment
    outer: bool = False

    def apply(self, stmt: Select) -> Select:
        schema, _, name = self.table_name.rpartition(".")
        target = table(name, schema=schema or None)
        return stmt.join(target, self.on.to_text(), isouter=self.outer)


class QueryBuilder(Generic[T]):
    """An unexecuted query on `model` built up one clause at a time.

    Every chain method returns a new builder and leaves the receiver untouched, so a
    builder can be shared and extended from several places.
    """

    def __init__(self, model: Type[T]):
        self.model = model
        self._conditions: Tuple[Condition, ...] = ()
        self._joins: Tuple[Union[RawJoin, Any], ...] = ()
        self._order_clauses: Tuple[Any, ...] = ()
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._distinct_value = False

    def _spawn(self, **changes: Any) -> "QueryBuilder[T]":
        clone = copy.copy(self)
        for name, value in changes.items():
            setattr(clone, name, value)
        return clone

    # ==================================
    # Query Modifiers (Rails-like)
    # ==================================

    def where(self, *args, **kwargs) -> "QueryBuilder[T]":
        """Rails: Model.where("tags @> ARRAY[?]", ["a"]) or Model.where(name="x")

        A leading string is a raw SQL condition and the remaining positional arguments
        fill its `?` placeholders. Anything else is passed through as a SQLAlchemy expression.
        """
        conditions: List[Condition] = []
        if args and isinstance(args[0], str):
            conditions.append(SqlFragment(args[0], args[1:]))
        else:
            conditions.extend(args)

        for key, value in kwargs.items():
            attr = getattr(self.model, key)
            if isinstance(value, (list, tuple)):
                conditions.append(attr.in_(value))
            elif value is None:
                conditions.append(attr.is_(None))
            else:
                conditions.append(attr == value)

        return self._spawn(_conditions=self._conditions + tuple(conditions))

    def where_not(self, *args, **kwargs) -> "QueryBuilder[T]":
        """Rails: Model.where.not(condition)"""
        if args and isinstance(args[0], str):
            fragment = SqlFragment(f"NOT ({args[0]})", args[1:])
            return self._spawn(_conditions=self._conditions + (fragment,)).where_not(**kwargs)

        conditions = []
        if args:
            conditions.extend(args)
        if kwargs:
            for key, value in kwargs.items():
                attr = getattr(self.model, key)
                if isinstance(value, (list, tuple)):
                    conditions.append(~attr.in_(value))
                elif value is None:
                    conditions.append(attr.is_not(None))
                else:
                    conditions.append(attr != value)

        if conditions:
            return self._spawn(_conditions=self._conditions + (and_(*conditions),))
        return self._spawn()

    @overload
    def order(self, column: str) -> "QueryBuilder[T]": ...
    @overload
    def order(self, column: str, direction: Literal["asc", "desc"]) -> "QueryBuilder[T]": ...
    @overload
    def order(self, column: Any, direction: Literal["asc", "desc"]) -> "QueryBuilder[T]": ...
    @overload
    def order(self, column: Any) -> "QueryBuilder[T]": ...
    @overload
    def order(self, **kwargs: Literal["asc", "desc"]) -> "QueryBuilder[T]": ...
    def order(self, *args, **kwargs) -> "QueryBuilder[T]":
        """
        Rails: Model.order(:column) or Model.order(column: :desc)
        Pythonic: Model.order(column="desc")
        Also supports: Model.order("name", "desc") and raw SQL like Model.order("name DESC NULLS LAST")
        """
        order_clauses = []

        if len(args) == 2 and isinstance(args[1], str) and args[1] in ("asc", "desc"):
            col, direction = args
            resolved_col = self._resolve_column(col) if isinstance(col, str) else col
            order_clauses.append(asc(resolved_col) if direction == "asc" else desc(resolved_col))
        else:
            for col in args:
                order_clauses.append(self._resolve_column(col) if isinstance(col, str) else col)

        for key, value in kwargs.items():
            attr = getattr(self.model, key)
            if value not in ("asc", "desc"):
                raise InvalidArgument(f"Order direction for {key!r} must be 'asc' or 'desc', got {value!r}")
            order_clauses.append(attr.asc() if value == "asc" else attr.desc())

        return self._spawn(_order_clauses=self._order_clauses + tuple(order_clauses))

    def reorder(self, *args, **kwargs) -> "QueryBuilder[T]":
        """Rails: Model.reorder() - clears existing order and applies new"""
        return self._spawn(_order_clauses=()).order(*args, **kwargs)

    def limit(self, n: int) -> "QueryBuilder[T]":
        """Rails: Model.limit(n)"""
        return self._spawn(_limit=n)

    def offset(self, n: int) -> "QueryBuilder[T]":
        """Rails: Model.offset(n)"""
        return self._spawn(_offset=n)

    def distinct(self) -> "QueryBuilder[T]":
        """Rails: Model.distinct"""
        return self._spawn(_distinct_value=True)

    def joins(self, *relationships) -> "QueryBuilder[T]":
        """Rails: Model.joins(:association)"""
        joins = []
        for rel in relationships:
            joins.append(getattr(self.model, rel) if isinstance(rel, str) else rel)
        return self._spawn(_joins=self._joins + tuple(joins))

    def join_table(self, table_name: str, on: str | SqlFragment, *params: Any, outer: bool = False) -> "QueryBuilder[T]":
        """Rails: Model.joins("JOIN memberships ON ...") for a table without a model."""
        fragment = on if isinstance(on, SqlFragment) else SqlFragment(on, params)
        return self._spawn(_joins=self._joins + (RawJoin(table_name, fragment, outer),))

    def none(self) -> "QueryBuilder[T]":
        """Rails: Model.none - returns empty relation"""
        return self.where(CONTRADICTION)

    def _resolve_column(self, col: str):
        """Resolve 'column' to a mapped attribute, anything else becomes raw SQL."""
        attr = getattr(self.model, col, None)
        if isinstance(attr, InstrumentedAttribute):
            return attr
        return text(col)

    # ==================================
    # PostgreSQL Scopes
    # ==================================

    def contains_all(self, column, values: Sequence[Any]) -> "QueryBuilder[T]":
        """Rails: Model.array_has(:permissions, "manage_users")"""
        from pgscope.scopes.array import contains_all
        return contains_all(self, column, values)

    def contains_any(self, column, values: Sequence[Any]) -> "QueryBuilder[T]":
        """Rails: Model.array_has_any(:permissions, "manage_users", "manage_roles")"""
        from pgscope.scopes.array import contains_any
        return contains_any(self, column, values)

    def any_column_contains_all(self, columns, join_type: Literal["and", "or"], values: Sequence[Any]) -> "QueryBuilder[T]":
        """Rails: Model.arrays_have([:permissions, :roles], :or, "manage_users")"""
        from pgscope.scopes.array import any_column_contains_all
        return any_column_contains_all(self, columns, join_type, values)

    def member_of_set(self, column, values: Sequence[Any]) -> "QueryBuilder[T]":
        """`column = ANY(VALUES (1),(2))` for trusted values only."""
        from pgscope.scopes.set_membership import member_of_set
        return member_of_set(self, column, values)

    def or_merge(self, *relations: "QueryBuilder[Any]") -> "QueryBuilder[T]":
        """AND this relation with the OR of the conditions of `relations`."""
        from pgscope.scopes.or_merge import merged_condition
        return self._spawn(_conditions=self._conditions + (merged_condition(relations),))

    def to_json_row(self, columns: Sequence[str] | None = None, include: Any = None) -> Select:
        from pgscope.json_query import row_json
        return row_json(self, columns=columns, include=include)

    def to_json_array(self, columns: Sequence[str] | None = None, include: Any = None) -> Select:
        from pgscope.json_query import array_json
        return array_json(self, columns=columns, include=include)

    # ==================================
    # Inspection
    # ==================================

    @property
    def conditions(self) -> Tuple[Condition, ...]:
        """The WHERE conditions accumulated so far, in the order they were added."""
        return self._conditions

    @property
    def statement(self) -> Select:
        """Assemble the SQLAlchemy select. Execute it with your own session."""
        stmt = select(self.model)
        for join in self._joins:
            stmt = join.apply(stmt) if isinstance(join, RawJoin) else stmt.join(join)
        # text() is never grouped by SQLAlchemy, so `a OR b` must be parenthesized before it is ANDed
        wrap = len(self._conditions) > 1
        for condition in self._conditions:
            if isinstance(condition, SqlFragment):
                condition = (condition.parenthesize() if wrap else condition).to_text()
            stmt = stmt.where(condition)
        if self._order_clauses:
            stmt = stmt.order_by(*self._order_clauses)
        if self._distinct_value:
            stmt = stmt.distinct()
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        if self._offset is not None:
            stmt = stmt.offset(self._offset)
        return stmt

    def compile(self, literal_binds: bool = False):
        """Compile against the PostgreSQL dialect."""
        if literal_binds:
            return self.statement.compile(dialect=DIALECT, compile_kwargs={"literal_binds": True})
        return self.statement.compile(dialect=DIALECT)

    def to_sql(self) -> str:
        """Rails: Model.to_sql - compile to SQL string"""
        return str(self.compile(literal_binds=True))

    def __repr__(self) -> str:
        try:
            sql = self.to_sql()
        except CompileError:
            # a bound value without a literal renderer, show the placeholders instead
            sql = str(self.compile())
        return f"<QueryBuilder({self.model.__name__}) {sql}>"
