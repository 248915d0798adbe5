from typing import Any, Literal, Self, Sequence, Type


class PgScopeMixin:
    """
    Mixin providing Rails-style query scopes for SQLAlchemy models, including PostgreSQL
    array, set membership, OR-merge and association scopes.

    Opt in per model:

        class User(Base, PgScopeMixin):
            __tablename__ = "users"
            ...

        User.contains_any("permissions", ["manage_users", "manage_roles"]).order("name")
    """
    @classmethod
    def query(cls: Type[Self]):
        """Rails: Model.all - returns a QueryBuilder for method chaining"""
        from pgscope.models.query_builder import QueryBuilder
        return QueryBuilder(cls)

    @classmethod
    def where(cls: Type[Self], *args, **kwargs):
        """Rails: Model.where(condition)"""
        return cls.query().where(*args, **kwargs)

    @classmethod
    def where_not(cls: Type[Self], *args, **kwargs):
        """Rails: Model.where.not(condition)"""
        return cls.query().where_not(*args, **kwargs)

    @classmethod
    def order(cls: Type[Self], *args, **kwargs):
        """Rails: Model.order(:column)"""
        return cls.query().order(*args, **kwargs)

    @classmethod
    def limit(cls: Type[Self], n: int):
        """Rails: Model.limit(n)"""
        return cls.query().limit(n)

    @classmethod
    def offset(cls: Type[Self], n: int):
        """Rails: Model.offset(n)"""
        return cls.query().offset(n)

    @classmethod
    def joins(cls: Type[Self], *relationships):
        """Rails: Model.joins(:association)"""
        return cls.query().joins(*relationships)

    @classmethod
    def join_table(cls: Type[Self], table_name: str, on: str, *params: Any, outer: bool = False):
        """Rails: Model.joins("JOIN memberships ON ...")"""
        return cls.query().join_table(table_name, on, *params, outer=outer)

    @classmethod
    def none(cls: Type[Self]):
        """Rails: Model.none"""
        return cls.query().none()

    # == PostgreSQL scopes ==============================================

    @classmethod
    def contains_all(cls: Type[Self], column, values: Sequence[Any]):
        """Rails: Model.array_has(:permissions, "manage_users")"""
        return cls.query().contains_all(column, values)

    @classmethod
    def contains_any(cls: Type[Self], column, values: Sequence[Any]):
        """Rails: Model.array_has_any(:permissions, "manage_users", "manage_roles")"""
        return cls.query().contains_any(column, values)

    @classmethod
    def any_column_contains_all(cls: Type[Self], columns, join_type: Literal["and", "or"], values: Sequence[Any]):
        """Rails: Model.arrays_have([:permissions, :roles], :or, "manage_users")"""
        return cls.query().any_column_contains_all(columns, join_type, values)

    @classmethod
    def member_of_set(cls: Type[Self], column, values: Sequence[Any]):
        """Model.where(id: ids) as `= ANY(VALUES ...)`, trusted values only."""
        return cls.query().member_of_set(column, values)

    @classmethod
    def merge_with_or(cls: Type[Self], *relations):
        """A relation matching rows matched by any of `relations`."""
        from pgscope.scopes.or_merge import merge_with_or
        return merge_with_or(cls, *relations)

    # == Associations ===================================================

    @classmethod
    def association_scope(cls: Type[Self], name: str, outside: Any = None):
        """Unexecuted relation of association `name`, correlated to this model's table unless `outside` is an instance."""
        from pgscope.associations import build_association_scope
        return build_association_scope(name, cls if outside is None else outside)

    def scope_for(self, name: str):
        """Rails: user.groups - the association relation of this record, unexecuted."""
        from pgscope.associations import build_association_scope
        return build_association_scope(name, self)

    # == JSON ===========================================================

    @classmethod
    def row_json(cls: Type[Self], columns: Sequence[str] | None = None, include: Any = None):
        """One JSON object per row of the model."""
        return cls.query().to_json_row(columns=columns, include=include)

    @classmethod
    def array_json(cls: Type[Self], columns: Sequence[str] | None = None, include: Any = None):
        """All rows of the model as one JSON array."""
        return cls.query().to_json_array(columns=columns, include=include)
