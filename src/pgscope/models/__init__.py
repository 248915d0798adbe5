# models/__init__.py

# isort: off
from .mixin import PgScopeMixin
from .query_builder import QueryBuilder, RawJoin
# isort: on


__all__ = [
    "PgScopeMixin",
    "QueryBuilder",
    "RawJoin",
]
