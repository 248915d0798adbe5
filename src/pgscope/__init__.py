"""
PostgreSQL query scopes for SQLAlchemy models: array containment, `= ANY(VALUES ...)`
set membership, OR-merging of relations, association scopes and JSON generation.
"""

# isort: off
from pgscope.errors import ConfigurationError, InvalidArgument, PgScopeError
from pgscope.sql_fragment import SqlFragment, flatten
from pgscope.models import PgScopeMixin, QueryBuilder
from pgscope.scopes import (any_column_contains_all, contains_all, contains_any, member_of_set, merge_with_or)
from pgscope.associations import AssociationDescriptor, AssociationKind, build_association_scope
from pgscope.json_query import array_json, row_json
# isort: on


__all__ = [
    "ConfigurationError",
    "InvalidArgument",
    "PgScopeError",
    "SqlFragment",
    "flatten",
    "PgScopeMixin",
    "QueryBuilder",
    "contains_all",
    "contains_any",
    "any_column_contains_all",
    "member_of_set",
    "merge_with_or",
    "AssociationDescriptor",
    "AssociationKind",
    "build_association_scope",
    "row_json",
    "array_json",
]
