import pytest

from pgscope.errors import InvalidArgument
from .setup.models import Group, User
from .setup.sql import where_sql


class TestContainsAll:
    def test_contains_every_value(self):
        sql, params = where_sql(User.contains_all("permissions", ["manage_users", "manage_roles"]))
        assert sql == '"users"."permissions" @> ARRAY[?, ?]::VARCHAR[]'
        assert params == ["manage_users", "manage_roles"]

    def test_nested_values_are_flattened(self):
        nested = where_sql(User.contains_all("permissions", [["manage_users"], ["manage_roles"]]))
        flat = where_sql(User.contains_all("permissions", ["manage_users", "manage_roles"]))
        assert nested == flat

    def test_cast_follows_the_column_type(self):
        sql, params = where_sql(User.contains_all("lucky_numbers", [7, 13]))
        assert sql == '"users"."lucky_numbers" @> ARRAY[?, ?]::INTEGER[]'
        assert params == [7, 13]

        sql, _ = where_sql(Group.contains_all(Group.tags, ["ops"]))
        assert sql == '"groups"."tags" @> ARRAY[?]::VARCHAR(50)[]'

    def test_empty_values_match_every_row(self):
        sql, params = where_sql(User.contains_all("permissions", []))
        assert sql == '"users"."permissions" @> ARRAY[]::VARCHAR[]'
        assert params == []

    def test_scalar_values_are_rejected(self):
        with pytest.raises(InvalidArgument, match="list or tuple"):
            User.contains_all("permissions", "manage_users")

    def test_unknown_column(self):
        with pytest.raises(InvalidArgument, match="Unknown column"):
            User.contains_all("nope", ["x"])

    def test_non_array_column(self):
        with pytest.raises(InvalidArgument, match="not an array column"):
            User.contains_all("score", [1])


class TestContainsAny:
    def test_overlaps(self):
        sql, params = where_sql(User.contains_any("permissions", ["manage_users", "manage_roles"]))
        assert sql == '"users"."permissions" && ARRAY[?, ?]::VARCHAR[]'
        assert params == ["manage_users", "manage_roles"]

    def test_empty_values_match_no_row(self):
        sql, _ = where_sql(User.contains_any("permissions", []))
        assert sql == '"users"."permissions" && ARRAY[]::VARCHAR[]'


class TestAnyColumnContainsAll:
    def test_or(self):
        sql, params = where_sql(User.any_column_contains_all(["permissions", "roles"], "or", ["manage_users"]))
        assert sql == '("users"."permissions" @> ARRAY[?]::VARCHAR[] OR "users"."roles" @> ARRAY[?]::TEXT[])'
        assert params == ["manage_users", "manage_users"]

    def test_and(self):
        sql, params = where_sql(User.any_column_contains_all(["permissions", "roles"], "and", ["a", "b"]))
        assert sql == '("users"."permissions" @> ARRAY[?, ?]::VARCHAR[] AND "users"."roles" @> ARRAY[?, ?]::TEXT[])'
        assert params == ["a", "b", "a", "b"]

    def test_join_type_is_case_insensitive(self):
        assert where_sql(User.any_column_contains_all(["permissions", "roles"], "OR", ["x"])) == \
            where_sql(User.any_column_contains_all(["permissions", "roles"], "or", ["x"]))

    def test_single_column_string_is_rejected(self):
        with pytest.raises(InvalidArgument, match="use contains_all"):
            User.any_column_contains_all("permissions", "or", ["x"])

    def test_duplicate_columns_are_collapsed(self):
        sql, params = where_sql(User.any_column_contains_all(["permissions", User.permissions], "or", ["x"]))
        assert sql == '("users"."permissions" @> ARRAY[?]::VARCHAR[])'
        assert params == ["x"]

    @pytest.mark.parametrize("columns,join_type", [([], "or"), (["permissions"], "xor")])
    def test_invalid_arguments(self, columns, join_type):
        with pytest.raises(InvalidArgument):
            User.any_column_contains_all(columns, join_type, ["x"])


class TestChaining:
    def test_combines_with_other_conditions(self):
        relation = User.where("users.name = ?", "ann").contains_all("permissions", ["admin"])
        sql, params = where_sql(relation)
        assert sql == '(users.name = ?) AND ("users"."permissions" @> ARRAY[?]::VARCHAR[])'
        assert params == ["ann", "admin"]

    def test_or_group_stays_grouped_when_anded(self):
        relation = User.contains_any("roles", ["staff"]).any_column_contains_all(["permissions", "roles"], "or", ["x"])
        sql, _ = where_sql(relation)
        assert sql == (
            '("users"."roles" && ARRAY[?]::TEXT[]) AND '
            '(("users"."permissions" @> ARRAY[?]::VARCHAR[] OR "users"."roles" @> ARRAY[?]::TEXT[]))'
        )

    def test_builders_are_immutable(self):
        base = User.where(name="ann")
        narrowed = base.contains_all("permissions", ["admin"])
        assert len(base.conditions) == 1
        assert len(narrowed.conditions) == 2

    def test_to_sql_inlines_values_and_is_repeatable(self):
        relation = User.contains_all("permissions", ["admin"]).order("name").limit(5)
        first = relation.to_sql()
        assert "ARRAY['admin']::VARCHAR[]" in first
        assert "ORDER BY users.name" in first
        assert "LIMIT 5" in first
        assert relation.to_sql() == first

    def test_generated_sql_is_logged(self, scope_logs):
        User.contains_any("permissions", ["admin"])
        assert any(
            record.name == "pgscope.scopes.array" and "&& ARRAY[?]::VARCHAR[]" in record.getMessage()
            for record in scope_logs.records
        )
