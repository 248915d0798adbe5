import datetime, decimal

import pytest

from pgscope.errors import InvalidArgument
from pgscope.quoting import (
    array_cast, quote_identifier, quote_table_name, quoted_column, render_literal, resolve_column,
)
from .setup.models import Group, User


class TestIdentifiers:
    def test_quote_identifier_always_quotes(self):
        assert quote_identifier("users") == '"users"'

    def test_quote_identifier_doubles_embedded_quotes(self):
        assert quote_identifier('we"ird') == '"we""ird"'

    def test_quote_table_name_with_schema(self):
        assert quote_table_name("public.users") == '"public"."users"'

    @pytest.mark.parametrize("column", ["permissions", User.permissions, User.__table__.c.permissions])
    def test_quoted_column_accepts_names_attributes_and_columns(self, column):
        assert quoted_column(User, column) == '"users"."permissions"'

    def test_unknown_column(self):
        with pytest.raises(InvalidArgument, match="Unknown column 'nope'"):
            resolve_column(User, "nope")

    def test_relationship_attribute_is_not_a_column(self):
        with pytest.raises(InvalidArgument):
            resolve_column(User, User.groups)

    def test_unmapped_class(self):
        with pytest.raises(InvalidArgument):
            quoted_column(object, "id")


class TestArrayCast:
    @pytest.mark.parametrize("model,column,expected", [
        (User,  "permissions",   "::VARCHAR[]"),
        (User,  "roles",         "::TEXT[]"),
        (User,  "lucky_numbers", "::INTEGER[]"),
        (Group, "tags",          "::VARCHAR(50)[]"),
    ])
    def test_cast_follows_the_element_type(self, model, column, expected):
        assert array_cast(model, column) == expected

    def test_non_array_column(self):
        with pytest.raises(InvalidArgument, match="not an array column"):
            array_cast(User, "score")


class TestRenderLiteral:
    @pytest.mark.parametrize("value,expected", [
        (5,                          "5"),
        (-2.5,                       "-2.5"),
        (decimal.Decimal("1.10"),    "1.10"),
        ("admin",                    "'admin'"),
        ("O'Brien",                  "'O''Brien'"),
        ("why?",                     "'why??'"),
        (datetime.date(2024, 1, 31), "'2024-01-31'"),
    ])
    def test_renders(self, value, expected):
        assert render_literal(value) == expected

    @pytest.mark.parametrize("value", [True, None, float("nan"), float("inf"), decimal.Decimal("NaN"), object(), [1]])
    def test_rejects(self, value):
        with pytest.raises(InvalidArgument):
            render_literal(value)
