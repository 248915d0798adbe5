import pytest

from pydantic import ValidationError

from pgscope.associations import (
    AssociationDescriptor, AssociationKind, AssociationScopeBuilder, HasAndBelongsToManyScopeBuilder,
    build_association_scope,
)
from pgscope.errors import ConfigurationError, InvalidArgument
from .setup.models import Group, Post, User
from .setup.sql import compile_sql, where_sql


class TestDescriptor:
    def test_has_and_belongs_to_many(self):
        descriptor = AssociationDescriptor.from_relationship(User, "groups")
        assert descriptor.kind is AssociationKind.HAS_AND_BELONGS_TO_MANY
        assert descriptor.owner is User
        assert descriptor.target is Group
        assert descriptor.join_table == "memberships"
        assert descriptor.foreign_key == "user_id"
        assert descriptor.association_foreign_key == "group_id"
        assert descriptor.primary_key == "id"
        assert descriptor.association_primary_key == "id"
        assert descriptor.is_collection

    def test_declared_conditions_and_order(self):
        descriptor = AssociationDescriptor.from_relationship(User, "groups")
        assert descriptor.conditions_fragment.sql == '"groups"."archived" = ?'
        assert descriptor.conditions_fragment.params == (False,)
        assert descriptor.order_clauses == ('"groups"."name" ASC',)

    def test_has_many_uses_relationship_order_by(self):
        descriptor = AssociationDescriptor.from_relationship(User, "posts")
        assert descriptor.kind is AssociationKind.HAS_MANY
        assert descriptor.foreign_key == "user_id"
        assert descriptor.primary_key == "id"
        assert descriptor.conditions_fragment is None
        assert len(descriptor.order_clauses) == 1

    def test_belongs_to_from_attribute(self):
        descriptor = AssociationDescriptor.from_attribute(Post.author)
        assert descriptor.kind is AssociationKind.BELONGS_TO
        assert descriptor.owner is Post
        assert descriptor.foreign_key == "user_id"
        assert descriptor.association_primary_key == "id"
        assert not descriptor.is_collection

    def test_unknown_relationship(self):
        with pytest.raises(ConfigurationError, match="no relationship named 'friends'"):
            AssociationDescriptor.from_relationship(User, "friends")

    def test_unmapped_owner(self):
        with pytest.raises(ConfigurationError, match="not a mapped class"):
            AssociationDescriptor.from_relationship(object, "groups")

    def test_column_attribute_is_not_an_association(self):
        with pytest.raises(ConfigurationError, match="not a relationship"):
            AssociationDescriptor.from_attribute(User.name)

    @pytest.mark.parametrize("conditions", [42, (1, 2), ["x = ?"]])
    def test_unusable_conditions(self, conditions):
        descriptor = AssociationDescriptor(name="groups", kind=AssociationKind.HAS_MANY, conditions=conditions)
        with pytest.raises((ConfigurationError, InvalidArgument)):
            descriptor.conditions_fragment

    def test_descriptors_are_frozen(self):
        descriptor = AssociationDescriptor.from_relationship(User, "groups")
        with pytest.raises(ValidationError):
            descriptor.join_table = "other"


class TestHasAndBelongsToMany:
    def test_correlated_to_the_owner_table(self):
        sql, params = compile_sql(User.association_scope("groups"))
        assert sql.startswith("SELECT groups.id, groups.name, groups.archived, groups.tags FROM groups")
        assert 'FROM groups JOIN memberships ON "memberships"."group_id" = "groups"."id"' in sql
        assert sql.endswith(
            'WHERE ("users"."id" = "memberships"."user_id") AND ("groups"."archived" = ?) '
            'ORDER BY "groups"."name" ASC'
        )
        assert params == [False]

    def test_bound_to_an_instance(self):
        relation = User(id=5).scope_for("groups")
        sql, params = where_sql(relation)
        assert sql == '("memberships"."user_id" = ?) AND ("groups"."archived" = ?)'
        assert params == [5, False]

    def test_instance_without_key(self):
        with pytest.raises(InvalidArgument, match="User.id is not set"):
            User().scope_for("groups")

    def test_without_declared_conditions(self):
        sql, params = compile_sql(build_association_scope(User.bookmarked_groups, User))
        assert 'JOIN bookmarks ON "bookmarks"."group_id" = "groups"."id"' in sql
        assert sql.endswith('WHERE "users"."id" = "bookmarks"."user_id"')
        assert params == []

    def test_missing_join_table(self):
        descriptor = AssociationDescriptor(
            name="groups", kind=AssociationKind.HAS_AND_BELONGS_TO_MANY, owner=User, target=Group,
            foreign_key="user_id", association_foreign_key="group_id", primary_key="id", association_primary_key="id",
        )
        with pytest.raises(ConfigurationError, match="missing join_table"):
            build_association_scope(descriptor)

    def test_hand_written_descriptor(self):
        descriptor = AssociationDescriptor(
            name="groups", kind=AssociationKind.HAS_AND_BELONGS_TO_MANY, owner=User, target=Group,
            join_table="public.memberships", foreign_key="user_id", association_foreign_key="group_id",
            primary_key="id", association_primary_key="id", conditions='"groups"."name" <> \'\'',
        )
        builder = AssociationScopeBuilder.for_association(descriptor)
        assert isinstance(builder, HasAndBelongsToManyScopeBuilder)
        sql, _ = compile_sql(builder.scope())
        assert 'JOIN public.memberships ON "public"."memberships"."group_id" = "groups"."id"' in sql
        assert sql.endswith(
            'WHERE ("users"."id" = "public"."memberships"."user_id") AND ("groups"."name" <> \'\')'
        )

    def test_scope_is_a_chainable_relation(self):
        relation = User.association_scope("groups").contains_any("tags", ["ops"])
        sql, params = where_sql(relation)
        assert sql.endswith('AND ("groups"."tags" && ARRAY[?]::VARCHAR(50)[])')
        assert params == [False, "ops"]

    def test_building_twice_gives_the_same_sql(self):
        assert compile_sql(User.association_scope("groups")) == compile_sql(User.association_scope("groups"))


class TestHasMany:
    def test_correlated(self):
        sql, _ = compile_sql(User.association_scope("posts"))
        assert 'FROM posts WHERE "users"."id" = "posts"."user_id"' in sql
        assert sql.endswith("ORDER BY posts.id")

    def test_bound_to_an_instance(self):
        sql, params = where_sql(User(id=3).scope_for("posts"))
        assert sql == '"posts"."user_id" = ?'
        assert params == [3]


class TestBelongsTo:
    def test_correlated(self):
        sql, _ = where_sql(Post.association_scope("author"))
        assert sql == '"posts"."user_id" = "users"."id"'

    def test_bound_to_an_instance(self):
        sql, params = where_sql(build_association_scope(Post.author, Post(id=1, user_id=5)))
        assert sql == '"users"."id" = ?'
        assert params == [5]


class TestLogging:
    def test_habtm_scope_is_logged(self, scope_logs):
        User.association_scope("groups")
        assert "habtm scope User.groups" in scope_logs.text
