"""Tests for relation inference and the relation resolver."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from rowspine.core.errors import TablesNotRelatedError
from rowspine.relations import (
    Relation,
    RelationKind,
    foreign_key,
    infer_relation,
    join_table_name,
)


@dataclass
class Schema:
    name: str
    fields: dict = field(default_factory=dict)


def schema(name: str, *field_names: str) -> Schema:
    return Schema(name, {n: None for n in ("id", *field_names)})


POST = schema("post", "title", "category_id")
CATEGORY = schema("category", "name")
TAG = schema("tag", "name")
POST_TAG = schema("post_tag", "post_id", "tag_id")
SETTING = schema("setting", "key")


class TestNaming:
    def test_foreign_key(self) -> None:
        assert foreign_key("post") == "post_id"

    @pytest.mark.parametrize(("a", "b"), [("post", "tag"), ("tag", "post")])
    def test_join_table_name_is_sorted(self, a: str, b: str) -> None:
        assert join_table_name(a, b) == "post_tag"


class TestInferRelation:
    def test_has_one(self) -> None:
        assert infer_relation(POST, CATEGORY) == Relation(
            RelationKind.HAS_ONE, "post", "category", field="category_id"
        )

    def test_has_many(self) -> None:
        assert infer_relation(CATEGORY, POST) == Relation(
            RelationKind.HAS_MANY, "category", "post", field="category_id"
        )

    def test_many_to_many(self) -> None:
        relation = infer_relation(POST, TAG, POST_TAG)
        assert relation == Relation(
            RelationKind.HAS_MANY_TO_MANY,
            "post",
            "tag",
            join_table="post_tag",
            join_field="post_id",
            related_join_field="tag_id",
        )

    def test_many_to_many_needs_both_fields(self) -> None:
        assert infer_relation(POST, TAG, schema("post_tag", "post_id")) is None

    def test_unrelated(self) -> None:
        assert infer_relation(POST, SETTING) is None

    def test_has_one_wins_over_has_many(self) -> None:
        a = schema("a", "b_id")
        b = schema("b", "a_id")
        assert infer_relation(a, b).kind is RelationKind.HAS_ONE
        assert infer_relation(b, a).kind is RelationKind.HAS_ONE

    def test_direct_field_wins_over_join_table(self) -> None:
        post = schema("post", "tag_id")
        assert infer_relation(post, TAG, POST_TAG).kind is RelationKind.HAS_ONE

    def test_self_reference(self) -> None:
        category = schema("category", "category_id")
        assert infer_relation(category, category).kind is RelationKind.HAS_ONE


class TestRelationResolver:
    def test_resolves_from_database(self, db) -> None:
        relations = db.relations
        assert relations.resolve(db["post"], db["category"]).kind is RelationKind.HAS_ONE
        assert relations.resolve(db["category"], db["post"]).kind is RelationKind.HAS_MANY
        assert relations.resolve(db["post"], db["tag"]).join_table == "post_tag"
        assert relations.resolve(db["tag"], db["post"]).join_field == "tag_id"
        assert relations.resolve(db["post"], db["setting"]) is None

    def test_pair_is_cached(self, db) -> None:
        first = db.relations.resolve(db["post"], db["tag"])
        db.connection.reset()
        assert db.relations.resolve(db["post"], db["tag"]) is first
        assert db.connection.statements == []

    def test_resolve_or_raise(self, db) -> None:
        with pytest.raises(TablesNotRelatedError) as info:
            db.relations.resolve_or_raise(db["post"], db["setting"])
        assert info.value.context.related_table == "setting"
