"""Tests for seeding declared rows."""

import re

import pytest
from sqlalchemy import text

from scaffolddb.core.connection import DatabaseConnection
from scaffolddb.storage.migration import migrate
from scaffolddb.storage.seeding import seed


@pytest.fixture
def engine(entities):
    conn = DatabaseConnection("sqlite:///:memory:")
    migrate(conn.engine, entities)
    yield conn.engine
    conn.close()


def rows(engine, table):
    with engine.connect() as conn:
        return conn.execute(text(f"SELECT * FROM {table} ORDER BY id")).mappings().all()


def with_seed(entities, entity_name, seed_rows):
    return [
        meta.model_copy(update={"seed": tuple(seed_rows)})
        if meta.entity_name == entity_name
        else meta
        for meta in entities
    ]


class TestSeed:
    """Tests for seed."""

    def test_inserts_into_empty_tables(self, engine, entities):
        result = seed(engine, entities)
        assert result.seeded == 3

        categories = rows(engine, "categorys")
        assert [r["name"] for r in categories] == ["Alpha", "Beta", "Gamma"]
        assert [r["sort_order"] for r in categories] == [0, 1, 2]

    def test_sets_timestamps(self, engine, entities):
        seed(engine, entities)
        row = rows(engine, "categorys")[0]
        assert row["created_at"]
        assert row["created_at"] == row["updated_at"]

    def test_rerun_does_not_duplicate(self, engine, entities):
        seed(engine, entities)
        assert seed(engine, entities).seeded == 0
        assert len(rows(engine, "categorys")) == 3

    def test_skips_non_empty_table(self, engine, entities):
        with engine.begin() as conn:
            conn.execute(text("INSERT INTO categorys (name) VALUES ('Existing')"))

        assert seed(engine, entities).seeded == 0
        assert [r["name"] for r in rows(engine, "categorys")] == ["Existing"]

    def test_generates_uuid(self, engine, entities):
        metas = with_seed(entities, "Item", [{"name": "Test", "category_id": 1}])
        seed(engine, metas)
        item = rows(engine, "items")[0]
        assert re.match(r"^[0-9a-f]{8}-", item["uuid"])

    def test_coerces_values(self, engine, entities):
        metas = with_seed(
            entities,
            "Item",
            [{"name": "Test", "category_id": 1, "is_active": True, "config": {"a": [1, 2]}}],
        )
        seed(engine, metas)
        item = rows(engine, "items")[0]
        assert item["is_active"] == 1
        assert item["config"] == '{"a": [1, 2]}'

    def test_absent_properties_get_defaults(self, engine, entities):
        metas = with_seed(entities, "Item", [{"name": "Test"}])
        seed(engine, metas)
        item = rows(engine, "items")[0]
        assert item["is_active"] == 1
        assert item["quantity"] is None

    def test_pivot_rows_have_no_timestamps(self, engine, entities):
        metas = with_seed(entities, "ItemTag", [{"item_id": 1, "tag_id": 2}])
        assert seed(engine, metas).seeded == 4
        assert dict(rows(engine, "item_tags")[0]) == {"id": 1, "item_id": 1, "tag_id": 2}
