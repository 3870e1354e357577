"""Shared test fixtures for scaffolddb."""

from collections.abc import Callable, Generator
from typing import Any

import pytest
from sqlalchemy import Engine, event

from scaffolddb import EntityMeta, ScaffoldDB, derive_entity_meta, parse_schema
from scaffolddb.data.crud import EntityResource

SAMPLE_SCHEMA = """
name: Test
entities:
  Category:
    properties:
      - name
      - { name: sort_order, type: integer, default: 0 }
    seed:
      - { name: "Alpha", sort_order: 0 }
      - { name: "Beta", sort_order: 1 }
      - { name: "Gamma", sort_order: 2 }

  Item:
    properties:
      - { name: category_id, type: relation, entity: Category }
      - name
      - { name: item_type, type: enum, values: [access, consumable, returnable] }
      - { name: quantity, type: integer, nullable: true }
      - { name: is_active, type: boolean, default: true }
      - { name: price, type: number, nullable: true }
      - { name: email, type: email, nullable: true }
      - { name: config, type: json, nullable: true }
      - { name: uuid, type: uuid }

  ItemTag:
    pivot: true
    properties:
      - { name: item_id, type: relation, entity: Item }
      - { name: tag_id, type: integer }
"""

MEMORY_URL = "sqlite:///:memory:"


@pytest.fixture
def sample_schema() -> str:
    return SAMPLE_SCHEMA


@pytest.fixture
def entities() -> list[EntityMeta]:
    """Compiled metadata of the sample schema."""
    return derive_entity_meta(parse_schema(SAMPLE_SCHEMA))


@pytest.fixture
def memory_db() -> Generator[ScaffoldDB, None, None]:
    """Create a migrated and seeded ScaffoldDB instance with SQLite in-memory."""
    database = ScaffoldDB(SAMPLE_SCHEMA, url=MEMORY_URL)
    yield database
    database.close()


@pytest.fixture
def engine(memory_db: ScaffoldDB) -> Engine:
    return memory_db.connection.engine


@pytest.fixture
def items(memory_db: ScaffoldDB) -> EntityResource:
    return memory_db.resource("items")


@pytest.fixture
def categories(memory_db: ScaffoldDB) -> EntityResource:
    return memory_db.resource("categorys")


@pytest.fixture
def make_item(items: EntityResource) -> Callable[..., dict[str, Any]]:
    """Factory creating a valid Item; keyword arguments override the defaults."""

    def _make(**overrides: Any) -> dict[str, Any]:
        body = {"name": "Widget", "category_id": 1, "item_type": "access", **overrides}
        return items.create(body)["data"]

    return _make


@pytest.fixture
def statements(engine: Engine) -> Generator[list[str], None, None]:
    """SQL statements executed on the engine while the test runs."""
    executed: list[str] = []

    def _record(conn: Any, cursor: Any, statement: str, *args: Any) -> None:
        executed.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    yield executed
    event.remove(engine, "before_cursor_execute", _record)
