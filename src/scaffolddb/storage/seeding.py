"""Seeding of declared rows into empty tables."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import text

from scaffolddb.core.types import EntityMeta, SeedResult
from scaffolddb.data.query import ColumnGuard, insert_statement
from scaffolddb.data.rows import insert_values, utc_now

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class Seeder:
    """Inserts schema seed rows once per table.

    A table that already holds any row is skipped as a whole; partially
    seeded tables are not topped up.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def seed(self, entities: list[EntityMeta]) -> SeedResult:
        """Seed every entity that declares rows and whose table is empty.

        Args:
            entities: Compiled (and already migrated) entity metadata

        Returns:
            SeedResult with the number of inserted rows
        """
        result = SeedResult()

        for entity in entities:
            if not entity.seed:
                continue

            guard = ColumnGuard(entity, self._engine.dialect)
            with self._engine.connect() as conn:
                count = conn.execute(text(f"SELECT COUNT(*) FROM {guard.table}")).scalar() or 0
            if count > 0:
                logger.info(f"Skipping seed for {entity.table_name}: table has {count} row(s)")
                continue

            now = utc_now()
            with self._engine.begin() as conn:
                for row in entity.seed:
                    sql, binds = insert_statement(insert_values(entity, row, now), guard)
                    conn.execute(text(sql), binds)

            logger.info(f"Seeded {len(entity.seed)} row(s) into {entity.table_name}")
            result.seeded += len(entity.seed)

        return result


def seed(engine: Engine, entities: list[EntityMeta]) -> SeedResult:
    """Insert declared seed rows into still-empty tables. Safe to call on every startup."""
    return Seeder(engine).seed(entities)
