"""Schema migration for entity tables.

Brings the physical tables in line with the declared entities on every
startup. Tables are created when missing and extended with missing columns
otherwise. Columns are never dropped, renamed or retyped, and tables are never
dropped, so running the migration again is a no-op.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import Column, MetaData, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateColumn

from scaffolddb.core.types import EntityMeta, MigrationResult
from scaffolddb.exceptions import MigrationError
from scaffolddb.schema.tables import build_table

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def existing_tables(engine: Engine) -> set[str]:
    """Names of the tables currently in the datastore."""
    return set(inspect(engine).get_table_names())


def existing_columns(engine: Engine, table_name: str) -> set[str]:
    """Names of the columns currently on a table."""
    return {col["name"] for col in inspect(engine).get_columns(table_name)}


class SchemaMigrator:
    """Creates and extends entity tables."""

    def __init__(self, engine: Engine) -> None:
        """Initialize the migrator.

        Args:
            engine: SQLAlchemy engine
        """
        self._engine = engine
        self._quote = engine.dialect.identifier_preparer.quote

    def migrate(self, entities: list[EntityMeta]) -> MigrationResult:
        """Create missing tables and add missing columns.

        Args:
            entities: Compiled entity metadata

        Returns:
            MigrationResult listing created and altered tables

        Raises:
            MigrationError: If any DDL statement fails
        """
        tables = existing_tables(self._engine)
        result = MigrationResult()

        for entity in entities:
            if entity.table_name in tables:
                if self._add_missing_columns(entity):
                    result.altered.append(entity.table_name)
            else:
                self._create_table(entity)
                result.created.append(entity.table_name)

        logger.info(
            f"Migration complete: {len(result.created)} created, {len(result.altered)} altered"
        )
        return result

    def _create_table(self, entity: EntityMeta) -> None:
        table = build_table(entity, MetaData())
        logger.info(f"Creating table {entity.table_name}")
        try:
            with self._engine.begin() as conn:
                table.create(conn)
        except SQLAlchemyError as e:
            logger.error(f"Creating table {entity.table_name} failed: {e}")
            raise MigrationError(entity.table_name, str(e)) from e

    def _add_missing_columns(self, entity: EntityMeta) -> list[str]:
        present = existing_columns(self._engine, entity.table_name)
        table = build_table(entity, MetaData())

        missing: list[Column[object]] = [
            column
            for column in table.columns
            if column.name not in present and not column.primary_key
        ]
        if not missing:
            return []

        table_sql = self._quote(entity.table_name)
        try:
            with self._engine.begin() as conn:
                for column in missing:
                    column_sql = CreateColumn(column).compile(dialect=self._engine.dialect)
                    logger.info(f"Adding column {entity.table_name}.{column.name}")
                    conn.exec_driver_sql(f"ALTER TABLE {table_sql} ADD COLUMN {column_sql}")
        except SQLAlchemyError as e:
            logger.error(f"Altering table {entity.table_name} failed: {e}")
            raise MigrationError(entity.table_name, str(e)) from e

        return [column.name for column in missing]


def migrate(engine: Engine, entities: list[EntityMeta]) -> MigrationResult:
    """Migrate the datastore to the declared entities. Safe to call on every startup."""
    return SchemaMigrator(engine).migrate(entities)
