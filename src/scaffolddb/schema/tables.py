"""SQLAlchemy table definitions compiled from ``EntityMeta``."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Column, Index, Integer, MetaData, Table, Text, text
from sqlalchemy.sql.elements import TextClause

from scaffolddb.core.kinds import coerce_value, column_type
from scaffolddb.core.types import EntityMeta, PropertyDef, PropertyType


def server_default(prop: PropertyDef) -> str | TextClause | None:
    """Inline DEFAULT for a property column.

    Numbers (and booleans, stored as 1/0) are emitted as literals; anything
    else becomes a quoted string literal, escaped by SQLAlchemy.
    """
    if not prop.has_default or prop.default is None:
        return None

    stored = coerce_value(prop, prop.default)
    if isinstance(stored, bool):
        stored = int(stored)
    if isinstance(stored, int | float):
        return text(str(stored))
    return str(stored)


def unique_index_name(meta: EntityMeta) -> str:
    return f"idx_{meta.table_name}_unique"


def relation_columns(meta: EntityMeta) -> list[str]:
    """Every relation-typed column, resolvable or not."""
    return [p.name for p in meta.properties if p.type == PropertyType.RELATION]


def property_column(prop: PropertyDef) -> Column[Any]:
    return Column(prop.name, column_type(prop), server_default=server_default(prop))


def build_table(meta: EntityMeta, metadata: MetaData | None = None) -> Table:
    """Build the table for an entity.

    Columns: auto-increment ``id``, one column per property, and
    ``created_at``/``updated_at`` for non-pivot entities. Pivot entities get a
    unique index across their relation columns.
    """
    columns: list[Column[Any]] = [Column("id", Integer, primary_key=True, autoincrement=True)]
    columns.extend(property_column(prop) for prop in meta.properties)
    columns.extend(Column(name, Text) for name in meta.timestamp_columns)

    indexes: list[Index] = []
    if meta.pivot:
        rel_columns = relation_columns(meta)
        if rel_columns:
            indexes.append(Index(unique_index_name(meta), *rel_columns, unique=True))

    return Table(
        meta.table_name,
        metadata if metadata is not None else MetaData(),
        *columns,
        *indexes,
        sqlite_autoincrement=True,
    )
