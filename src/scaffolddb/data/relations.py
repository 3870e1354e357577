"""Batched eager loading of relations (``with=a,b``)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import bindparam, text

from scaffolddb.core.types import EntityMeta
from scaffolddb.data.query import ColumnGuard
from scaffolddb.data.rows import deserialize_row

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class RelationLoader:
    """Attaches related records to a page of rows.

    Each requested relation costs one ``IN (...)`` query no matter how many
    rows are on the page.
    """

    def __init__(self, engine: Engine, entities: dict[str, EntityMeta]) -> None:
        """Initialize the loader.

        Args:
            engine: SQLAlchemy engine
            entities: All entity metadata keyed by entity name
        """
        self._engine = engine
        self._entities = entities

    def load(self, meta: EntityMeta, rows: list[dict[str, Any]], names: list[str]) -> None:
        """Attach related records in place under each relation's short name.

        Unknown names are ignored. Rows whose foreign key is NULL or points at
        a missing record get None.
        """
        if not rows:
            return

        for name in names:
            relation = next((r for r in meta.relations if r.short_name == name), None)
            if relation is None:
                continue
            target = self._entities.get(relation.target_entity)
            if target is None:
                continue

            fk_ids = list(
                dict.fromkeys(
                    row[relation.property]
                    for row in rows
                    if row.get(relation.property) is not None
                )
            )
            related = self._fetch(target, fk_ids) if fk_ids else {}

            for row in rows:
                fk_id = row.get(relation.property)
                row[relation.short_name] = related.get(fk_id) if fk_id is not None else None

    def _fetch(self, target: EntityMeta, ids: list[Any]) -> dict[Any, dict[str, Any]]:
        guard = ColumnGuard(target, self._engine.dialect)
        statement = text(
            f"SELECT * FROM {guard.table} WHERE {guard.column('id')} IN :ids"
        ).bindparams(bindparam("ids", expanding=True))

        logger.debug(f"Eager loading {len(ids)} {target.entity_name} record(s)")
        with self._engine.connect() as conn:
            result = conn.execute(statement, {"ids": ids}).mappings().all()
        return {row["id"]: deserialize_row(target, row) for row in result}
