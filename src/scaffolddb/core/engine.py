"""Main ScaffoldDB facade."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from scaffolddb.core.connection import DatabaseConnection
from scaffolddb.core.types import (
    CrudRequest,
    CrudResponse,
    EntityMeta,
    MigrationResult,
    RouteInfo,
    SchemaConfig,
    SeedResult,
)
from scaffolddb.data.crud import CrudEngine, EntityResource
from scaffolddb.exceptions import NotFoundError
from scaffolddb.schema.parser import derive_entity_meta, load_schema, parse_schema
from scaffolddb.storage.migration import migrate
from scaffolddb.storage.seeding import seed

logger = logging.getLogger(__name__)

DEFAULT_URL = "sqlite:///./scaffold.db"


class ScaffoldDB:
    """Schema-driven data layer over one SQLite datastore.

    Construction runs the whole startup sequence: parse the schema, open the
    datastore, migrate the tables, seed empty tables and compile one CRUD
    resource per entity. Schema, migration and connection failures propagate
    and leave no open connection behind.

    Example:
        db = ScaffoldDB('''
        entities:
          Category:
            properties: [name]
            seed:
              - { name: Alpha }
        ''', url="sqlite:///:memory:")

        db.resource("categories").list({"sort": "-name"})
        db.handle(CrudRequest(operation="create", entity="categories",
                              body={"name": "Beta"}))
    """

    def __init__(
        self,
        schema: str | SchemaConfig,
        url: str = DEFAULT_URL,
        echo: bool = False,
        base_path: str = "/api",
    ) -> None:
        """Initialize ScaffoldDB.

        Args:
            schema: Schema YAML text or an already parsed ``SchemaConfig``
            url: Database URL or SQLite file path
            echo: Whether to echo SQL statements (for debugging)
            base_path: Path prefix of the route table

        Raises:
            SchemaError: If the schema cannot be parsed
            ConnectionError: If the datastore cannot be opened
            MigrationError: If a DDL statement fails
        """
        self._config = schema if isinstance(schema, SchemaConfig) else parse_schema(schema)
        self._entities = derive_entity_meta(self._config)
        self._connection = DatabaseConnection(url, echo=echo)

        try:
            engine = self._connection.engine
            self._migration_result = migrate(engine, self._entities)
            self._seed_result = seed(engine, self._entities)
            self._crud = CrudEngine(engine, self._entities, base_path=base_path)
        except Exception:
            self._connection.close()
            raise

        logger.info(
            f"ScaffoldDB ready: {len(self._entities)} entities on {self._connection.url}"
        )

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        url: str = DEFAULT_URL,
        echo: bool = False,
        base_path: str = "/api",
    ) -> ScaffoldDB:
        """Build from a schema file.

        Raises:
            SchemaError: If the file cannot be read or parsed
        """
        return cls(load_schema(path), url=url, echo=echo, base_path=base_path)

    @property
    def schema_name(self) -> str | None:
        return self._config.name

    @property
    def entities(self) -> list[EntityMeta]:
        """Compiled entity metadata in declaration order."""
        return list(self._entities)

    @property
    def crud(self) -> CrudEngine:
        return self._crud

    @property
    def connection(self) -> DatabaseConnection:
        return self._connection

    @property
    def migration_result(self) -> MigrationResult:
        return self._migration_result

    @property
    def seed_result(self) -> SeedResult:
        return self._seed_result

    def resource(self, name: str) -> EntityResource:
        """Get the CRUD resource of an entity by route path or entity name.

        Raises:
            NotFoundError: If no entity matches
        """
        resources = self._crud.resources
        if name in resources:
            return resources[name]
        for meta in self._entities:
            if meta.entity_name == name:
                return resources[meta.route_path]
        raise NotFoundError(
            f"Unknown entity '{name}'",
            {"entity": name, "available_entities": [m.entity_name for m in self._entities]},
        )

    def routes(self) -> list[RouteInfo]:
        return self._crud.routes()

    def handle(self, request: CrudRequest) -> CrudResponse:
        """Run one CRUD request and return its response envelope."""
        return self._crud.handle(request)

    def describe(self) -> dict[str, Any]:
        """Describe the compiled entities.

        Returns:
            JSON-serializable dict with the schema name and one entry per entity
        """
        return {
            "name": self._config.name,
            "entities": [
                {
                    "entity": meta.entity_name,
                    "table": meta.table_name,
                    "route": meta.route_path,
                    "pivot": meta.pivot,
                    "properties": [prop.model_dump(mode="json") for prop in meta.properties],
                    "relations": [
                        {**rel.model_dump(), "short_name": rel.short_name}
                        for rel in meta.relations
                    ],
                }
                for meta in self._entities
            ],
        }

    def close(self) -> None:
        """Close the database connection."""
        self._connection.close()

    def __enter__(self) -> ScaffoldDB:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
