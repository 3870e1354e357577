"""Core types for scaffolddb.

Schema input (``PropertyDef``, ``EntityDef``, ``SchemaConfig``), the compiled
``EntityMeta`` used by migration and CRUD, and the request/response envelopes
of the CRUD boundary. All types are JSON-serializable.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class PropertyType(StrEnum):
    """Supported property types."""

    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"
    UUID = "uuid"
    JSON = "json"
    EMAIL = "email"
    RELATION = "relation"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid property type values."""
        return [t.value for t in cls]


class CrudOperation(StrEnum):
    """The six operations every entity resource supports."""

    LIST = "list"
    GET = "get"
    CREATE = "create"
    REPLACE = "replace"
    PATCH = "patch"
    DELETE = "delete"


class PropertyDef(BaseModel):
    """One entity attribute as declared in the schema."""

    name: str = Field(..., description="Column name, unique within the entity")
    type: PropertyType = Field(default=PropertyType.STRING, description="Property type")
    nullable: bool = Field(default=False, description="Whether NULL is an accepted value")
    default: Any = Field(default=None, description="Default value (see has_default)")
    values: list[Any] | None = Field(default=None, description="Allowed values for enum")
    entity: str | None = Field(default=None, description="Target entity for relation")

    model_config = {"frozen": True}

    @field_validator("type", mode="before")
    @classmethod
    def _unknown_type_is_string(cls, value: Any) -> Any:
        if isinstance(value, PropertyType):
            return value
        if isinstance(value, str) and value in PropertyType.values():
            return value
        return PropertyType.STRING

    @property
    def has_default(self) -> bool:
        """Whether the schema declared a default (an explicit null counts)."""
        return "default" in self.model_fields_set


class EntityDef(BaseModel):
    """An entity as declared in the schema."""

    properties: list[PropertyDef] = Field(default_factory=list)
    pivot: bool = False
    seed: list[dict[str, Any]] | None = None


class SchemaConfig(BaseModel):
    """A parsed schema document."""

    name: str | None = None
    entities: dict[str, EntityDef] = Field(default_factory=dict)


class RelationDescriptor(BaseModel):
    """A resolved relation property."""

    property: str
    target_entity: str
    target_table: str

    model_config = {"frozen": True}

    @property
    def short_name(self) -> str:
        """Name used by ``with=`` and as the key of the loaded record."""
        return self.property.removesuffix("_id")


class EntityMeta(BaseModel):
    """Compiled, storage-ready description of one entity. Built once at startup."""

    entity_name: str
    table_name: str
    route_path: str
    properties: tuple[PropertyDef, ...] = ()
    pivot: bool = False
    seed: tuple[dict[str, Any], ...] | None = None
    relations: tuple[RelationDescriptor, ...] = ()

    model_config = {"frozen": True}

    @property
    def timestamp_columns(self) -> tuple[str, ...]:
        return () if self.pivot else ("created_at", "updated_at")

    @property
    def allowed_columns(self) -> frozenset[str]:
        """Column names permitted in dynamically built SQL."""
        return frozenset(
            ["id", *(p.name for p in self.properties), *self.timestamp_columns]
        )

    def get_property(self, name: str) -> PropertyDef | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def relation_for(self, property_name: str) -> RelationDescriptor | None:
        for relation in self.relations:
            if relation.property == property_name:
                return relation
        return None


class MigrationResult(BaseModel):
    """Tables touched by one migration run."""

    created: list[str] = Field(default_factory=list)
    altered: list[str] = Field(default_factory=list)


class SeedResult(BaseModel):
    """Rows inserted by one seeding run."""

    seeded: int = 0


class ListMeta(BaseModel):
    """Pagination block of a list response."""

    total: int
    page: int
    per_page: int
    last_page: int


class CrudRequest(BaseModel):
    """Transport-neutral description of one CRUD call."""

    operation: CrudOperation
    entity: str = Field(..., description="Route path of the entity, e.g. 'items'")
    id: int | str | None = None
    params: dict[str, Any] | list[tuple[str, Any]] = Field(default_factory=dict)
    body: Any = None


class CrudResponse(BaseModel):
    """Status code plus the JSON envelope returned to the caller."""

    status: int = 200
    body: dict[str, Any] | None = None


class RouteInfo(BaseModel):
    """One route a transport collaborator should bind."""

    method: str
    path: str
    operation: CrudOperation
    entity: str
