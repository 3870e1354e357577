"""scaffolddb - Schema-driven data layer over SQLite.

A declarative YAML schema is compiled into entity tables that are created and
extended on every startup, seeded once, and served through a uniform CRUD
engine with filtering, sorting, pagination, relation loading and validation.

Example:
    from scaffolddb import CrudRequest, ScaffoldDB

    db = ScaffoldDB.from_file("scaffold.yml", url="sqlite:///./scaffold.db")

    # Operate on a resource directly
    items = db.resource("items")
    page = items.list({"sort": "-name", "per_page": 10, "with": "category"})
    created = items.create({"name": "Widget", "category_id": 1})

    # Or go through the transport-neutral boundary
    response = db.handle(CrudRequest(operation="get", entity="items", id=1))
    print(response.status, response.body)
"""

from scaffolddb.core.engine import ScaffoldDB
from scaffolddb.core.types import (
    CrudOperation,
    CrudRequest,
    CrudResponse,
    EntityDef,
    EntityMeta,
    ListMeta,
    MigrationResult,
    PropertyDef,
    PropertyType,
    RelationDescriptor,
    RouteInfo,
    SchemaConfig,
    SeedResult,
)
from scaffolddb.data.crud import CrudEngine, EntityResource
from scaffolddb.exceptions import (
    BadRequestError,
    ConnectionError,
    MigrationError,
    NotFoundError,
    ScaffoldDBError,
    SchemaError,
    ValidationError,
)
from scaffolddb.schema.parser import derive_entity_meta, load_schema, parse_schema
from scaffolddb.storage.migration import migrate
from scaffolddb.storage.seeding import seed

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "ScaffoldDB",
    "CrudEngine",
    "EntityResource",
    # Schema
    "parse_schema",
    "load_schema",
    "derive_entity_meta",
    "migrate",
    "seed",
    # Types
    "PropertyType",
    "PropertyDef",
    "EntityDef",
    "SchemaConfig",
    "RelationDescriptor",
    "EntityMeta",
    "CrudOperation",
    "CrudRequest",
    "CrudResponse",
    "RouteInfo",
    "ListMeta",
    "MigrationResult",
    "SeedResult",
    # Exceptions
    "ScaffoldDBError",
    "ConnectionError",
    "SchemaError",
    "MigrationError",
    "NotFoundError",
    "BadRequestError",
    "ValidationError",
]
