"""Core components for scaffolddb."""

from scaffolddb.core.connection import DatabaseConnection
from scaffolddb.core.kinds import KINDS, KindHandler
from scaffolddb.core.types import (
    EntityMeta,
    PropertyDef,
    PropertyType,
    RelationDescriptor,
    SchemaConfig,
)

__all__ = [
    "DatabaseConnection",
    "KINDS",
    "KindHandler",
    "PropertyType",
    "PropertyDef",
    "SchemaConfig",
    "RelationDescriptor",
    "EntityMeta",
]
