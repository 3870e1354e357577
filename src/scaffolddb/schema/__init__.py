"""Schema parsing and table definitions for scaffolddb."""

from scaffolddb.schema.parser import (
    derive_entity_meta,
    load_schema,
    normalize_property,
    parse_schema,
)
from scaffolddb.schema.tables import build_table

__all__ = [
    "parse_schema",
    "load_schema",
    "normalize_property",
    "derive_entity_meta",
    "build_table",
]
