"""Schema parsing and entity metadata derivation.

Reads the declarative YAML schema into a ``SchemaConfig`` and compiles it
into the ``EntityMeta`` list that migration, seeding and CRUD consume.

Example schema:

    name: Inventory
    entities:
      Category:
        properties:
          - name
          - { name: sort_order, type: integer, default: 0 }
        seed:
          - { name: Alpha, sort_order: 0 }
      Item:
        properties:
          - { name: category_id, type: relation, entity: Category }
          - { name: config, type: json, nullable: true }
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from scaffolddb.core.types import (
    EntityDef,
    EntityMeta,
    PropertyDef,
    PropertyType,
    RelationDescriptor,
    SchemaConfig,
)
from scaffolddb.exceptions import SchemaError

logger = logging.getLogger(__name__)

_CASE_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_PROPERTY_KEYS = ("name", "type", "nullable", "default", "values", "entity")


def to_snake_case(name: str) -> str:
    """Convert PascalCase/camelCase to snake_case ("ItemTag" -> "item_tag")."""
    return _CASE_BOUNDARY.sub(r"\1_\2", name).lower()


def table_name_for(entity_name: str) -> str:
    return to_snake_case(entity_name) + "s"


def route_path_for(entity_name: str) -> str:
    # Lowercased only: "ItemTag" routes as "itemtags" while its table is "item_tags".
    return entity_name.lower() + "s"


def _require_identifier(name: str, kind: str) -> str:
    # Names become table and column names.
    if not _IDENTIFIER.match(name):
        raise SchemaError(
            f"Invalid {kind} name '{name}': use letters, digits and underscores",
            {kind: name},
        )
    return name


def normalize_property(raw: str | dict[str, Any]) -> PropertyDef:
    """Normalize one property entry.

    A bare string is shorthand for ``{name: <string>, type: string}``. Unknown
    types fall back to ``string``.

    Raises:
        SchemaError: If the entry has no usable name or invalid attribute values
    """
    if isinstance(raw, str):
        raw = {"name": raw}

    if not isinstance(raw, dict) or not raw.get("name"):
        raise SchemaError(f"Property definition needs a name: {raw!r}", {"property": raw})

    fields = {key: raw[key] for key in _PROPERTY_KEYS if key in raw}
    fields["name"] = _require_identifier(str(fields["name"]), "property")
    if fields.get("type") is None:
        fields.pop("type", None)
    if not fields.get("values"):
        fields.pop("values", None)
    if not fields.get("entity"):
        fields.pop("entity", None)

    try:
        prop = PropertyDef(**fields)
    except PydanticValidationError as e:
        raise SchemaError(f"Invalid property '{fields['name']}': {e}", {"property": raw}) from e

    if prop.type == PropertyType.ENUM and not prop.values:
        logger.warning(f"Enum property '{prop.name}' declares no values; treating it as string")
        prop = prop.model_copy(update={"type": PropertyType.STRING})
    return prop


def _parse_entity(entity_name: str, raw: Any) -> EntityDef:
    raw = raw if isinstance(raw, dict) else {}

    properties: list[PropertyDef] = []
    seen: set[str] = set()
    for entry in raw.get("properties") or []:
        prop = normalize_property(entry)
        if prop.name in seen:
            logger.warning(
                f"Duplicate property '{prop.name}' on '{entity_name}'; keeping the first"
            )
            continue
        seen.add(prop.name)
        properties.append(prop)

    seed = raw.get("seed")
    seed_rows = None
    if seed is not None:
        if not isinstance(seed, list):
            raise SchemaError(
                f"Seed rows of '{entity_name}' must be a list", {"entity": entity_name}
            )
        seed_rows = [row for row in seed if isinstance(row, dict)]

    return EntityDef(properties=properties, pivot=bool(raw.get("pivot", False)), seed=seed_rows)


def parse_schema(schema_text: str) -> SchemaConfig:
    """Parse schema text into a ``SchemaConfig``.

    A document without an ``entities`` section yields an empty entity map.

    Raises:
        SchemaError: If the text is not valid YAML or ``entities`` is not a mapping
    """
    try:
        raw = yaml.safe_load(schema_text)
    except yaml.YAMLError as e:
        raise SchemaError(f"Schema is not valid YAML: {e}") from e

    if not isinstance(raw, dict):
        return SchemaConfig()

    name = raw.get("name")
    name = str(name) if name is not None else None

    raw_entities = raw.get("entities")
    if not raw_entities:
        return SchemaConfig(name=name)
    if not isinstance(raw_entities, dict):
        raise SchemaError("Schema 'entities' must be a mapping of entity name to definition")

    entities = {
        _require_identifier(str(entity_name), "entity"): _parse_entity(str(entity_name), raw_def)
        for entity_name, raw_def in raw_entities.items()
    }
    return SchemaConfig(name=name, entities=entities)


def load_schema(path: str | Path) -> SchemaConfig:
    """Read and parse a schema file.

    Raises:
        SchemaError: If the file cannot be read or parsed
    """
    schema_path = Path(path)
    try:
        content = schema_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaError(f"Cannot read schema file '{schema_path}': {e}") from e
    return parse_schema(content)


def derive_entity_meta(config: SchemaConfig) -> list[EntityMeta]:
    """Compile a ``SchemaConfig`` into storage-ready ``EntityMeta`` objects.

    Relation properties whose target entity is not declared keep their column
    but get no relation descriptor.
    """
    metas: list[EntityMeta] = []

    for entity_name, entity_def in config.entities.items():
        relations: list[RelationDescriptor] = []
        for prop in entity_def.properties:
            if prop.type != PropertyType.RELATION:
                continue
            if not prop.entity or prop.entity not in config.entities:
                logger.warning(
                    f"Relation '{entity_name}.{prop.name}' targets unknown entity "
                    f"'{prop.entity}'; it will not be validated or eager-loaded"
                )
                continue
            relations.append(
                RelationDescriptor(
                    property=prop.name,
                    target_entity=prop.entity,
                    target_table=table_name_for(prop.entity),
                )
            )

        metas.append(
            EntityMeta(
                entity_name=entity_name,
                table_name=table_name_for(entity_name),
                route_path=route_path_for(entity_name),
                properties=tuple(entity_def.properties),
                pivot=entity_def.pivot,
                seed=tuple(entity_def.seed) if entity_def.seed is not None else None,
                relations=tuple(relations),
            )
        )

    return metas
