"""Row value preparation for writes and deserialization for reads."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from scaffolddb.core.kinds import coerce_value, deserialize_value, generate_value, is_generated
from scaffolddb.core.types import EntityMeta

SYSTEM_COLUMNS = frozenset({"id", "created_at", "updated_at"})


def utc_now() -> str:
    """Current UTC timestamp as stored in created_at/updated_at."""
    return datetime.now(UTC).isoformat()


def deserialize_row(meta: EntityMeta, row: Mapping[str, Any]) -> dict[str, Any]:
    """Convert a stored row into response values (JSON parsed, booleans as bool)."""
    result = dict(row)
    for prop in meta.properties:
        if prop.name in result:
            result[prop.name] = deserialize_value(prop, result[prop.name])
    return result


def insert_values(meta: EntityMeta, body: Mapping[str, Any], now: str | None = None) -> dict[str, Any]:
    """Column values for a new row.

    Absent properties are omitted so the column default applies, except
    auto-generated types (uuid) which get a fresh value.
    """
    values: dict[str, Any] = {}
    for prop in meta.properties:
        if prop.name in body:
            value = body[prop.name]
        elif is_generated(prop):
            value = generate_value(prop)
        else:
            continue
        values[prop.name] = coerce_value(prop, value)

    if not meta.pivot:
        stamp = now or utc_now()
        values["created_at"] = stamp
        values["updated_at"] = stamp
    return values


def replace_values(meta: EntityMeta, body: Mapping[str, Any], now: str | None = None) -> dict[str, Any]:
    """Column values for a full replacement.

    Absent properties fall back to their default, then to NULL when nullable,
    and are otherwise left unchanged. Auto-generated values are never reset.
    """
    values: dict[str, Any] = {}
    for prop in meta.properties:
        if prop.name in body:
            value = body[prop.name]
        elif is_generated(prop):
            continue
        elif prop.has_default:
            value = prop.default
        elif prop.nullable:
            value = None
        else:
            continue
        values[prop.name] = coerce_value(prop, value)

    if not meta.pivot:
        values["updated_at"] = now or utc_now()
    return values


def patch_values(meta: EntityMeta, body: Mapping[str, Any], now: str | None = None) -> dict[str, Any]:
    """Column values for a partial update: only declared properties present in the body.

    Returns an empty dict when the body names no writable property.
    """
    values: dict[str, Any] = {}
    for key, value in body.items():
        if key in SYSTEM_COLUMNS:
            continue
        prop = meta.get_property(key)
        if prop is None:
            continue
        values[key] = coerce_value(prop, value)

    if values and not meta.pivot:
        values["updated_at"] = now or utc_now()
    return values
