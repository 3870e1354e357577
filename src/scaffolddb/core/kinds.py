"""Property kind dispatch table.

One entry per ``PropertyType``. Column typing, coercion of request values,
deserialization of stored values, value checks and auto-generation all read
from ``KINDS`` so the four call sites cannot drift apart.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from sqlalchemy import REAL, Integer, Text
from sqlalchemy.types import TypeEngine

from scaffolddb.core.types import PropertyDef, PropertyType

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

TRUTHY_VALUES = (True, "true", 1)

# Range of a SQLite INTEGER; larger Python ints cannot be bound.
MIN_INTEGER = -(2**63)
MAX_INTEGER = 2**63 - 1


def fits_integer(value: int) -> bool:
    return MIN_INTEGER <= value <= MAX_INTEGER


def _is_unbounded_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and not fits_integer(value)


def _identity(value: Any) -> Any:
    return value


def _coerce_boolean(value: Any) -> int:
    return 1 if value in TRUTHY_VALUES else 0


def _coerce_json(value: Any) -> Any:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _deserialize_boolean(value: Any) -> bool:
    return value == 1 or value is True


def _deserialize_json(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


def _no_check(prop: PropertyDef, value: Any) -> str | None:
    return None


def _check_enum(prop: PropertyDef, value: Any) -> str | None:
    allowed = prop.values or []
    if value not in allowed:
        return f"{prop.name} must be one of: {', '.join(str(v) for v in allowed)}"
    return None


def _check_email(prop: PropertyDef, value: Any) -> str | None:
    if isinstance(value, str) and not EMAIL_PATTERN.match(value):
        return f"{prop.name} must be a valid email address"
    return None


def _check_json(prop: PropertyDef, value: Any) -> str | None:
    if isinstance(value, str):
        try:
            json.loads(value)
        except ValueError:
            return f"{prop.name} must be valid JSON"
    return None


def _generate_uuid() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class KindHandler:
    """Behaviour of one property type."""

    column_type: Callable[[], TypeEngine[Any]]
    coerce: Callable[[Any], Any] = _identity
    deserialize: Callable[[Any], Any] = _identity
    check: Callable[[PropertyDef, Any], str | None] = _no_check
    generate: Callable[[], Any] | None = None
    scalar: bool = True
    bounded: bool = True


# Relation existence needs the datastore and is checked by the validator,
# which also treats out-of-range ids as missing targets.
KINDS: dict[PropertyType, KindHandler] = {
    PropertyType.STRING: KindHandler(column_type=Text),
    PropertyType.TEXT: KindHandler(column_type=Text),
    PropertyType.INTEGER: KindHandler(column_type=Integer),
    PropertyType.NUMBER: KindHandler(column_type=REAL),
    PropertyType.BOOLEAN: KindHandler(
        column_type=Integer, coerce=_coerce_boolean, deserialize=_deserialize_boolean
    ),
    PropertyType.ENUM: KindHandler(column_type=Text, check=_check_enum),
    PropertyType.UUID: KindHandler(column_type=Text, generate=_generate_uuid),
    PropertyType.JSON: KindHandler(
        column_type=Text,
        coerce=_coerce_json,
        deserialize=_deserialize_json,
        check=_check_json,
        scalar=False,
        bounded=False,
    ),
    PropertyType.EMAIL: KindHandler(column_type=Text, check=_check_email),
    PropertyType.RELATION: KindHandler(column_type=Integer, bounded=False),
}


def column_type(prop: PropertyDef) -> TypeEngine[Any]:
    """SQLAlchemy column type for a property."""
    return KINDS[prop.type].column_type()


def coerce_value(prop: PropertyDef, value: Any) -> Any:
    """Convert a request value into its storage representation."""
    if value is None:
        return None
    return KINDS[prop.type].coerce(value)


def deserialize_value(prop: PropertyDef, value: Any) -> Any:
    """Convert a stored value back into its response representation."""
    if value is None:
        return None
    return KINDS[prop.type].deserialize(value)


def check_value(prop: PropertyDef, value: Any) -> str | None:
    """Return an error message when ``value`` is not acceptable, else None."""
    handler = KINDS[prop.type]
    if handler.scalar and isinstance(value, dict | list):
        return f"{prop.name} must be a scalar value"
    if handler.bounded and _is_unbounded_int(value):
        return f"{prop.name} is out of range for a 64-bit integer"
    return handler.check(prop, value)


def generate_value(prop: PropertyDef) -> Any:
    """Auto-generated value for an absent property, or None when the type has none."""
    generator = KINDS[prop.type].generate
    return generator() if generator is not None else None


def is_generated(prop: PropertyDef) -> bool:
    return KINDS[prop.type].generate is not None
