"""Request body validation shared by create, replace and patch."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from scaffolddb.core.kinds import check_value, fits_integer, is_generated
from scaffolddb.core.types import EntityMeta, PropertyDef, PropertyType, RelationDescriptor
from scaffolddb.exceptions import ValidationError

if TYPE_CHECKING:
    from sqlalchemy import Engine


def is_required(prop: PropertyDef) -> bool:
    """A property must be supplied on create unless it can be filled in otherwise."""
    return not prop.nullable and not prop.has_default and not is_generated(prop)


class RecordValidator:
    """Validates request bodies against entity metadata.

    Properties are checked in declaration order and the first failure is
    raised on its own; nothing is written when validation fails.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._quote = engine.dialect.identifier_preparer.quote

    def validate(self, meta: EntityMeta, body: Mapping[str, Any], partial: bool = False) -> None:
        """Validate a body.

        Args:
            meta: Entity the body is written to
            body: Request body
            partial: When True, absent required properties are not an error

        Raises:
            ValidationError: On the first failing property
        """
        for prop in meta.properties:
            if prop.name not in body:
                if not partial and is_required(prop):
                    raise ValidationError(f"{prop.name} is required", prop.name)
                continue

            value = body[prop.name]
            if value is None:
                continue

            message = check_value(prop, value)
            if message:
                raise ValidationError(message, prop.name)

            if prop.type == PropertyType.RELATION:
                relation = meta.relation_for(prop.name)
                if relation is not None and not self._target_exists(relation, value):
                    raise ValidationError(
                        f"{prop.name} references a non-existent "
                        f"{relation.target_entity} (id: {value})",
                        prop.name,
                    )

    def _target_exists(self, relation: RelationDescriptor, value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, int | float | str):
            return False
        if isinstance(value, int) and not fits_integer(value):
            return False
        sql = f"SELECT id FROM {self._quote(relation.target_table)} WHERE id = :id"
        with self._engine.connect() as conn:
            return conn.execute(text(sql), {"id": value}).first() is not None
