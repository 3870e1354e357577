"""Dynamic CRUD engine.

``CrudEngine`` compiles one ``EntityResource`` per entity at startup. Each
resource offers the same six operations (list, get, create, replace, patch,
delete) driven purely by its ``EntityMeta``. ``CrudEngine.handle`` is the
boundary a transport binds to: it turns not-found, validation and bad-request
errors into ``{"error": {...}}`` envelopes.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from scaffolddb.core.kinds import fits_integer
from scaffolddb.core.types import (
    CrudOperation,
    CrudRequest,
    CrudResponse,
    EntityMeta,
    ListMeta,
    RouteInfo,
)
from scaffolddb.data.query import (
    ColumnGuard,
    first_param,
    insert_statement,
    iter_params,
    order_clause,
    parse_list_query,
    parse_with,
    update_statement,
    where_clause,
)
from scaffolddb.data.relations import RelationLoader
from scaffolddb.data.rows import deserialize_row, insert_values, patch_values, replace_values
from scaffolddb.data.validation import RecordValidator
from scaffolddb.exceptions import BadRequestError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

Params = Mapping[str, Any] | Iterable[tuple[str, Any]] | None


def parse_record_id(record_id: Any) -> int:
    """Parse a record id from a request.

    Raises:
        NotFoundError: If the id is not an integer that fits a row id
    """
    if isinstance(record_id, bool):
        raise NotFoundError()
    if isinstance(record_id, int):
        pk = record_id
    else:
        try:
            pk = int(str(record_id).strip())
        except ValueError:
            raise NotFoundError() from None
    if not fits_integer(pk):
        raise NotFoundError()
    return pk


def parse_body(body: Any) -> dict[str, Any]:
    """Accept a dict, or JSON text/bytes holding an object.

    Raises:
        BadRequestError: If the body is not a JSON object
    """
    if isinstance(body, bytes | bytearray):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except ValueError:
            raise BadRequestError("Invalid JSON body") from None
    if not isinstance(body, dict):
        raise BadRequestError("Invalid JSON body")
    return body


class EntityResource:
    """The six CRUD operations of one entity."""

    def __init__(
        self,
        meta: EntityMeta,
        engine: Engine,
        validator: RecordValidator,
        loader: RelationLoader,
    ) -> None:
        self.meta = meta
        self._engine = engine
        self._validator = validator
        self._loader = loader
        self._guard = ColumnGuard(meta, engine.dialect)

    @property
    def name(self) -> str:
        return self.meta.entity_name

    # === Reads ===

    def list(self, params: Params = None) -> dict[str, Any]:
        """List records with filtering, sorting, pagination and eager loading.

        Returns:
            ``{"data": [...], "meta": {"total", "page", "per_page", "last_page"}}``
        """
        query = parse_list_query(params, self._guard)
        where_sql, binds = where_clause(query.filters, self._guard)
        table = self._guard.table

        count_sql = f"SELECT COUNT(*) FROM {table} {where_sql}"
        select_sql = (
            f"SELECT * FROM {table} {where_sql} {order_clause(query, self._guard)} "
            f"LIMIT :limit OFFSET :offset"
        )
        logger.debug(f"{self.name} list: {select_sql} {binds}")

        with self._engine.connect() as conn:
            total = conn.execute(text(count_sql), binds).scalar() or 0
            rows = conn.execute(
                text(select_sql), {**binds, "limit": query.per_page, "offset": query.offset}
            ).mappings().all()

        data = [deserialize_row(self.meta, row) for row in rows]
        if query.with_relations:
            self._loader.load(self.meta, data, query.with_relations)

        meta = ListMeta(
            total=total,
            page=query.page,
            per_page=query.per_page,
            last_page=query.last_page(total),
        )
        return {"data": data, "meta": meta.model_dump()}

    def get(self, record_id: Any, params: Params = None) -> dict[str, Any]:
        """Fetch one record by id.

        Raises:
            NotFoundError: If the record does not exist
        """
        row = self._fetch(parse_record_id(record_id))
        if row is None:
            raise NotFoundError()

        data = deserialize_row(self.meta, row)
        names = parse_with(first_param(iter_params(params), "with"))
        if names:
            self._loader.load(self.meta, [data], names)
        return {"data": data}

    # === Writes ===

    def create(self, body: Any) -> dict[str, Any]:
        """Validate and insert a record, returning the stored row.

        Raises:
            BadRequestError: If the body is not a JSON object
            ValidationError: If a property fails validation
        """
        payload = parse_body(body)
        self._validator.validate(self.meta, payload, partial=False)

        sql, binds = insert_statement(insert_values(self.meta, payload), self._guard)

        logger.debug(f"{self.name} create: {sql}")
        with self._write_errors():
            with self._engine.begin() as conn:
                new_id = conn.execute(text(sql), binds).lastrowid

        return {"data": deserialize_row(self.meta, self._fetch(new_id) or {"id": new_id})}

    def replace(self, record_id: Any, body: Any) -> dict[str, Any]:
        """Replace a record. Absent properties fall back to default/NULL or stay unchanged.

        Raises:
            NotFoundError: If the record does not exist
            BadRequestError: If the body is not a JSON object
            ValidationError: If a supplied property fails validation
        """
        pk = self._require(record_id)
        payload = parse_body(body)
        self._validator.validate(self.meta, payload, partial=True)

        self._update(pk, replace_values(self.meta, payload))
        return {"data": deserialize_row(self.meta, self._fetch(pk) or {"id": pk})}

    def patch(self, record_id: Any, body: Any) -> dict[str, Any]:
        """Update only the properties present in the body.

        Raises:
            NotFoundError: If the record does not exist
            BadRequestError: If the body is malformed or names no writable property
            ValidationError: If a supplied property fails validation
        """
        pk = self._require(record_id)
        payload = parse_body(body)
        self._validator.validate(self.meta, payload, partial=True)

        values = patch_values(self.meta, payload)
        if not values:
            raise BadRequestError("No valid fields to update")

        self._update(pk, values)
        return {"data": deserialize_row(self.meta, self._fetch(pk) or {"id": pk})}

    def delete(self, record_id: Any) -> dict[str, Any]:
        """Delete a record.

        Raises:
            NotFoundError: If the record does not exist
        """
        pk = self._require(record_id)
        sql = f"DELETE FROM {self._guard.table} WHERE {self._guard.column('id')} = :id"
        with self._engine.begin() as conn:
            conn.execute(text(sql), {"id": pk})
        return {"data": {"id": pk}}

    # === Helpers ===

    def _fetch(self, pk: int) -> dict[str, Any] | None:
        sql = f"SELECT * FROM {self._guard.table} WHERE {self._guard.column('id')} = :id"
        with self._engine.connect() as conn:
            row = conn.execute(text(sql), {"id": pk}).mappings().first()
        return dict(row) if row is not None else None

    def _require(self, record_id: Any) -> int:
        pk = parse_record_id(record_id)
        if self._fetch(pk) is None:
            raise NotFoundError()
        return pk

    def _update(self, pk: int, values: dict[str, Any]) -> None:
        if not values:
            return
        sql, binds = update_statement(values, pk, self._guard)

        logger.debug(f"{self.name} update: {sql}")
        with self._write_errors():
            with self._engine.begin() as conn:
                conn.execute(text(sql), binds)

    @contextmanager
    def _write_errors(self) -> Iterator[None]:
        """Turn constraint violations (e.g. a duplicate pivot pair) into BadRequestError."""
        try:
            yield
        except IntegrityError as e:
            raise BadRequestError(
                f"{self.name} write violates a constraint: {e.orig}",
                {"entity_name": self.name},
            ) from e


class CrudEngine:
    """Compiled CRUD resources for every entity."""

    def __init__(self, engine: Engine, entities: list[EntityMeta], base_path: str = "/api") -> None:
        """Build one resource per entity.

        Args:
            engine: SQLAlchemy engine of a migrated datastore
            entities: Compiled entity metadata
            base_path: Path prefix used by ``routes()``
        """
        prefix = base_path.strip("/")
        self._base_path = f"/{prefix}" if prefix else ""
        by_name = {meta.entity_name: meta for meta in entities}
        validator = RecordValidator(engine)
        loader = RelationLoader(engine, by_name)
        self._resources: dict[str, EntityResource] = {
            meta.route_path: EntityResource(meta, engine, validator, loader) for meta in entities
        }

    @property
    def resources(self) -> dict[str, EntityResource]:
        return dict(self._resources)

    def resource(self, route_path: str) -> EntityResource:
        """Get the resource bound to a route path (e.g. ``"items"``).

        Raises:
            NotFoundError: If no entity uses that route path
        """
        try:
            return self._resources[route_path]
        except KeyError:
            raise NotFoundError(
                f"Unknown entity '{route_path}'",
                {"entity": route_path, "available_entities": sorted(self._resources)},
            ) from None

    def routes(self) -> list[RouteInfo]:
        """Routes a transport collaborator should bind, six per entity over two paths."""
        routes: list[RouteInfo] = []
        for route_path in self._resources:
            collection = f"{self._base_path}/{route_path}"
            member = f"{collection}/{{id}}"
            for method, path, operation in (
                ("GET", collection, CrudOperation.LIST),
                ("POST", collection, CrudOperation.CREATE),
                ("GET", member, CrudOperation.GET),
                ("PUT", member, CrudOperation.REPLACE),
                ("PATCH", member, CrudOperation.PATCH),
                ("DELETE", member, CrudOperation.DELETE),
            ):
                routes.append(
                    RouteInfo(method=method, path=path, operation=operation, entity=route_path)
                )
        return routes

    def execute(self, request: CrudRequest) -> dict[str, Any]:
        """Run one request, raising on failure."""
        resource = self.resource(request.entity)
        operation = request.operation

        if operation == CrudOperation.LIST:
            return resource.list(request.params)
        if operation == CrudOperation.GET:
            return resource.get(request.id, request.params)
        if operation == CrudOperation.CREATE:
            return resource.create(request.body)
        if operation == CrudOperation.REPLACE:
            return resource.replace(request.id, request.body)
        if operation == CrudOperation.PATCH:
            return resource.patch(request.id, request.body)
        return resource.delete(request.id)

    def handle(self, request: CrudRequest) -> CrudResponse:
        """Run one request and return its response envelope.

        Not-found, validation and bad-request failures become error envelopes
        carrying the message and status code.
        """
        try:
            body = self.execute(request)
        except (NotFoundError, ValidationError, BadRequestError) as e:
            logger.debug(f"{request.operation} {request.entity} failed: {e.message}")
            return CrudResponse(status=e.status_code, body=e.to_dict())

        status = 201 if request.operation == CrudOperation.CREATE else 200
        return CrudResponse(status=status, body=body)
