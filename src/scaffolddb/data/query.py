"""List query parsing and SQL fragment building.

Request parameters are turned into a ``ListQuery``; every identifier that
reaches SQL goes through ``ColumnGuard``, which only quotes names on the
entity's allow-list. Values are always bound parameters.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, NamedTuple

from scaffolddb.core.kinds import MAX_INTEGER
from scaffolddb.core.types import EntityMeta

if TYPE_CHECKING:
    from sqlalchemy.engine import Dialect

RESERVED_PARAMS = frozenset({"page", "per_page", "sort", "with"})

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 25
MAX_PER_PAGE = 100

# Suffix -> SQL operator; None marks the IS [NOT] NULL test.
FILTER_SUFFIXES: tuple[tuple[str, str | None], ...] = (
    ("_like", "LIKE"),
    ("_gt", ">"),
    ("_lt", "<"),
    ("_gte", ">="),
    ("_lte", "<="),
    ("_null", None),
)


class ColumnGuard:
    """Quotes identifiers of one entity table, refusing names off the allow-list."""

    def __init__(self, meta: EntityMeta, dialect: Dialect) -> None:
        self._meta = meta
        self._allowed = meta.allowed_columns
        self._quote = dialect.identifier_preparer.quote

    @property
    def table(self) -> str:
        return self._quote(self._meta.table_name)

    def allows(self, name: str) -> bool:
        return name in self._allowed

    def column(self, name: str) -> str:
        """Quoted column name.

        Raises:
            ValueError: If ``name`` is not an allowed column of the entity
        """
        if name not in self._allowed:
            raise ValueError(f"Column '{name}' is not allowed on '{self._meta.table_name}'")
        return self._quote(name)


class Filter(NamedTuple):
    field: str
    operator: str
    value: Any = None


@dataclass
class ListQuery:
    """Normalized list request."""

    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE
    sort_field: str = "id"
    descending: bool = False
    filters: list[Filter] = field(default_factory=list)
    with_relations: list[str] = field(default_factory=list)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def last_page(self, total: int) -> int:
        return max(1, math.ceil(total / self.per_page))


def iter_params(
    params: Mapping[str, Any] | Iterable[tuple[str, Any]] | None,
) -> list[tuple[str, Any]]:
    """Flatten request parameters into ``(key, value)`` pairs.

    Mapping values that are lists or tuples expand into one pair per item,
    so repeated query-string keys survive.
    """
    if params is None:
        return []
    items = params.items() if isinstance(params, Mapping) else params

    pairs: list[tuple[str, Any]] = []
    for key, value in items:
        if isinstance(value, list | tuple):
            pairs.extend((str(key), item) for item in value)
        else:
            pairs.append((str(key), value))
    return pairs


def first_param(pairs: list[tuple[str, Any]], name: str) -> Any:
    for key, value in pairs:
        if key == name:
            return value
    return None


def _parse_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def parse_with(value: Any) -> list[str]:
    """Split a ``with=a,b`` directive into distinct relation short names."""
    if not value:
        return []
    names = (name.strip() for name in str(value).split(","))
    return list(dict.fromkeys(name for name in names if name))


def parse_filter(key: str, value: Any, guard: ColumnGuard) -> Filter | None:
    """Translate one parameter into a filter, or None when it names no allowed column."""
    for suffix, operator in FILTER_SUFFIXES:
        if not key.endswith(suffix):
            continue
        column = key[: -len(suffix)]
        if not guard.allows(column):
            break
        if operator is None:
            is_null = value is True or value == "true"
            return Filter(column, "IS NULL" if is_null else "IS NOT NULL")
        return Filter(column, operator, value)

    if guard.allows(key):
        return Filter(key, "=", value)
    return None


def parse_list_query(
    params: Mapping[str, Any] | Iterable[tuple[str, Any]] | None, guard: ColumnGuard
) -> ListQuery:
    """Build a ``ListQuery`` from request parameters.

    Unknown parameters, sort fields and filter fields are dropped silently.
    """
    pairs = iter_params(params)

    page = max(DEFAULT_PAGE, _parse_int(first_param(pairs, "page"), DEFAULT_PAGE))
    per_page = min(
        MAX_PER_PAGE, max(1, _parse_int(first_param(pairs, "per_page"), DEFAULT_PER_PAGE))
    )
    # Keep the offset inside a 64-bit integer.
    page = min(page, MAX_INTEGER // per_page + 1)
    query = ListQuery(page=page, per_page=per_page)

    sort = first_param(pairs, "sort")
    if sort:
        sort = str(sort)
        descending = sort.startswith("-")
        sort_field = sort[1:] if descending else sort
        if guard.allows(sort_field):
            query.sort_field = sort_field
            query.descending = descending

    for key, value in pairs:
        if key in RESERVED_PARAMS:
            continue
        parsed = parse_filter(key, value, guard)
        if parsed is not None:
            query.filters.append(parsed)

    query.with_relations = parse_with(first_param(pairs, "with"))
    return query


def where_clause(filters: list[Filter], guard: ColumnGuard) -> tuple[str, dict[str, Any]]:
    """Render filters as a WHERE clause plus its bound parameters."""
    clauses: list[str] = []
    binds: dict[str, Any] = {}

    for index, condition in enumerate(filters):
        column = guard.column(condition.field)
        if condition.operator in ("IS NULL", "IS NOT NULL"):
            clauses.append(f"{column} {condition.operator}")
            continue
        key = f"f{index}"
        clauses.append(f"{column} {condition.operator} :{key}")
        binds[key] = condition.value

    if not clauses:
        return "", binds
    return "WHERE " + " AND ".join(clauses), binds


def order_clause(query: ListQuery, guard: ColumnGuard) -> str:
    direction = "DESC" if query.descending else "ASC"
    return f"ORDER BY {guard.column(query.sort_field)} {direction}"


def insert_statement(values: dict[str, Any], guard: ColumnGuard) -> tuple[str, dict[str, Any]]:
    """INSERT for one row; an empty ``values`` inserts a row of column defaults."""
    if not values:
        return f"INSERT INTO {guard.table} DEFAULT VALUES", {}
    columns = ", ".join(guard.column(name) for name in values)
    placeholders = ", ".join(f":v{i}" for i in range(len(values)))
    binds = {f"v{i}": value for i, value in enumerate(values.values())}
    return f"INSERT INTO {guard.table} ({columns}) VALUES ({placeholders})", binds


def update_statement(
    values: dict[str, Any], record_id: int, guard: ColumnGuard
) -> tuple[str, dict[str, Any]]:
    """UPDATE of one row by id."""
    assignments = ", ".join(f"{guard.column(name)} = :v{i}" for i, name in enumerate(values))
    binds = {f"v{i}": value for i, value in enumerate(values.values())}
    binds["id"] = record_id
    sql = f"UPDATE {guard.table} SET {assignments} WHERE {guard.column('id')} = :id"
    return sql, binds
