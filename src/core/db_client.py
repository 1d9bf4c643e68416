"""SQLite task store with CRUD, atomic batch updates and snapshot subscriptions."""

import asyncio
import json
import logging
import re
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime, time
from enum import Enum
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import constants, settings
from src.core.dates import format_date, format_time
from src.core.errors import DatabaseError, RecordNotFoundError


logger = logging.getLogger(__name__)


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def _validate_field_name(field: str) -> None:
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", field):
        msg = f"Invalid field name: {field}"
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings for Pydantic compatibility."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and (key == "id" or key.endswith("_id")):
            converted[key] = str(value)
    return converted


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _to_db_value(value: Any) -> Any:
    """Convert a Python value to its SQLite column representation."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return format_date(value)
    if isinstance(value, time):
        return format_time(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def _parse_record_id(record_id: str) -> int:
    try:
        return int(record_id)
    except (TypeError, ValueError) as e:
        msg = f"Record not found: {record_id}"
        raise RecordNotFoundError(msg) from e


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


_SQL_OPERATORS = {
    "=": "=",
    "!=": "!=",
    ">": ">",
    "<": "<",
    ">=": ">=",
    "<=": "<=",
    "~": "LIKE",
}

# field, operator, quote, body; the body may contain backslash-escaped quotes
_COMPARISON_RE = re.compile(r"""(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(['"])((?:\\.|(?!\3).)*)\3""")

FilterParam = str | bool


def _coerce_filter_value(value: str) -> FilterParam:
    """Booleans are stored as 0/1, so "true"/"false" bind as bools; everything else as text."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _parse_single_comparison(comparison: str) -> tuple[str, FilterParam]:
    """Turn ``field <op> "value"`` into a SQL condition with one bound parameter."""
    match = _COMPARISON_RE.fullmatch(comparison.strip())
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field, op, _, body = match.groups()
    value = re.sub(r"\\(.)", r"\1", body)

    if _SQL_OPERATORS[op] == "LIKE":
        pattern = "%" + value.replace("%", "\\%").replace("_", "\\_") + "%"
        return f"{field} LIKE ? ESCAPE '\\'", pattern
    return f"{field} {_SQL_OPERATORS[op]} ?", _coerce_filter_value(value)


def _tokenize_filter(filter_query: str) -> list[str]:
    """Split a filter into comparisons, ``&&``, ``||`` and parentheses.

    Quoted values are consumed whole, so connectors or parentheses inside a
    value never split it.
    """
    tokens: list[str] = []
    pos = 0
    while pos < len(filter_query):
        char = filter_query[pos]
        if char.isspace():
            pos += 1
        elif char in "()":
            tokens.append(char)
            pos += 1
        elif filter_query.startswith(("&&", "||"), pos):
            tokens.append(filter_query[pos : pos + 2])
            pos += 2
        else:
            match = _COMPARISON_RE.match(filter_query, pos)
            if not match:
                msg = f"Invalid filter syntax: {filter_query}"
                raise ValueError(msg)
            tokens.append(match.group(0))
            pos = match.end()
    return tokens


def _split_tokens(tokens: list[str], separator: str, filter_query: str) -> list[list[str]]:
    """Split at top-level ``separator`` tokens; empty terms are a syntax error."""
    terms: list[list[str]] = [[]]
    depth = 0
    for token in tokens:
        if token == "(":
            depth += 1
        elif token == ")":
            depth -= 1
        if token == separator and depth == 0:
            terms.append([])
        else:
            terms[-1].append(token)

    if depth != 0 or any(not term for term in terms):
        msg = f"Invalid filter syntax: {filter_query}"
        raise ValueError(msg)
    return terms


def _single_comparison(term: list[str], filter_query: str) -> tuple[str, FilterParam]:
    if len(term) != 1 or term[0] in ("(", ")", "&&", "||"):
        msg = f"Invalid filter syntax: {filter_query}"
        raise ValueError(msg)
    return _parse_single_comparison(term[0])


def parse_filter(filter_query: str) -> tuple[str, list[FilterParam]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    Supports ``field = "value"`` comparisons (=, !=, >, <, >=, <=, ~) joined with
    ``&&``, and parenthesized ``||`` groups.
    """
    if not filter_query:
        return "", []

    conditions: list[str] = []
    params: list[FilterParam] = []
    for term in _split_tokens(_tokenize_filter(filter_query), "&&", filter_query):
        if term[0] == "(" and term[-1] == ")":
            alternatives = [
                _single_comparison(option, filter_query)
                for option in _split_tokens(term[1:-1], "||", filter_query)
            ]
            conditions.append("(" + " OR ".join(cond for cond, _ in alternatives) + ")")
            params.extend(value for _, value in alternatives)
        else:
            cond, value = _single_comparison(term, filter_query)
            conditions.append(cond)
            params.append(value)

    return " AND ".join(conditions), params


def _parse_sort(sort: str) -> str:
    """Translate ``+field``/``-field``/``field DESC`` into a safe ORDER BY clause."""
    safe_sort = "id ASC"
    if not sort:
        return safe_sort

    clauses = []
    for raw in sort.split(","):
        item = raw.strip()
        direction = "ASC"
        if item.startswith("-"):
            direction, item = "DESC", item[1:]
        elif item.startswith("+"):
            item = item[1:]
        match = re.match(r"^([A-Za-z_][A-Za-z0-9_]*)\s*(ASC|DESC)?$", item, re.IGNORECASE)
        if not match:
            logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
            return safe_sort
        clauses.append(f"{match.group(1)} {(match.group(2) or direction).upper()}")
    return ", ".join(clauses)


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()
# One writer at a time per connection; commit and rollback act on everything pending on it
_write_locks: dict[int, asyncio.Lock] = {}
_subscribers: dict[str, set[asyncio.Event]] = {}


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn
        _write_locks[id(conn)] = asyncio.Lock()

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    async with _db_lock:
        conn = _db_connections.pop(cache_key, None)
        if conn is None:
            return
        _write_locks.pop(id(conn), None)
        try:
            await conn.close()
            logger.info("Closed SQLite connection", extra={"db_path": str(path)})
        except aiosqlite.Error as e:
            logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": str(path)})


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema  # noqa: PLC0415 - schema imports this module

    await schema.init_db(db_path=db_path)


def _notify_subscribers(collection: str) -> None:
    """Wake every subscriber of a collection so it re-reads a full snapshot."""
    for changed in _subscribers.get(collection, set()):
        changed.set()


@asynccontextmanager
async def write_transaction(*, db_path: str | None = None) -> AsyncIterator[aiosqlite.Connection]:
    """Run one execute-and-commit sequence under the connection's write lock.

    Commits when the block exits normally and rolls back when it raises, so
    no other coroutine's statements are committed or discarded with it.
    """
    conn = await get_connection(db_path=db_path)
    async with _write_locks.setdefault(id(conn), asyncio.Lock()):
        try:
            yield conn
        except BaseException:
            await conn.rollback()
            raise
        await conn.commit()


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id and timestamps."""
    try:
        _validate_collection_name(collection)

        now = _now_iso()
        payload = {**data, "created": now, "updated": now}
        for key in payload:
            _validate_field_name(key)

        columns_str = ", ".join(payload)
        placeholders_str = ", ".join("?" for _ in payload)
        values = [_to_db_value(val) for val in payload.values()]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - names are validated
        async with write_transaction() as conn:
            cursor = await conn.execute(query, values)
            record_id = cursor.lastrowid

        result = await get_record(collection=collection, record_id=str(record_id))

        logger.info("Created record", extra={"collection": collection, "record_id": record_id})
    except Exception as e:
        if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
            logger.error("Table not found", extra={"collection": collection})
            msg = f"Table '{collection}' does not exist. Call init_db() first."
            raise DatabaseError(msg) from e
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise DatabaseError(msg) from e

    _notify_subscribers(collection)
    return result


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (_parse_record_id(record_id),))
        row = await cursor.fetchone()

        if row is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        columns = [description[0] for description in cursor.description]
        record = dict(zip(columns, row, strict=True))

        logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
        return _convert_record_ids(record)
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise DatabaseError(msg) from e


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)

        payload = {**data, "updated": _now_iso()}
        for key in payload:
            _validate_field_name(key)

        set_clause = ", ".join(f"{key} = ?" for key in payload)
        values = [_to_db_value(val) for val in payload.values()]
        values.append(_parse_record_id(record_id))

        query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - names are validated
        async with write_transaction() as conn:
            cursor = await conn.execute(query, values)
            changed = cursor.rowcount

        if changed == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
        result = await get_record(collection=collection, record_id=record_id)
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to update record in {collection}: {e}"
        raise DatabaseError(msg) from e

    _notify_subscribers(collection)
    return result


async def batch_update_records(
    *,
    collection: str,
    updates: list[tuple[str, dict[str, Any]]],
    guard: dict[str, Any] | None = None,
) -> int:
    """Apply several partial updates in one transaction (all-or-nothing).

    The write lock is held for the whole batch, so writes from other
    coroutines wait instead of committing part of it.

    Args:
        collection: Collection to update
        updates: (record_id, fields) pairs
        guard: Optional field values each row must still hold to be updated;
            rows that no longer match are skipped

    Returns:
        Number of rows actually updated

    Raises:
        DatabaseError: If any statement fails; nothing is committed
    """
    if not updates:
        return 0

    _validate_collection_name(collection)
    guard = guard or {}
    now = _now_iso()
    changed = 0

    try:
        async with write_transaction() as conn:
            for record_id, data in updates:
                payload = {**data, "updated": now}
                for key in (*payload, *guard):
                    _validate_field_name(key)

                set_clause = ", ".join(f"{key} = ?" for key in payload)
                where_clause = " AND ".join(["id = ?", *(f"{key} = ?" for key in guard)])
                values = [_to_db_value(val) for val in payload.values()]
                values.append(_parse_record_id(record_id))
                values.extend(_to_db_value(val) for val in guard.values())

                query = f"UPDATE {collection} SET {set_clause} WHERE {where_clause}"  # noqa: S608 - names are validated
                cursor = await conn.execute(query, values)
                changed += max(cursor.rowcount, 0)
    except Exception as e:
        logger.error("batch_update_failed", extra={"collection": collection, "count": len(updates), "error": str(e)})
        msg = f"Failed to batch update {collection}: {e}"
        raise DatabaseError(msg) from e

    logger.info("Batch updated records", extra={"collection": collection, "count": changed})
    if changed:
        _notify_subscribers(collection)
    return changed


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)

        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        async with write_transaction() as conn:
            cursor = await conn.execute(query, (_parse_record_id(record_id),))
            deleted = cursor.rowcount

        if deleted == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to delete record from {collection}: {e}"
        raise DatabaseError(msg) from e

    _notify_subscribers(collection)


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause = ""
        params: list[Any] = []
        if filter_query:
            where_clause, params = parse_filter(filter_query)
            where_clause = f"WHERE {where_clause}"

        offset = (page - 1) * per_page

        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {_parse_sort(sort)} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
        params.extend([per_page, offset])

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        columns = [description[0] for description in cursor.description]
        records = [_convert_record_ids(dict(zip(columns, row, strict=True))) for row in rows]

        logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
        return records
    except Exception as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise DatabaseError(msg) from e


async def list_all_records(*, collection: str, filter_query: str = "", sort: str = "") -> list[dict[str, Any]]:
    """Return every record matching the filter, following pagination."""
    records: list[dict[str, Any]] = []
    page = 1
    per_page = constants.DEFAULT_PER_PAGE_LIMIT
    while True:
        batch = await list_records(
            collection=collection,
            page=page,
            per_page=per_page,
            filter_query=filter_query,
            sort=sort,
        )
        records.extend(batch)
        if len(batch) < per_page:
            return records
        page += 1


async def subscribe_records(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
) -> AsyncIterator[list[dict[str, Any]]]:
    """Yield the full matching record list now and after every committed change.

    Each item is a complete snapshot, never a delta. Changes that land while a
    snapshot is being consumed coalesce into one follow-up snapshot.
    """
    _validate_collection_name(collection)
    changed = asyncio.Event()
    _subscribers.setdefault(collection, set()).add(changed)
    try:
        while True:
            changed.clear()
            yield await list_all_records(collection=collection, filter_query=filter_query, sort=sort)
            await changed.wait()
    finally:
        _subscribers[collection].discard(changed)
