"""SQLite database client wrapper with CRUD operations and atomic units."""

import asyncio
import json
import logging
import re
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import constants, settings


logger = logging.getLogger(__name__)


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer primary and foreign key fields to strings for Pydantic compatibility."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and (key == "id" or key.endswith("_id")):
            converted[key] = str(value)
    return converted


def _to_sql_value(value: Any) -> Any:
    """Convert a Python value to a SQLite-storable value."""
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def _to_row_id(record_id: str | int) -> int:
    """Convert an external record id to the integer row id, raising KeyError for malformed ids."""
    text = str(record_id)
    if not text.isdigit():
        msg = f"Record not found: {record_id}"
        raise KeyError(msg)
    return int(text)


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        return value.replace("%", "\\%").replace("_", "\\_")

    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    op_map = {
        "=": "=",
        "!=": "!=",
        ">": ">",
        "<": "<",
        ">=": ">=",
        "<=": "<=",
        "~": "LIKE",
    }
    sql_op = op_map.get(op)
    if not sql_op:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return sql_op


def _parse_single_comparison(comparison: str) -> tuple[str, str | int | float | None]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = re.match(
        r"""(\w+)\s*(=|!=|>|<|>=|<=|~)\s*(['"])([^'"]*)\3""",
        comparison,
    )
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field = match.group(1)
    op = match.group(2)
    raw_value = match.group(4)

    sql_op = _get_sql_operator(op)
    is_like = sql_op == "LIKE"
    value = _parse_value(raw_value, is_like=is_like)
    if is_like:
        return f"{field} LIKE ? ESCAPE '\\'", f"%{value}%"

    return f"{field} {sql_op} ?", value


def _parse_or_group(or_group: str) -> tuple[str, list[str | int | float | None]]:
    """Parse a parenthesized OR group into a SQL condition and parameters."""
    inner = or_group[1:-1]
    or_parts = [p.strip() for p in inner.split("||")]
    or_conditions = []
    or_params = []

    for part in or_parts:
        cond, value = _parse_single_comparison(part)
        or_conditions.append(cond)
        or_params.append(value)

    return f"({' OR '.join(or_conditions)})", or_params


def _split_and_conditions(filter_query: str) -> list[str]:
    """Split filter query by && while preserving parenthesized groups."""
    parts = []
    current = ""
    paren_depth = 0

    for char in filter_query:
        if char == "(":
            paren_depth += 1
        elif char == ")":
            paren_depth -= 1

        current += char

        if paren_depth == 0 and current.endswith("&&"):
            parts.append(current[:-2].strip())
            current = ""

    if current.strip():
        parts.append(current.strip())

    return parts


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | None]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    Syntax: ``field = "value" && (a = "1" || a = "2")``.
    """
    if not filter_query:
        return "", []

    parts = _split_and_conditions(filter_query)
    conditions = []
    params = []

    for raw_part in parts:
        part = raw_part.strip()

        if part.startswith("(") and part.endswith(")"):
            cond, cond_params = _parse_or_group(part)
            conditions.append(cond)
            params.extend(cond_params)
        else:
            cond, value = _parse_single_comparison(part)
            conditions.append(cond)
            params.append(value)

    return " AND ".join(conditions), params


def build_where(filter_query: str = "", where: dict[str, Any] | None = None) -> tuple[str, list[Any]]:
    """Combine exact-match conditions with a filter string into one WHERE clause.

    ``where`` values are bound as-is, with no type coercion, so opaque text such as
    account ids always compares verbatim. The filter string covers ranges and OR groups.
    """
    conditions = []
    params: list[Any] = []
    for field, value in (where or {}).items():
        _validate_collection_name(field)
        conditions.append(f"{field} = ?")
        params.append(_to_sql_value(value))

    if filter_query:
        clause, filter_params = parse_filter(filter_query)
        conditions.append(clause)
        params.extend(filter_params)

    return " AND ".join(conditions), params


def build_order_by(sort: str) -> str:
    """Translate a sort expression into a safe ORDER BY clause.

    Accepts comma-separated terms of the form ``-field``, ``+field``, ``field`` or
    ``field ASC|DESC``. Invalid expressions fall back to ``id ASC``.
    """
    if not sort:
        return "id ASC"

    terms = []
    for raw_term in sort.split(","):
        term = raw_term.strip()
        prefixed = re.match(r"^([+-])([A-Za-z_][A-Za-z0-9_]*)$", term)
        if prefixed:
            direction = "DESC" if prefixed.group(1) == "-" else "ASC"
            terms.append(f"{prefixed.group(2)} {direction}")
            continue
        plain = re.match(r"^([A-Za-z_][A-Za-z0-9_]*)(?:\s+(ASC|DESC))?$", term, re.IGNORECASE)
        if plain:
            terms.append(f"{plain.group(1)} {(plain.group(2) or 'ASC').upper()}")
            continue
        logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
        return "id ASC"

    return ", ".join(terms)


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create the cached read connection for the current thread, loop, and db path.

    Writes never go through this connection; they use transaction().
    """
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path), timeout=constants.SQLITE_BUSY_TIMEOUT_SECONDS)
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

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

    if cache_key not in _db_connections:
        return

    try:
        async with _db_lock:
            conn = _db_connections.pop(cache_key, None)
            if conn is not None:
                await conn.close()
                logger.info(
                    "Closed SQLite connection",
                    extra={"thread_id": thread_id, "loop_id": loop_id, "db_path": str(path)},
                )
    except Exception as e:
        logger.warning(
            "Error closing SQLite connection",
            extra={"error": str(e), "thread_id": thread_id, "loop_id": loop_id},
        )


@asynccontextmanager
async def transaction(*, db_path: str | None = None) -> AsyncIterator[aiosqlite.Connection]:
    """Run a block of writes as one atomic unit.

    Opens a dedicated connection and takes the SQLite write lock up front with
    BEGIN IMMEDIATE. Commits when the block exits normally, rolls back on any
    exception. Readers on the cached connection only ever see committed state.

    Usage:
        async with db_client.transaction() as tx:
            await db_client.create_record(collection="tasks", data=..., conn=tx)
    """
    path = get_db_path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(
        str(path),
        timeout=constants.SQLITE_BUSY_TIMEOUT_SECONDS,
        isolation_level=None,
    )
    try:
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            await conn.execute("ROLLBACK")
            logger.info("Rolled back transaction", extra={"db_path": str(path)})
            raise
        await conn.execute("COMMIT")
    finally:
        await conn.close()


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    schema = __import__("src.core.schema", fromlist=["init_db"])
    await schema.init_db(db_path=db_path)


async def _fetch_one(conn: aiosqlite.Connection, query: str, params: list[Any] | tuple[Any, ...]) -> dict[str, Any] | None:
    cursor = await conn.execute(query, params)
    row = await cursor.fetchone()
    if row is None:
        return None
    columns = [description[0] for description in cursor.description]
    return _convert_record_ids(dict(zip(columns, row, strict=True)))


async def _fetch_all(conn: aiosqlite.Connection, query: str, params: list[Any] | tuple[Any, ...]) -> list[dict[str, Any]]:
    cursor = await conn.execute(query, params)
    rows = await cursor.fetchall()
    columns = [description[0] for description in cursor.description]
    return [_convert_record_ids(dict(zip(columns, row, strict=True))) for row in rows]


async def create_record(
    *,
    collection: str,
    data: dict[str, Any],
    conn: aiosqlite.Connection | None = None,
) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id.

    Runs inside ``conn`` when given (an open transaction), otherwise in its own atomic unit.
    """
    if conn is None:
        async with transaction() as tx:
            return await create_record(collection=collection, data=data, conn=tx)

    try:
        _validate_collection_name(collection)

        columns = list(data.keys())
        columns_str = ", ".join(columns)
        placeholders_str = ", ".join("?" for _ in columns)
        values = [_to_sql_value(data[key]) for key in columns]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        record_id = cursor.lastrowid

        result = await _fetch_one(conn, f"SELECT * FROM {collection} WHERE id = ?", (record_id,))  # noqa: S608
        if result is None:
            msg = f"Inserted record vanished from {collection}: {record_id}"
            raise RuntimeError(msg)

        logger.info("Created record", extra={"collection": collection, "record_id": record_id})
        return result
    except Exception as e:
        if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
            msg = f"Table '{collection}' does not exist. Call init_db() first."
            logger.error("Table not found", extra={"collection": collection})
            raise RuntimeError(msg) from e
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise RuntimeError(msg) from e


async def get_record(
    *,
    collection: str,
    record_id: str,
    conn: aiosqlite.Connection | None = None,
) -> dict[str, Any]:
    """Fetch a single record by ID, raising KeyError if not found."""
    try:
        _validate_collection_name(collection)
        conn = conn or await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        record = await _fetch_one(conn, query, (_to_row_id(record_id),))

        if record is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise KeyError(msg)

        logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
        return record
    except KeyError:
        raise
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise RuntimeError(msg) from e


async def update_record(
    *,
    collection: str,
    record_id: str,
    data: dict[str, Any],
    conn: aiosqlite.Connection | None = None,
) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    if conn is None:
        async with transaction() as tx:
            return await update_record(collection=collection, record_id=record_id, data=data, conn=tx)

    try:
        _validate_collection_name(collection)

        set_clause = ", ".join(f"{key} = ?" for key in data)
        values = [_to_sql_value(val) for val in data.values()]
        values.append(_to_row_id(record_id))

        query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise KeyError(msg)

        logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
        return await get_record(collection=collection, record_id=record_id, conn=conn)
    except KeyError:
        raise
    except Exception as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to update record in {collection}: {e}"
        raise RuntimeError(msg) from e


async def delete_record(
    *,
    collection: str,
    record_id: str,
    conn: aiosqlite.Connection | None = None,
) -> None:
    """Delete a record by ID, raising KeyError if not found."""
    if conn is None:
        async with transaction() as tx:
            await delete_record(collection=collection, record_id=record_id, conn=tx)
            return

    try:
        _validate_collection_name(collection)

        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (_to_row_id(record_id),))

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise KeyError(msg)

        logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})
    except KeyError:
        raise
    except Exception as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to delete record from {collection}: {e}"
        raise RuntimeError(msg) from e


async def delete_records(
    *,
    collection: str,
    conn: aiosqlite.Connection,
    filter_query: str = "",
    where: dict[str, Any] | None = None,
) -> int:
    """Delete every record matching the filter inside an open transaction; return the count."""
    where_clause, params = build_where(filter_query, where)
    if not where_clause:
        msg = "Refusing to delete without a filter"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)

        query = f"DELETE FROM {collection} WHERE {where_clause}"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, params)

        logger.info("Deleted records", extra={"collection": collection, "count": cursor.rowcount})
        return cursor.rowcount
    except Exception as e:
        logger.error("delete_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to delete records from {collection}: {e}"
        raise RuntimeError(msg) from e


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = constants.DEFAULT_PER_PAGE_LIMIT,
    filter_query: str = "",
    where: dict[str, Any] | None = None,
    sort: str = "",
    conn: aiosqlite.Connection | None = None,
) -> list[dict[str, Any]]:
    """List one page of records with optional filtering and sorting."""
    try:
        _validate_collection_name(collection)
        conn = conn or await get_connection()

        where_clause, params = build_where(filter_query, where)
        if where_clause:
            where_clause = f"WHERE {where_clause}"

        order_by = build_order_by(sort)
        offset = (page - 1) * per_page

        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {order_by} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
        params.extend([per_page, offset])

        records = await _fetch_all(conn, query, params)

        logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
        return records
    except Exception as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise RuntimeError(msg) from e


async def list_all_records(
    *,
    collection: str,
    filter_query: str = "",
    where: dict[str, Any] | None = None,
    sort: str = "",
    conn: aiosqlite.Connection | None = None,
) -> list[dict[str, Any]]:
    """List every matching record, reading page by page until a short page.

    ``sort`` should end with a unique column (usually ``id``) so pages never overlap.
    """
    per_page = constants.DEFAULT_PER_PAGE_LIMIT
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection,
            page=page,
            per_page=per_page,
            filter_query=filter_query,
            where=where,
            sort=sort,
            conn=conn,
        )
        records.extend(batch)
        if len(batch) < per_page:
            return records
        page += 1


async def get_first_record(
    *,
    collection: str,
    filter_query: str = "",
    where: dict[str, Any] | None = None,
    sort: str = "",
    conn: aiosqlite.Connection | None = None,
) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    try:
        _validate_collection_name(collection)
        conn = conn or await get_connection()

        where_clause, params = build_where(filter_query, where)
        order_by = build_order_by(sort)

        if where_clause:
            query = f"SELECT * FROM {collection} WHERE {where_clause} ORDER BY {order_by} LIMIT 1"  # noqa: S608 - collection is validated
        else:
            query = f"SELECT * FROM {collection} ORDER BY {order_by} LIMIT 1"  # noqa: S608 - collection is validated

        record = await _fetch_one(conn, query, params)

        logger.debug("Retrieved first record", extra={"collection": collection, "found": record is not None})
        return record
    except Exception as e:
        logger.error(
            "get_first_record_failed", extra={"collection": collection, "filter_query": filter_query, "error": str(e)}
        )
        msg = f"Failed to get first record from {collection}: {e}"
        raise RuntimeError(msg) from e


async def count_records(
    *,
    collection: str,
    filter_query: str = "",
    where: dict[str, Any] | None = None,
    conn: aiosqlite.Connection | None = None,
) -> int:
    """Count records matching the filter."""
    try:
        _validate_collection_name(collection)
        conn = conn or await get_connection()

        where_clause, params = build_where(filter_query, where)
        query = f"SELECT COUNT(*) FROM {collection}"  # noqa: S608 - collection is validated
        if where_clause:
            query = f"{query} WHERE {where_clause}"

        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()
        return int(row[0]) if row else 0
    except Exception as e:
        logger.error("count_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to count records in {collection}: {e}"
        raise RuntimeError(msg) from e
