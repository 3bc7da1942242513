"""
PostgreSQL-backed document store

Documents and records are kept as jsonb:

    gamification_documents(key text primary key, value jsonb, updated_at timestamptz)
    gamification_records(id uuid primary key, collection text, data jsonb, created_at timestamptz)

Filters are translated to jsonb field extraction with a cast chosen from the
filter value's Python type, so timestamps compare as timestamptz and numbers
as numeric.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

import psycopg
from psycopg.types.json import Jsonb

from hotel_gamification.db.connection import Database
from hotel_gamification.db.store import DocumentStore, RecordFilter
from hotel_gamification.exceptions import wrap_external_exception

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS gamification_documents (
        key TEXT PRIMARY KEY,
        value JSONB NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS gamification_records (
        id UUID PRIMARY KEY,
        collection TEXT NOT NULL,
        data JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # Rate limiting and login checks filter on (userId, action, timestamp)
    """
    CREATE INDEX IF NOT EXISTS idx_gamification_records_user_action_ts
    ON gamification_records (
        collection,
        (data->>'user_id'),
        (data->>'action_type'),
        ((data->>'timestamp')::timestamptz)
    )
    """,
)


SQL_OPERATORS = {
    "==": "=",
    "!=": "<>",
    "<": "<",
    "<=": "<=",
    ">": ">",
    ">=": ">=",
}

# Record fields holding ISO timestamps; ordered as timestamptz, not as text
TIMESTAMP_FIELDS = frozenset({"timestamp", "last_updated", "last_login_date"})


def _check_field_name(field: str) -> None:
    if not field.replace("_", "").isalnum():
        raise ValueError(f"Invalid field name: {field}")


def _field_expression(field: str, value: Any) -> str:
    """jsonb extraction with a cast matching the compared value"""
    _check_field_name(field)
    if isinstance(value, datetime):
        return f"(data->>'{field}')::timestamptz"
    if isinstance(value, bool):
        return f"(data->>'{field}')::boolean"
    if isinstance(value, (int, float)):
        return f"(data->>'{field}')::numeric"
    return f"(data->>'{field}')"


def _where_clause(collection: str, filters: Sequence[RecordFilter]) -> Tuple[str, List[Any]]:
    clauses = ["collection = %s"]
    params: List[Any] = [collection]

    for record_filter in filters:
        value = record_filter.value
        if isinstance(value, datetime) and value.tzinfo is None:
            raise ValueError("Timestamp filters must be timezone-aware")
        operator = SQL_OPERATORS[record_filter.op]
        clauses.append(f"{_field_expression(record_filter.field, value)} {operator} %s")
        params.append(value)

    return " AND ".join(clauses), params


def build_query(
    collection: str,
    filters: Sequence[RecordFilter],
    order_by: Optional[str],
    descending: bool,
    limit: Optional[int],
) -> Tuple[str, List[Any]]:
    """Translate a filtered query into SQL and parameters"""
    where, params = _where_clause(collection, filters)
    sql = f"SELECT id, data FROM gamification_records WHERE {where}"

    if order_by:
        if not order_by.replace("_", "").isalnum():
            raise ValueError(f"Invalid order field: {order_by}")
        direction = "DESC" if descending else "ASC"
        if order_by in TIMESTAMP_FIELDS:
            sql += f" ORDER BY (data->>'{order_by}')::timestamptz {direction}"
        else:
            sql += f" ORDER BY data->>'{order_by}' {direction}"

    if limit is not None:
        sql += " LIMIT %s"
        params.append(int(limit))

    return sql, params


def build_count_query(collection: str, filters: Sequence[RecordFilter]) -> Tuple[str, List[Any]]:
    """Translate a filtered count into SQL and parameters"""
    where, params = _where_clause(collection, filters)
    return f"SELECT count(*) AS total FROM gamification_records WHERE {where}", params


class PostgresDocumentStore(DocumentStore):
    """DocumentStore over the shared psycopg connection pool"""

    def __init__(self, database: Database):
        self.db = database

    async def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist"""
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    for statement in SCHEMA_STATEMENTS:
                        await cur.execute(statement)
                await conn.commit()
            logger.info("Gamification schema ready")
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="ensure_schema")

    async def get_document(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        "SELECT value FROM gamification_documents WHERE key = %s",
                        (key,)
                    )
                    row = await cur.fetchone()
                    return dict(row["value"]) if row else None
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="get_document", key=key)

    async def set_document(self, key: str, value: Dict[str, Any], merge: bool = True) -> None:
        if merge:
            sql = """
                INSERT INTO gamification_documents (key, value)
                VALUES (%s, %s)
                ON CONFLICT (key) DO UPDATE
                SET value = gamification_documents.value || EXCLUDED.value,
                    updated_at = CURRENT_TIMESTAMP
            """
        else:
            sql = """
                INSERT INTO gamification_documents (key, value)
                VALUES (%s, %s)
                ON CONFLICT (key) DO UPDATE
                SET value = EXCLUDED.value,
                    updated_at = CURRENT_TIMESTAMP
            """
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(sql, (key, Jsonb(value)))
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="set_document", key=key)

    async def append_record(self, collection: str, record: Dict[str, Any]) -> str:
        record_id = str(uuid4())
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        INSERT INTO gamification_records (id, collection, data)
                        VALUES (%s, %s, %s)
                        """,
                        (record_id, collection, Jsonb(record))
                    )
                await conn.commit()
            return record_id
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="append_record", key=collection)

    async def query_records(
        self,
        collection: str,
        filters: Sequence[RecordFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        sql, params = build_query(collection, filters, order_by, descending, limit)
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(sql, params)
                    rows = await cur.fetchall()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="query_records", key=collection)

        results = []
        for row in rows:
            data = dict(row["data"])
            data["id"] = str(row["id"])
            results.append(data)
        return results

    async def count_records(
        self,
        collection: str,
        filters: Sequence[RecordFilter] = (),
    ) -> int:
        sql, params = build_count_query(collection, filters)
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(sql, params)
                    row = await cur.fetchone()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="count_records", key=collection)

        return int(row["total"]) if row else 0
