"""
Document store for sessions and availability records.

The scheduling core only needs point lookups by id, equality filters
(coachId, clientId, status) and full-record writes, so storage is a
plain document store: JSON documents grouped into collections.

Two implementations:
- SnowflakeDocumentStore: one `documents` table with a VARIANT body.
- InMemoryDocumentStore: dictionaries, for local development and tests.
"""

import copy
import json
import logging
import re
import threading
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from ..errors import StorageError
from ..snowflake.client import SnowflakeConnection

logger = logging.getLogger(__name__)

# {field: (lower, upper)}
Ranges = dict[str, tuple[Optional[datetime], Optional[datetime]]]


class DocumentStore(Protocol):
    """
    Protocol for document storage.

    Filters are field equality (`filters`) and field inequality
    (`exclude`) on top-level document keys. `ranges` bounds ISO-8601
    timestamp fields by (lower, upper), both inclusive, either may be None.
    """

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    def find(
        self,
        collection: str,
        filters: Optional[dict[str, Any]] = None,
        exclude: Optional[dict[str, Any]] = None,
        ranges: Optional[Ranges] = None,
    ) -> list[dict]:
        ...

    def insert(self, collection: str, doc_id: str, document: dict) -> None:
        ...

    def replace(self, collection: str, doc_id: str, document: dict) -> None:
        """Overwrite an existing document. Raises StorageError if absent."""
        ...

    def upsert(self, collection: str, doc_id: str, document: dict) -> None:
        ...

    def ping(self) -> None:
        """Raise if the store cannot be reached."""
        ...


# ---------------------------------------------------------------------------
# Snowflake
# ---------------------------------------------------------------------------

DOCUMENTS_DDL = """
    CREATE TABLE IF NOT EXISTS documents (
        collection VARCHAR NOT NULL,
        doc_id VARCHAR NOT NULL,
        body VARIANT NOT NULL,
        created_at TIMESTAMP_TZ DEFAULT CURRENT_TIMESTAMP(),
        updated_at TIMESTAMP_TZ DEFAULT CURRENT_TIMESTAMP(),
        PRIMARY KEY (collection, doc_id)
    )
"""

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _field_path(name: str) -> str:
    """VARIANT path for a top-level field, cast for comparison."""
    # Field names are interpolated into SQL, so only plain identifiers pass.
    if not _FIELD_NAME.match(name):
        raise StorageError(f"Invalid filter field: {name!r}")
    return f'body:"{name}"::string'


def _timestamp_path(name: str) -> str:
    """VARIANT path for an ISO-8601 field, parsed as TIMESTAMP_TZ."""
    return f"TRY_TO_TIMESTAMP_TZ({_field_path(name)})"


def _as_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored ISO-8601 value; naive values are UTC."""
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _within(value: Any, lower: Optional[datetime], upper: Optional[datetime]) -> bool:
    stamp = _as_timestamp(value)
    if stamp is None:
        return False
    return (lower is None or stamp >= lower) and (upper is None or stamp <= upper)


def _parse_variant_json(variant_data):
    """
    Parse Snowflake VARIANT data that might be a string or already parsed.

    snowflake-connector-python returns VARIANT columns as JSON strings;
    other drivers and test fakes may hand back dicts.
    """
    if not variant_data:
        return None

    if isinstance(variant_data, str):
        try:
            return json.loads(variant_data)
        except json.JSONDecodeError as e:
            logger.error(
                "Failed to parse VARIANT JSON string",
                extra={"variant_data": variant_data[:100], "error": str(e)},
            )
            raise StorageError("Stored document is not valid JSON") from e

    return variant_data


class SnowflakeDocumentStore:
    """
    Document store backed by a single Snowflake table.

    Each write commits immediately. The connection is owned by the
    caller (normally a per-request dependency).
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def ensure_schema(self) -> None:
        self._execute(DOCUMENTS_DDL, (), commit=True)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        rows = self._fetch(
            "SELECT body FROM documents WHERE collection = %s AND doc_id = %s",
            (collection, doc_id),
        )
        if not rows:
            return None
        return _parse_variant_json(rows[0][0])

    def find(
        self,
        collection: str,
        filters: Optional[dict[str, Any]] = None,
        exclude: Optional[dict[str, Any]] = None,
        ranges: Optional[Ranges] = None,
    ) -> list[dict]:
        clauses = ["collection = %s"]
        params: list[Any] = [collection]

        for name, value in (filters or {}).items():
            clauses.append(f"{_field_path(name)} = %s")
            params.append(str(value))

        for name, value in (exclude or {}).items():
            # Missing fields count as "not equal".
            clauses.append(f"({_field_path(name)} IS NULL OR {_field_path(name)} <> %s)")
            params.append(str(value))

        for name, (lower, upper) in (ranges or {}).items():
            path = _timestamp_path(name)
            if lower is not None:
                clauses.append(f"{path} >= TO_TIMESTAMP_TZ(%s)")
                params.append(lower.isoformat())
            if upper is not None:
                clauses.append(f"{path} <= TO_TIMESTAMP_TZ(%s)")
                params.append(upper.isoformat())

        query = f"SELECT body FROM documents WHERE {' AND '.join(clauses)}"
        return [_parse_variant_json(row[0]) for row in self._fetch(query, tuple(params))]

    def insert(self, collection: str, doc_id: str, document: dict) -> None:
        # PARSE_JSON is not allowed in a VALUES clause, hence INSERT ... SELECT.
        self._execute(
            """
            INSERT INTO documents (collection, doc_id, body)
            SELECT %s, %s, PARSE_JSON(%s)
            """,
            (collection, doc_id, json.dumps(document)),
            commit=True,
        )

    def replace(self, collection: str, doc_id: str, document: dict) -> None:
        rowcount = self._execute(
            """
            UPDATE documents
            SET body = PARSE_JSON(%s), updated_at = CURRENT_TIMESTAMP()
            WHERE collection = %s AND doc_id = %s
            """,
            (json.dumps(document), collection, doc_id),
            commit=True,
        )
        if rowcount == 0:
            raise StorageError(f"No {collection} document with id {doc_id}")

    def upsert(self, collection: str, doc_id: str, document: dict) -> None:
        body = json.dumps(document)
        self._execute(
            """
            MERGE INTO documents AS target
            USING (SELECT %s AS collection, %s AS doc_id, PARSE_JSON(%s) AS body) AS source
            ON target.collection = source.collection AND target.doc_id = source.doc_id
            WHEN MATCHED THEN UPDATE SET
                body = source.body,
                updated_at = CURRENT_TIMESTAMP()
            WHEN NOT MATCHED THEN INSERT (collection, doc_id, body)
                VALUES (source.collection, source.doc_id, source.body)
            """,
            (collection, doc_id, body),
            commit=True,
        )

    def ping(self) -> None:
        self._fetch("SELECT 1", ())

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _fetch(self, query: str, params: tuple) -> list:
        cursor = self._conn.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        except Exception as e:
            logger.error(
                "Snowflake query failed",
                extra={"query": " ".join(query.split())[:100], "error": str(e)},
            )
            raise StorageError(f"Query failed: {e}") from e
        finally:
            cursor.close()

    def _execute(self, query: str, params: tuple, commit: bool = False) -> int:
        cursor = self._conn.cursor()
        try:
            cursor.execute(query, params)
            if commit:
                self._conn.commit()
            return cursor.rowcount
        except Exception as e:
            logger.error(
                "Snowflake write failed",
                extra={"query": " ".join(query.split())[:100], "error": str(e)},
            )
            raise StorageError(f"Write failed: {e}") from e
        finally:
            cursor.close()


# ---------------------------------------------------------------------------
# In-memory store for local development
# ---------------------------------------------------------------------------

class InMemoryDocumentStore:
    """
    Document store kept in process memory.

    Documents are deep-copied on the way in and out, so callers never
    share mutable state with the store. Not suitable for production, but
    enough for local development, unit tests and CI.
    """

    def __init__(self) -> None:
        # {collection: {doc_id: document}}
        self._collections: dict[str, dict[str, dict]] = {}
        self._lock = threading.Lock()

        logger.info("Initialized in-memory document store")

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            document = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(document) if document is not None else None

    def find(
        self,
        collection: str,
        filters: Optional[dict[str, Any]] = None,
        exclude: Optional[dict[str, Any]] = None,
        ranges: Optional[Ranges] = None,
    ) -> list[dict]:
        filters = filters or {}
        exclude = exclude or {}
        ranges = ranges or {}
        with self._lock:
            return [
                copy.deepcopy(document)
                for document in self._collections.get(collection, {}).values()
                if all(document.get(k) == v for k, v in filters.items())
                and all(document.get(k) != v for k, v in exclude.items())
                and all(_within(document.get(k), lo, hi) for k, (lo, hi) in ranges.items())
            ]

    def insert(self, collection: str, doc_id: str, document: dict) -> None:
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            if doc_id in docs:
                raise StorageError(f"Duplicate {collection} document id {doc_id}")
            docs[doc_id] = copy.deepcopy(document)
        logger.debug("Inserted document", extra={"collection": collection, "doc_id": doc_id})

    def replace(self, collection: str, doc_id: str, document: dict) -> None:
        with self._lock:
            docs = self._collections.get(collection, {})
            if doc_id not in docs:
                raise StorageError(f"No {collection} document with id {doc_id}")
            docs[doc_id] = copy.deepcopy(document)
        logger.debug("Replaced document", extra={"collection": collection, "doc_id": doc_id})

    def upsert(self, collection: str, doc_id: str, document: dict) -> None:
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(document)
        logger.debug("Upserted document", extra={"collection": collection, "doc_id": doc_id})

    def ping(self) -> None:
        return None

    def clear(self) -> None:
        """Drop everything (for test cleanup)."""
        with self._lock:
            self._collections.clear()
