"""
Document storage for scheduling data.

Snowflake in production, in-memory for local development and tests.
"""

from .store import (
    DocumentStore,
    InMemoryDocumentStore,
    SnowflakeDocumentStore,
    StorageError,
)

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "SnowflakeDocumentStore",
    "StorageError",
]
