"""
Snowflake connection handling.

Documents are stored as VARIANT JSON in a single table; see
infrastructure.documents for the store built on these connections.
"""

from .client import (
    SnowflakeConfig,
    SnowflakeConnection,
    SnowflakeConnectionError,
    get_snowflake_connection,
)

__all__ = [
    "SnowflakeConfig",
    "SnowflakeConnection",
    "SnowflakeConnectionError",
    "get_snowflake_connection",
]
