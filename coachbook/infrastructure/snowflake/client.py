"""
Snowflake database connection management.

Provides the connection factory and context manager used by the
Snowflake document store. Supports password and key-pair authentication.

Most code never touches this module directly - it goes through the
repositories, which go through the document store.
"""

import base64
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Optional, Protocol

from ..errors import StorageError

logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a fake without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "COACHBOOK"
    schema: str = "SCHEDULING"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


class SnowflakeConnectionError(StorageError):
    """Raised when a Snowflake connection cannot be opened."""
    pass


def _load_private_key(
    key_path: Optional[str] = None,
    key_base64: Optional[str] = None,
) -> bytes:
    """
    Load a PEM private key for key-pair authentication.

    Snowflake wants the key as DER bytes, not a file path. The key can
    come from a file (local dev) or a base64 env var (deployments).
    """
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    if key_base64:
        pem = base64.b64decode(key_base64)
    else:
        with open(key_path, "rb") as key_file:
            pem = key_file.read()

    private_key = serialization.load_pem_private_key(
        pem,
        password=None,
        backend=default_backend(),
    )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Key-pair auth is used when a private key is configured, otherwise
    password auth. The connection is always closed on exit.

    Usage:
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            # do work
            conn.commit()
    """
    try:
        import snowflake.connector
    except ImportError:
        raise ImportError(
            "snowflake-connector-python is required. "
            "Install with: pip install snowflake-connector-python"
        )

    connect_params = {
        "account": config.account,
        "user": config.user,
        "database": config.database,
        "schema": config.schema,
        "warehouse": config.warehouse,
        "role": config.role,
        "client_session_keep_alive": True,
    }

    if config.private_key_path or config.private_key_base64:
        logger.info("Using key-pair authentication for Snowflake")
        connect_params["private_key"] = _load_private_key(
            config.private_key_path, config.private_key_base64
        )
    elif config.password:
        logger.info("Using password authentication for Snowflake")
        connect_params["password"] = config.password
    else:
        raise SnowflakeConnectionError(
            "Either password or private key must be provided"
        )

    try:
        conn = snowflake.connector.connect(**connect_params)
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account},
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}") from e

    logger.debug(
        "Established Snowflake connection",
        extra={
            "account": config.account,
            "database": config.database,
            "schema": config.schema,
        },
    )

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)},
            )
