#!/usr/bin/env python3
"""
Create the Snowflake table that holds session and availability documents.

Safe to run repeatedly; the table is only created if missing.

Usage:
    python scripts/init_schema.py

Requires:
    - .env file with Snowflake credentials (see coachbook/config/settings.py)
"""

import logging
import sys
from pathlib import Path

# Make the package importable when run from a checkout
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from coachbook.config.settings import get_settings
from coachbook.infrastructure.documents.store import SnowflakeDocumentStore
from coachbook.infrastructure.snowflake.client import get_snowflake_connection

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)
logger = logging.getLogger("init_schema")


def main() -> int:
    settings = get_settings()

    if settings.snowflake_mock_mode:
        logger.error("SNOWFLAKE_MOCK_MODE is on; nothing to initialize")
        return 1

    missing = settings.validate_required_fields()
    if missing:
        logger.error("Missing configuration: %s", ", ".join(missing))
        return 1

    with get_snowflake_connection(settings.snowflake_config()) as conn:
        SnowflakeDocumentStore(conn).ensure_schema()

    logger.info(
        "Documents table ready in %s.%s",
        settings.snowflake_database,
        settings.snowflake_schema,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
