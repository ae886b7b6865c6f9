"""
Schema bootstrap script.
Creates every missing table and index, then exits 0, or 1 if anything failed.
Run this as: python init_db.py
"""

import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("db-init")


def main() -> int:
    try:
        from polis.core.config import settings
    except Exception as e:
        # Missing AZURE_SQL_CONNECTION_STRING ends up here
        logger.error(f"Invalid configuration: {e}")
        return 1

    from polis.db.init_db import bootstrap_schema
    from polis.db.session import Database

    database = Database(settings.database_url)
    try:
        database.open()
        failed = bootstrap_schema(database)
    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {e}")
        return 1
    finally:
        database.close()

    if failed:
        logger.error(f"Database initialization failed for: {', '.join(failed)}")
        return 1
    logger.info("Database initialization completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
