import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from polis.db.base import Base
from polis.db.session import Database

logger = logging.getLogger(__name__)


def bootstrap_schema(database: Database) -> List[str]:
    """
    Create every table and index that does not exist yet.

    Tables go first, in foreign-key order, then indexes. Each statement runs
    on its own: a failure is logged and the rest still run. Returns the names
    of the objects that could not be created.
    """
    engine = database.engine
    failed = []

    for table in Base.metadata.sorted_tables:
        try:
            table.create(bind=engine, checkfirst=True)
            logger.info(f"Table ready: {table.name}")
        except SQLAlchemyError as e:
            logger.error(f"Error creating table {table.name}: {e}")
            failed.append(table.name)

    for table in Base.metadata.sorted_tables:
        if table.name in failed:
            continue
        for index in sorted(table.indexes, key=lambda i: i.name):
            try:
                index.create(bind=engine, checkfirst=True)
                logger.info(f"Index ready: {index.name}")
            except SQLAlchemyError as e:
                logger.error(f"Error creating index {index.name}: {e}")
                failed.append(index.name)

    if failed:
        logger.warning(f"Schema bootstrap finished with failures: {failed}")
    return failed
