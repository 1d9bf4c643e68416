"""SQLite schema management (code-first approach)."""

import logging

from src.core import db_client
from src.core.module_registry import get_all_indexes, get_all_table_schemas


logger = logging.getLogger(__name__)


async def init_db(*, db_path: str | None = None) -> None:
    """Create every registered module's tables and indexes if they are missing."""
    schemas = get_all_table_schemas()
    async with db_client.write_transaction(db_path=db_path) as conn:
        for table_name, ddl in schemas.items():
            await conn.execute(ddl)
            logger.debug("Ensured table", extra={"table": table_name})

        for index_ddl in get_all_indexes():
            await conn.execute(index_ddl)

    logger.info("Database schema initialized", extra={"tables": sorted(schemas)})
