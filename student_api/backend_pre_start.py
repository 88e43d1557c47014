import asyncio
import logging
import sys

from student_api.core.config import settings
from student_api.core.errors import DatabaseError
from student_api.core.log import setup_logging
from student_api.core.pool import PoolManager, ping

logger = logging.getLogger(__name__)


async def init(pool: PoolManager) -> bool:
    """Open (or reuse) one connection and ping it. Never raises DatabaseError."""
    try:
        async with pool.connection() as conn:
            await pool.call(conn, ping)
    except DatabaseError as exc:
        logger.error("Error connecting to database: %s", exc)
        return False
    except Exception:
        logger.exception("Error connecting to database")
        return False
    logger.info("Successfully connected to the database.")
    return True


async def _run() -> bool:
    pool = PoolManager(settings.connection_config)
    try:
        return await init(pool)
    finally:
        await pool.dispose()


def main() -> None:
    setup_logging()
    logger.info("Checking database connectivity")
    ok = asyncio.run(_run())
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
