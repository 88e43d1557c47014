import asyncio
import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse

from student_api.api.deps import PoolDep
from student_api.core.config import settings
from student_api.core.errors import (
    DatabaseConnectionError,
    DatabaseError,
    PermissionDeniedError,
    describe,
)
from student_api.core.pool import PoolManager, ping
from student_api.models import HealthError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

HEALTHY_MESSAGE = "I am OK. Database connection successful."


async def probe_database(pool: PoolManager) -> None:
    """Acquire a connection, ping the server, release it."""
    async with pool.connection() as conn:
        try:
            await pool.call(conn, ping)
        except Exception as exc:
            raise DatabaseConnectionError(describe(exc), cause=exc) from exc


@router.get(
    "/health",
    response_class=PlainTextResponse,
    responses={403: {"model": HealthError}, 500: {"model": HealthError}},
)
async def health(pool: PoolDep) -> Any:
    """
    Database-backed health check.

    403 when the instance role cannot authenticate; 500 with the cause for
    any other failure.
    """
    try:
        await asyncio.wait_for(probe_database(pool), timeout=settings.REQUEST_TIMEOUT)
    except PermissionDeniedError as exc:
        return JSONResponse(
            status_code=403,
            content=HealthError(message=str(exc)).model_dump(),
        )
    except asyncio.TimeoutError:
        logger.error("Health check timed out after %ss", settings.REQUEST_TIMEOUT)
        return JSONResponse(
            status_code=500,
            content=HealthError(
                message=f"Health check failed: timed out after {settings.REQUEST_TIMEOUT}s"
            ).model_dump(),
        )
    except DatabaseError as exc:
        logger.error("Health check failed: %s", exc)
        return JSONResponse(
            status_code=500,
            content=HealthError(message=f"Health check failed: {exc}").model_dump(),
        )
    return PlainTextResponse(HEALTHY_MESSAGE)
