import asyncio
import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from student_api.api.deps import PoolDep
from student_api.core.config import settings
from student_api.core.errors import (
    PERMISSION_DENIED_MESSAGE,
    DatabaseError,
    PermissionDeniedError,
    QueryError,
    describe,
    is_mysql_access_denied,
)
from student_api.core.pool import PoolManager, fetch_all
from student_api.models import ErrorMessage, Student

logger = logging.getLogger(__name__)

router = APIRouter(tags=["students"])

FETCH_FAILED_MESSAGE = "Failed to retrieve student data."


def students_query() -> str:
    return f"SELECT id, name, email FROM {settings.STUDENTS_TABLE}"


async def fetch_students(pool: PoolManager) -> list[Student]:
    async with pool.connection() as conn:
        try:
            rows = await pool.call(conn, fetch_all, students_query())
        except Exception as exc:
            if is_mysql_access_denied(exc):
                raise PermissionDeniedError(cause=exc) from exc
            raise QueryError(describe(exc), cause=exc) from exc
    try:
        return [Student.model_validate(row) for row in rows]
    except ValidationError as exc:
        raise QueryError(f"unexpected row shape: {exc}", cause=exc) from exc


@router.get(
    "/students",
    response_model=list[Student],
    responses={403: {"model": ErrorMessage}, 500: {"model": ErrorMessage}},
)
async def list_students(pool: PoolDep) -> Any:
    """All student records. Driver errors are logged, never returned."""
    try:
        return await asyncio.wait_for(fetch_students(pool), timeout=settings.REQUEST_TIMEOUT)
    except PermissionDeniedError:
        logger.warning("Error fetching students: permission denied")
        return JSONResponse(status_code=403, content={"error": PERMISSION_DENIED_MESSAGE})
    except asyncio.TimeoutError:
        logger.error("Error fetching students: timed out after %ss", settings.REQUEST_TIMEOUT)
        return JSONResponse(status_code=500, content={"error": FETCH_FAILED_MESSAGE})
    except DatabaseError:
        logger.exception("Error fetching students")
        return JSONResponse(status_code=500, content={"error": FETCH_FAILED_MESSAGE})
