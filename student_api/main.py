import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import sentry_sdk
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.middleware.cors import CORSMiddleware

from student_api.api.main import api_router
from student_api.backend_pre_start import init as check_database
from student_api.core.config import settings
from student_api.core.log import setup_logging
from student_api.core.pool import PoolManager

_logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    return f"{route.tags[0]}-{route.name}"


if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    pool = PoolManager(settings.connection_config)
    app.state.pool_manager = pool
    # Startup probe is informational only; the service starts either way.
    startup_check = asyncio.create_task(check_database(pool))
    try:
        yield
    finally:
        # Bounded by DB_CONNECT_TIMEOUT.
        await startup_check
        stats = pool.stats()
        _logger.info(
            "Shutting down: closing %d idle DB connection(s)", stats["idle_connections"]
        )
        closed = await pool.dispose()
        _logger.info("DB connections closed (%d)", closed)


app = FastAPI(
    title=settings.PROJECT_NAME,
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Catch-all for unhandled exceptions: log and return 500 with safe message."""
    _logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    detail = "Internal server error"
    if settings.ENVIRONMENT == "local":
        detail = f"Internal server error: {exc}"
    return JSONResponse(
        status_code=500,
        content={"detail": detail},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.all_cors_origins,
    allow_credentials=settings.all_cors_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


def run() -> None:
    """Console entry point. uvicorn drains in-flight requests on SIGINT/SIGTERM,
    then the lifespan closes the idle pool and the process exits 0."""
    setup_logging()
    _logger.info("Listening on %s", settings.PORT)
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
