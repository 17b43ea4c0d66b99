"""
CareFlow Reminder Service

Application entry point. On startup the reminder service is wired from
settings and the hourly scheduler is started; both are kept on app.state
for the admin endpoints. On shutdown the scheduler is stopped before the
HTTP clients and database engine are released.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from careflow.api.routes import health, reminders
from careflow.config import VERSION, settings
from careflow.core.reminders import (
    build_reminder_scheduler,
    build_reminder_service,
    close_reminder_service,
)
from careflow.infra.database import close_db, init_db


def setup_logging() -> None:
    """Root logging for the API process and the reminder CLI."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Third-party loggers stay quiet unless debugging
    quiet = logging.INFO if settings.debug else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(quiet)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


async def _start_reminders(app: FastAPI) -> None:
    service = build_reminder_service(settings)
    scheduler = build_reminder_scheduler(settings, service)
    app.state.reminder_service = service
    app.state.reminder_scheduler = scheduler
    await scheduler.start()


async def _stop_reminders(app: FastAPI) -> None:
    scheduler = getattr(app.state, "reminder_scheduler", None)
    if scheduler is not None:
        await scheduler.stop()

    service = getattr(app.state, "reminder_service", None)
    if service is not None:
        await close_reminder_service(service)
    logger.info("Reminder pipeline stopped")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")
    health.set_start_time()

    # Development databases get their tables created on boot
    if settings.is_development:
        try:
            await init_db()
            logger.info("Database tables initialized")
        except Exception as e:
            logger.warning(f"Database init skipped: {e}")

    await _start_reminders(app)
    logger.info(f"Listening on http://{settings.host}:{settings.port}")

    yield

    logger.info("Shutting down...")
    await _stop_reminders(app)
    await close_db()
    logger.info("Shutdown complete")


app = FastAPI(
    title="CareFlow Reminder Service",
    description=(
        "Email and SMS reminders for upcoming NDIS support appointments. "
        "A reminder cycle runs every hour; `/reminders` endpoints require "
        "the admin key in the `X-API-Key` header."
    ),
    version=VERSION,
    docs_url="/docs" if settings.is_development else None,
    redoc_url=None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "Validation error", "detail": exc.errors()},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Last-resort handler; internals are only echoed back in development."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.is_development else "Internal server error",
        },
    )


@app.middleware("http")
async def log_request_timing(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    if settings.debug:
        logger.debug(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {time.perf_counter() - started:.3f}s"
        )
    return response


app.include_router(health.router)
app.include_router(reminders.router)


@app.get("/", tags=["Root"])
async def root() -> dict:
    return {
        "name": settings.app_name,
        "version": VERSION,
        "environment": settings.app_env,
        "reminders_enabled": settings.reminders_enabled,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "careflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level="debug" if settings.debug else "info",
    )
