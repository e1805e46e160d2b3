"""
Clinic Scheduler API

FastAPI application entry point that ties all components together.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder

from app.config import settings
from app.api.routes import booking, chat, health, procedures
from app.core.scheduling.demo import demo_doctors
from app.infra.database import close_db, get_session_factory, init_db
from app.infra.redis import RedisClient


def setup_logging() -> None:
    """Configure logging based on environment."""
    log_level = logging.DEBUG if settings.debug else logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )


logger = logging.getLogger(__name__)


async def prepare_database() -> None:
    """Create tables and seed demo doctors for the database backend."""
    from app.core.scheduling.sql_repository import seed_doctors

    if settings.is_development:
        await init_db()
        logger.info("Database tables initialized")

    if settings.seed_demo_data:
        inserted = await seed_doctors(get_session_factory(), demo_doctors())
        logger.info(f"Seeded {inserted} demo doctors")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # === STARTUP ===
    setup_logging()
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")
    logger.info(f"Storage backend: {settings.storage_backend}, clinic timezone: {settings.clinic_timezone}")

    health.set_start_time()

    if settings.storage_backend == "database":
        try:
            await prepare_database()
        except Exception as e:
            logger.warning(f"Database preparation skipped: {e}")

    # Sessions fall back to process memory without Redis
    try:
        redis = await RedisClient.get_client()
        if redis:
            logger.info("Redis connection established")
        else:
            logger.warning("Redis unavailable - sessions kept in process memory")
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}")

    logger.info(f"Application ready at http://{settings.host}:{settings.port}")

    yield

    # === SHUTDOWN ===
    logger.info("Shutting down application...")

    await RedisClient.close()
    await close_db()

    logger.info("Shutdown complete")


app = FastAPI(
    title="Clinic Scheduler API",
    description="""
    Medical appointment booking assistant.

    ## Features
    - Guided booking conversation (name, specialty, doctor, slot, birth date, reason)
    - Booking REST surface for form-based front ends
    - Slots generated from weekly doctor schedules over a 30-day horizon
    - Double-booking protection at the storage layer
    """,
    version=health.VERSION,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation error",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    # Don't expose internal errors in production
    detail = str(exc) if settings.is_development else "Internal server error"

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": detail,
        },
    )


@app.middleware("http")
async def request_timing_middleware(request: Request, call_next):
    """Log request duration in debug mode."""
    start_time = time.time()
    try:
        return await call_next(request)
    finally:
        if settings.debug:
            duration = time.time() - start_time
            logger.debug(
                f"{request.method} {request.url.path} "
                f"completed in {duration:.3f}s"
            )


app.include_router(health.router)
app.include_router(chat.router)
app.include_router(booking.router)
app.include_router(procedures.router)


@app.get("/", tags=["Root"])
async def root() -> dict:
    """Basic API information."""
    return {
        "name": settings.app_name,
        "version": health.VERSION,
        "status": "running",
        "environment": settings.app_env,
        "docs": "/docs" if settings.is_development else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level="debug" if settings.debug else "info",
    )
