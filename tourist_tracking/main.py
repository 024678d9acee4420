# tourist_tracking/main.py

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from tourist_tracking.api.dependencies import get_components
from tourist_tracking.api.middleware import AuditTriggerMiddleware, CorrelationIdMiddleware
from tourist_tracking.api.routers import health, locations, partitions, tourists
from tourist_tracking.application.exceptions import ApplicationError, PartitionIOError
from tourist_tracking.config.logging import configure_logging
from tourist_tracking.config.settings import get_settings
from tourist_tracking.domain.exceptions import DomainError, DomainValidationError

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the background retention loop; cancel it on shutdown."""
    retention_task = None
    if settings.retention_enabled:
        components = get_components()
        retention_task = asyncio.create_task(
            components.retention.run_periodically(settings.retention_interval_seconds)
        )
        logger.info(
            "retention_task_started",
            extra={"interval_seconds": settings.retention_interval_seconds},
        )
    yield
    if retention_task is not None:
        retention_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await retention_task


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    lifespan=lifespan,
)

# Middleware order: last added runs first (outermost). Request flow: CorrelationId -> AuditTrigger.
app.add_middleware(AuditTriggerMiddleware)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(DomainValidationError)
async def domain_validation_error_handler(request, exc: DomainValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message})


@app.exception_handler(DomainError)
async def domain_error_handler(request, exc: DomainError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(PartitionIOError)
async def partition_io_error_handler(request, exc: PartitionIOError):
    return JSONResponse(
        status_code=503,
        content={"detail": exc.message, "partition": exc.partition},
    )


@app.exception_handler(ApplicationError)
async def application_error_handler(request, exc: ApplicationError):
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    logger.exception("unhandled_error")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Routers: /health, /locations, /tourists, /partitions
app.include_router(health.router)
app.include_router(locations.router, prefix="/locations")
app.include_router(tourists.router, prefix="/tourists")
app.include_router(partitions.router, prefix="/partitions")
