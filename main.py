"""FastAPI application entrypoint for the company service.

Run with:
    uvicorn main:app --host 0.0.0.0 --port 8080
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import time
import uuid

from company_service import __version__
from company_service.api.errors import register_exception_handlers
from company_service.api.routes import router
from company_service.core.config import settings
from company_service.core.logging import get_logger, setup_logging
from company_service.domain.ports import CompanyRepository, EventPublisher
from company_service.infrastructure.kafka import KafkaEventPublisher, NoOpEventPublisher
from company_service.infrastructure.memory import InMemoryCompanyRepository
from company_service.infrastructure.postgres import (
    PostgresCompanyRepository,
    create_pool,
    ensure_schema,
)
from company_service.services.companies import CompanyService

# Initialize structured logging
log_format = settings.log_json or settings.environment == "production"
setup_logging(level=settings.log_level, json_format=log_format)
logger = get_logger(__name__)

# Application metadata
APP_VERSION = __version__
APP_NAME = "Company Service"


async def build_repository() -> CompanyRepository:
    """Create the storage adapter selected by STORAGE_BACKEND."""
    if settings.storage_backend == "memory":
        return InMemoryCompanyRepository()

    pool = await create_pool(settings)
    if settings.db_auto_migrate:
        await ensure_schema(pool)
    return PostgresCompanyRepository(pool)


def build_publisher() -> EventPublisher:
    """Create the event adapter selected by KAFKA_ENABLED."""
    if not settings.kafka_enabled:
        logger.info("Kafka producer disabled")
        return NoOpEventPublisher()

    return KafkaEventPublisher(
        bootstrap_servers=settings.kafka_bootstrap_servers,
        topic=settings.kafka_topic,
        client_id=settings.kafka_client_id,
    )


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """Build adapters and the service on startup, release them on shutdown."""
    logger.info("Application starting up", extra={"version": APP_VERSION})

    repository = await build_repository()
    publisher = build_publisher()

    app_instance.state.repository = repository
    app_instance.state.publisher = publisher
    app_instance.state.company_service = CompanyService(
        repository,
        publisher,
        publish_timeout=settings.publish_timeout_seconds,
        operation_timeout=settings.request_timeout_seconds,
    )

    try:
        yield
    finally:
        logger.info("Application shutting down")
        try:
            await publisher.close()
        except Exception as e:
            logger.error(f"Error closing event publisher: {e}", exc_info=True)
        await repository.close()


app = FastAPI(
    title=APP_NAME,
    description="CRUD service for company records with mutation events",
    version=APP_VERSION,
    debug=settings.debug,
    docs_url="/docs" if settings.environment != "production" else None,  # Disable in prod
    redoc_url="/redoc" if settings.environment != "production" else None,
    lifespan=lifespan,
)

register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Middleware to log all requests with timing and status code."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    request_logger = get_logger(__name__, {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
    })

    start_time = time.time()
    request_logger.info(f"Request started: {request.method} {request.url.path}")

    try:
        response = await call_next(request)
    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        request_logger.error(
            f"Request failed: {request.method} {request.url.path}",
            extra={"duration_ms": round(duration_ms, 2), "error_type": type(e).__name__},
            exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content={"error": "internal server error", "request_id": request_id}
        )

    duration_ms = (time.time() - start_time) * 1000
    request_logger.info(
        f"Request completed: {request.method} {request.url.path}",
        extra={"status_code": response.status_code, "duration_ms": round(duration_ms, 2)}
    )

    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(router)


@app.get("/")
def root():
    """Root endpoint with basic service info."""
    return {
        "service": APP_NAME,
        "version": APP_VERSION,
        "status": "running",
        "environment": settings.environment
    }


@app.get("/health/live")
def liveness_check():
    """Liveness probe. Returns 200 while the process is serving."""
    return {"status": "ok"}


@app.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness probe - verifies the database is reachable.

    Returns 503 when the storage backend does not answer.
    """
    services = {}
    database_ok = await request.app.state.repository.ping()
    services["database"] = "healthy" if database_ok else "unhealthy"
    services["events"] = "kafka" if settings.kafka_enabled else "disabled"

    body = {"status": "ok" if database_ok else "unhealthy", "services": services}
    return JSONResponse(status_code=200 if database_ok else 503, content=body)
