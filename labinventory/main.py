"""
Lab inventory service

Component catalog, borrowing ledger and procurement advisory behind one
REST API.
"""

from contextlib import asynccontextmanager

from alembic import command
from alembic.config import Config as AlembicConfig
from alembic.util import CommandError
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from labinventory.core import ServiceHealth, setup_logging, RequestLoggingMiddleware, get_logger
from labinventory.core_settings import get_settings
from labinventory.domain.errors import InventoryError
from labinventory.infrastructure.db import engine, init_models
from labinventory.api.admin import router as admin_router
from labinventory.api.general import router as general_router
from labinventory.api.student import router as student_router

MIGRATIONS_LOCATION = "labinventory:migrations"
DESCRIPTION = "Lab component inventory, borrowing and procurement service"

settings = get_settings()

setup_logging(
    service_name=settings.SERVICE_NAME,
    level=settings.LOG_LEVEL,
    environment=settings.ENVIRONMENT,
    version=settings.SERVICE_VERSION,
)

logger = get_logger(__name__)

def run_migrations() -> None:
    """Upgrade the schema to head with the migrations shipped in the package."""
    cfg = AlembicConfig()
    cfg.set_main_option("script_location", MIGRATIONS_LOCATION)
    cfg.attributes["configure_logger"] = False
    with engine.begin() as connection:
        cfg.attributes["connection"] = connection
        command.upgrade(cfg, "head")

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Starting {settings.SERVICE_NAME} {settings.SERVICE_VERSION}",
        extra={'extra_fields': {'environment': settings.ENVIRONMENT, 'run_migrations': settings.RUN_MIGRATIONS}}
    )
    if settings.RUN_MIGRATIONS:
        try:
            run_migrations()
            logger.info("Database schema at head")
        except (CommandError, SQLAlchemyError) as e:
            # create_all below still gives a usable schema on a fresh database
            logger.error(f"Migration failed: {e}")
    init_models()
    yield
    logger.info(f"Stopping {settings.SERVICE_NAME}")

app = FastAPI(
    title=settings.SERVICE_NAME,
    description=DESCRIPTION,
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    logger.warning(
        f"{exc.error}: {exc.detail}",
        extra={'extra_fields': {'path': request.url.path, 'error': exc.error}}
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies are a ValidationError like any other (400, not 422)
    problems = [
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "ValidationError", "detail": "; ".join(problems)})

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}",
        exc_info=exc,
        extra={'extra_fields': {'path': request.url.path}}
    )
    return JSONResponse(status_code=500, content={"error": "InternalError", "detail": "Server error"})

health = ServiceHealth(settings.SERVICE_NAME, settings.SERVICE_VERSION, engine, settings)
app.include_router(health.create_health_router())
for router in (general_router, student_router, admin_router):
    app.include_router(router)

@app.get("/")
async def index():
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "environment": settings.ENVIRONMENT,
        "description": DESCRIPTION,
        "docs": app.docs_url,
        "apis": [general_router.prefix, student_router.prefix, admin_router.prefix],
    }
