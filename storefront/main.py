from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from storefront.config import settings
from storefront.api.v1.router import api_router
from storefront.core.errors import StorefrontError, InternalError
from storefront.database import init_db, async_session_factory

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup creates any missing tables; production schemas are managed by
    the Alembic revisions under alembic/versions.
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    yield

    logger.info("Shutting down...")


OPENAPI_TAGS = [
    {"name": "Stores", "description": "Tenant stores every other resource is scoped to"},
    {"name": "Products", "description": "Products and their stock counters"},
    {"name": "Customers", "description": "Canonical customers, contact variants and merges"},
    {"name": "Orders", "description": "Orders, status changes and stock reservation"},
    {"name": "Returns", "description": "Return requests and restocking"},
]

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


@app.exception_handler(StorefrontError)
async def storefront_exception_handler(request: Request, exc: StorefrontError):
    """Render domain errors as {"detail", "type", ...extra}."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything unexpected becomes a 500 InternalError body."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = InternalError("Internal server error")
    body = error.to_dict()
    if settings.DEBUG:
        body["error"] = str(exc)
    return JSONResponse(status_code=error.status_code, content=body)


HEALTH_QUERY = "SELECT 1"


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness plus a round trip to the database; 503 when the database is unreachable."""
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError

    database = "connected"
    try:
        async with async_session_factory() as session:
            await session.scalar(text(HEALTH_QUERY))
    except SQLAlchemyError as e:
        logger.error(f"Health check could not reach the database: {e}")
        database = "unreachable"

    body = {
        "status": "healthy" if database == "connected" else "unhealthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "checks": {"database": database},
    }
    return JSONResponse(status_code=200 if database == "connected" else 503, content=body)


@app.get("/", tags=["Root"])
async def root():
    return {"app": settings.APP_NAME, "version": settings.APP_VERSION, "docs": "/docs"}
