"""
Bread Quality Inspection — Main Application

FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import structlog
from datetime import datetime

from config import settings, check_storage
from services.catalog_service import get_catalog_service
from exceptions import SeedDataError, StorageError

# Configure structured logging
logging.basicConfig(format="%(message)s", level=settings.log_level)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if settings.is_production
            else structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: Seed the catalog if it is empty
    Shutdown: Nothing to release
    """
    # Startup
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug,
        storage_backend=settings.storage_backend,
        crm_target=settings.crm_target
    )

    app.state.init_error = None
    try:
        count = get_catalog_service().initialize()
        logger.info("catalog_ready", products=count)
    except (SeedDataError, StorageError) as e:
        # API stays up so /health can report it; /api routes refuse
        app.state.init_error = e
        logger.error("catalog_initialization_failed", error=e.message, details=e.details)

    yield

    # Shutdown
    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="Bread Quality Inspection",
    description="Batch quality checks against reference loaves, reported to Bitrix24",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def block_until_initialized(request: Request, call_next):
    """Refuse API calls while the catalog failed to initialize."""
    init_error = getattr(request.app.state, "init_error", None)
    if init_error is not None and request.url.path.startswith("/api/"):
        return JSONResponse(
            status_code=init_error.status_code,
            content=init_error.to_dict()
        )
    return await call_next(request)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns:
        Storage status and catalog initialization state
    """
    storage_status = check_storage()
    init_error = getattr(request.app.state, "init_error", None)

    healthy = storage_status["status"] == "healthy" and init_error is None

    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
        "storage": storage_status,
        "catalog": init_error.to_dict()["error"] if init_error else {"status": "ready"}
    }


@app.get("/")
async def root():
    """
    Root endpoint.

    Returns:
        API information and available endpoints
    """
    return {
        "name": "Bread Quality Inspection API",
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            "products": "/api/products",
            "inspection": "/api/inspection",
            "preferences": "/api/preferences"
        }
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Catches unhandled exceptions and returns standard error format.
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.utcnow().isoformat()
            }
        }
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes.products import router as products_router
from routes.inspection import router as inspection_router
from routes.preferences import router as preferences_router

app.include_router(products_router, prefix="/api/products", tags=["Products"])
app.include_router(inspection_router, prefix="/api/inspection", tags=["Inspection"])
app.include_router(preferences_router, prefix="/api/preferences", tags=["Preferences"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
