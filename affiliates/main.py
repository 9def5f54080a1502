"""
FastAPI Application Entry Point

Sets up the FastAPI app, the database lifecycle, middleware, error
handlers and routers.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from affiliates.config import settings
from affiliates.database import Database
from affiliates.errors import RegistryError, ValidationError
from affiliates.routers import admin, health, verify

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: open the connection pool, create tables if configured,
      attach the handle to ``app.state.database``
    - Shutdown: close the pool
    """
    logger.info("Starting Affiliate Registry Service...")
    database = Database(settings)
    await database.connect()
    if settings.auto_create_schema:
        await database.init_schema()
    app.state.database = database
    logger.info("Affiliate Registry Service started successfully")

    yield

    logger.info("Shutting down Affiliate Registry Service...")
    await database.disconnect()
    logger.info("Affiliate Registry Service stopped")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    # Affiliate Registry API

    Membership records for a mutual-aid association:

    - **Verification**: look up an affiliate by national ID or by name
    - **Credentials**: download a PDF membership card
    - **Administration**: add, edit and remove affiliates (PIN header)
    - **Audit Log**: every admin change is recorded in the same transaction
    """,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan
)


# ============================================================================
# Middleware
# ============================================================================

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["Content-Type", settings.admin_header_name],
    )


@app.middleware("http")
async def add_request_timing(request: Request, call_next):
    """Add request timing header for monitoring."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(RegistryError)
async def registry_exception_handler(request: Request, exc: RegistryError):
    """Render domain errors as a structured failure body."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """
    Render request-shape errors, such as a JSON boolean sent as a national
    ID, as a ValidationError naming the first offending field.
    """
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = first.get("loc") or ()
    field = str(loc[-1]) if loc else None
    error = ValidationError(first.get("msg", "Invalid request"), field=field)
    return await registry_exception_handler(request, error)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Returns generic error responses to prevent information leakage.
    Detailed errors are logged internally.
    """
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


# ============================================================================
# Include Routers
# ============================================================================

# Public verification and credentials
app.include_router(verify.router)

# Admin mutations and audit log
app.include_router(admin.router)

# Health check and monitoring
app.include_router(health.router)


@app.get("/", tags=["root"])
async def root():
    """Basic service information."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "affiliates.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers
    )
