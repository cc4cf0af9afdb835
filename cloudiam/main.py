"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from .config import settings
from .config.database import init_db, close_db
from .core.errors import (
    AlreadyExistsError,
    CloudIamError,
    DependentsExistError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    ProviderError,
    UnimplementedError,
)
from .middleware.rate_limit import limiter, rate_limit_exceeded_handler
from .routers import accounts, credentials, csp_roles, idp_configs, policies, roles, sync
from .schemas.shared import ErrorResponse
from .utils.logger import configure_logging, get_logger

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Most specific class first
ERROR_STATUS_CODES = (
    (NotFoundError, 404),
    (DependentsExistError, 409),
    (AlreadyExistsError, 400),
    (InvalidArgumentError, 400),
    (InvalidStateError, 400),
    (UnimplementedError, 501),
    (ProviderError, 502),
)


def status_code_for(exc: CloudIamError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting application", version=settings.app_version)
    await init_db()
    yield
    # Shutdown
    logger.info("Shutting down application")
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Cross-cloud trust configuration, role mapping and temporary credential issuance",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(CloudIamError)
async def cloudiam_exception_handler(request: Request, exc: CloudIamError):
    """Map typed domain errors to HTTP status codes."""
    status_code = status_code_for(exc)
    logger.info(
        "Request failed",
        path=request.url.path,
        status_code=status_code,
        error=exc.__class__.__name__,
        detail=exc.message,
    )
    body = ErrorResponse(detail=exc.message, error_code=exc.__class__.__name__, entity=exc.entity)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.app_version}


# Include routers
app.include_router(accounts.router)
app.include_router(idp_configs.router)
app.include_router(policies.router)
app.include_router(csp_roles.router)
app.include_router(roles.router)
app.include_router(credentials.router)
app.include_router(sync.router)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cloudiam.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
