"""
FastAPI application entry point.

This is the main application that ties together all components:
- API routes for invoices and system preferences
- Database lifecycle management
- Mapping of domain errors to HTTP responses
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from invoicing import __version__
from invoicing.api.routes import health, invoices, preferences
from invoicing.api.schemas import ErrorResponse
from invoicing.config import get_settings
from invoicing.domain.errors import (
    InvoiceError,
    InvoiceNotFound,
    InvoiceRuleViolation,
    InvoiceValidationError,
)
from invoicing.infrastructure.database import close_db, init_db

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Creates missing tables on startup and disposes the engine on shutdown.
    """
    settings = get_settings()

    logger.info(f"Starting invoicing v{__version__}")
    logger.info(f"Invoice number format (default): {settings.invoice_number_format}")
    logger.info(f"Debug mode: {settings.debug}")

    init_db()
    logger.info("Database initialized")

    yield  # Application runs here

    logger.info("Shutting down invoicing")
    close_db()


def _error_status(exc: InvoiceError) -> int:
    if isinstance(exc, InvoiceNotFound):
        return 404
    if isinstance(exc, InvoiceRuleViolation):
        return 409
    if isinstance(exc, InvoiceValidationError):
        return 422
    return 400


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance ready to serve requests.
    """
    settings = get_settings()

    app = FastAPI(
        title="Invoicing API",
        description=(
            "Invoice management core.\n\n"
            "Issues sequentially numbered VAT invoices, computes totals "
            "with exact decimal arithmetic and enforces the invoice status workflow."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(invoices.router, prefix="/api/v1")
    app.include_router(preferences.router, prefix="/api/v1")

    @app.exception_handler(InvoiceError)
    async def invoice_error_handler(request: Request, exc: InvoiceError):
        """Domain errors are expected outcomes; report them with their code."""
        status_code = _error_status(exc)
        logger.info(f"{request.method} {request.url.path} rejected ({status_code}): {exc.message}")
        body = ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            code=exc.code,
            details=exc.details or None,
        )
        return JSONResponse(status_code=status_code, content=body.model_dump())

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch-all exception handler for unhandled errors."""
        logger.exception(f"Unhandled error: {exc}")

        # Don't expose internal errors in production
        if settings.debug:
            detail = str(exc)
        else:
            detail = "An internal error occurred"

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "detail": detail,
            },
        )

    return app


# Create the application instance
app = create_app()


# Development server entry point
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "invoicing.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
