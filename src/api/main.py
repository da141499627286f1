"""FastAPI application main module.

This module defines the FastAPI application for the CatRec recommendation
API: exception handlers, CORS and request logging middleware, health and
status endpoints. Running it directly loads the catalog and serves the API.
"""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.cors import PreflightCORSMiddleware
from src.api.metrics import metrics_service
from src.api.routes import recommendations
from src.exceptions import CatRecException, InvalidRequestError
from src.logging_config import RequestLoggingMiddleware

logger = logging.getLogger(__name__)

# Create FastAPI application instance
app = FastAPI(
    title="CatRec API",
    description="Best-in-category product recommendation service",
    version="0.1.0",
)

# Last added runs first: request logging wraps CORS handling
app.add_middleware(PreflightCORSMiddleware, path_prefix="/api/recommendations")
app.add_middleware(RequestLoggingMiddleware, logger_name=__name__)

# Include routers
app.include_router(recommendations.router)


def _error_response(exc: CatRecException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.exception_handler(CatRecException)
async def catrec_exception_handler(request: Request, exc: CatRecException) -> JSONResponse:
    """Convert CatRec errors into JSON error responses."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        exc.message,
        extra={"path": str(request.url.path), "status_code": exc.status_code},
    )
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 Bad Request."""
    errors = exc.errors()
    reason = errors[0]["msg"] if errors else "malformed request"
    error = InvalidRequestError(
        reason,
        details={"errors": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in errors]},
    )
    logger.warning(error.message, extra={"path": str(request.url.path)})
    return _error_response(error)


@app.get("/ping")
def ping() -> Dict[str, str]:
    """Health check endpoint.

    Returns:
        Dictionary with status key set to "ok".
    """
    return {"status": "ok"}


@app.get("/status")
def status() -> Dict[str, Any]:
    """Report whether the catalog is loaded and how large it is."""
    return recommendations.get_catalog_status()


@app.get("/metrics")
def metrics() -> Dict[str, Any]:
    """Forwarding and request metrics since startup."""
    return metrics_service.get_metrics()


if __name__ == "__main__":
    import sys

    import uvicorn

    from src.config import get_settings
    from src.logging_config import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format, service="catrec-api")

    # The catalog must be available before the API starts serving
    try:
        recommendations.load_catalog_if_needed(settings.catalog_path)
    except CatRecException as e:
        logger.critical(e.message, extra=e.details)
        sys.exit(1)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )
