"""FastAPI application for the aggregator.

Runs the TCP ingestion listener for the lifetime of the application and
serves the dashboard of everything it has received.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.aggregator.routes import dashboard
from src.config import get_settings
from src.logging_config import RequestLoggingMiddleware
from src.transport.listener import IngestionListener

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the ingestion listener on startup and stop it on shutdown."""
    settings = get_settings()
    listener = IngestionListener(
        store=dashboard.get_store(),
        host=settings.ingest_host,
        port=settings.ingest_port,
        max_batch_bytes=settings.ingest_max_batch_bytes,
        max_connections=settings.ingest_max_connections,
        read_timeout=settings.ingest_read_timeout_seconds,
    )
    listener.start()
    app.state.listener = listener
    logger.info(
        "Aggregator started",
        extra={"ingest_address": f"{settings.ingest_host}:{settings.ingest_port}"},
    )
    try:
        yield
    finally:
        listener.stop(timeout=5)


app = FastAPI(
    title="CatRec Aggregator",
    description="Accumulates forwarded recommendation batches",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware, logger_name=__name__)
app.include_router(dashboard.router)


if __name__ == "__main__":
    import uvicorn

    from src.logging_config import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format, service="catrec-aggregator")

    uvicorn.run(
        app,
        host=settings.dashboard_host,
        port=settings.dashboard_port,
        log_config=None,
    )
