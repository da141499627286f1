"""Dashboard endpoints for the aggregator.

Serves the accumulated products as an HTML table. The page is rendered from
a snapshot, so batches arriving mid-render do not show up half-written.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from src.aggregator.dashboard import render_dashboard
from src.aggregator.store import AccumulationStore
from src.config import Settings, get_settings

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])

# Process-wide store shared by the ingestion listener and the dashboard
_store = AccumulationStore()


def get_store() -> AccumulationStore:
    """Return the process-wide accumulation store."""
    return _store


@router.get("/", response_class=HTMLResponse)
def dashboard(
    store: AccumulationStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> HTMLResponse:
    """Render every product received so far, in store order."""
    snapshot = store.snapshot()
    logger.debug("Rendering dashboard", extra={"num_items": len(snapshot)})
    return HTMLResponse(
        render_dashboard(snapshot, refresh_seconds=settings.dashboard_refresh_seconds)
    )


@router.get("/ping")
def ping(store: AccumulationStore = Depends(get_store)) -> Dict[str, Any]:
    """Health check that also reports how much has been accumulated."""
    return {"status": "ok", "items": len(store), "batches": store.batch_count}
