"""Recommendation endpoints for the CatRec API.

This module provides the endpoint that turns a list of requested product ids
into category winners and forwards them to the aggregator.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from src.api.metrics import metrics_service
from src.config import Settings, get_settings
from src.exceptions import ForwardingError
from src.recommender.catalog import Catalog, load_catalog
from src.recommender.engine import RecommendationEngine, split_product_ids
from src.transport.codec import encode_batch
from src.transport.forwarder import Forwarder

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/api",
    tags=["recommendations"],
)

# Cache for the loaded catalog
_catalog_cache: Optional[Dict[str, Any]] = None


class RecommendationRequest(BaseModel):
    """Request body for recommendation requests.

    Attributes:
        product_ids: Comma separated product identifiers. Whitespace around
            each id is ignored.
    """

    product_ids: str = Field(
        default="", description="Comma separated product identifiers"
    )


def load_catalog_if_needed(catalog_path: str) -> Catalog:
    """Load the catalog from disk if not already loaded.

    Uses a module-level cache so the file is read once per process.

    Args:
        catalog_path: Path to the catalog file.

    Returns:
        The cached Catalog.

    Raises:
        CatalogLoadError: If the catalog cannot be loaded.
    """
    global _catalog_cache

    if _catalog_cache is not None:
        return _catalog_cache["catalog"]

    catalog = load_catalog(catalog_path)
    _catalog_cache = {
        "catalog": catalog,
        "catalog_path": catalog_path,
        "loaded_at": datetime.now(timezone.utc).isoformat(),
    }
    return catalog


def get_catalog_status() -> Dict[str, Any]:
    """Describe the cached catalog without loading it."""
    if _catalog_cache is None:
        return {
            "catalog_loaded": False,
            "timestamp_last_loaded": None,
            "num_products": 0,
            "num_categories": 0,
        }

    catalog = _catalog_cache["catalog"]
    return {
        "catalog_loaded": True,
        "timestamp_last_loaded": _catalog_cache["loaded_at"],
        "num_products": len(catalog),
        "num_categories": len(catalog.categories),
    }


def get_engine(settings: Settings = Depends(get_settings)) -> RecommendationEngine:
    return RecommendationEngine(load_catalog_if_needed(settings.catalog_path))


def get_forwarder(settings: Settings = Depends(get_settings)) -> Forwarder:
    return Forwarder(
        settings.aggregator_address, timeout=settings.forward_timeout_seconds
    )


@router.post("/recommendations")
def create_recommendations(
    payload: RecommendationRequest,
    engine: RecommendationEngine = Depends(get_engine),
    forwarder: Forwarder = Depends(get_forwarder),
) -> Response:
    """Recommend the best alternative per category and forward the result.

    The ids in ``product_ids`` are matched against the catalog; the winners
    are sent to the aggregator over TCP. If the aggregator replies with any
    bytes they are returned verbatim, otherwise the response body is the JSON
    array of recommended products.

    Args:
        payload: Request body with comma separated product ids.
        engine: Recommendation engine bound to the loaded catalog.
        forwarder: Client for the aggregator's ingestion listener.

    Returns:
        JSON response with the recommendations (or the aggregator's reply).

    Raises:
        ForwardingError: If the aggregator cannot be reached (500).

    Example:
        POST /api/recommendations {"product_ids": "A1, B1"}
        Returns [{"id": "A2", ...}, {"id": "B2", ...}].
    """
    match = engine.match(split_product_ids(payload.product_ids))
    if match.unknown_ids:
        metrics_service.record_unknown_ids(len(match.unknown_ids))

    recommendations = match.recommendations
    logger.info(
        "Recommended products",
        extra={"product_ids": [product.id for product in recommendations]},
    )

    start_time = time.time()
    try:
        reply = forwarder.send(recommendations)
    except ForwardingError:
        metrics_service.record_forward(
            (time.time() - start_time) * 1000, len(recommendations), success=False
        )
        raise
    metrics_service.record_forward(
        (time.time() - start_time) * 1000, len(recommendations), success=True
    )

    body = reply if reply else encode_batch(recommendations)
    return Response(content=body, media_type="application/json")
