"""Category-winner recommendation logic.

For a set of requested product identifiers, recommends the best rated
alternative in every category the request touches, never recommending one
of the requested products back.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from src.recommender.catalog import Catalog, Product

# Configure module logger
logger = logging.getLogger(__name__)

ID_SEPARATOR = ","


@dataclass
class CategoryMatch:
    """Outcome of matching a request against the catalog.

    Attributes:
        recommendations: One winner per covered category, in the order the
            categories first appear in the request.
        categories: Categories covered by the valid requested ids.
        excluded_ids: Valid requested ids; never recommended.
        unknown_ids: Requested ids absent from the catalog, in request order.
    """

    recommendations: List[Product] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    excluded_ids: Set[str] = field(default_factory=set)
    unknown_ids: List[str] = field(default_factory=list)


def split_product_ids(raw_ids: str) -> List[str]:
    """Split a comma separated id string into trimmed ids."""
    return [part.strip() for part in raw_ids.split(ID_SEPARATOR)]


def _best_candidate(
    catalog: Catalog, category: str, excluded_ids: Set[str]
) -> Optional[Product]:
    # Index is ordered by (-stars, id): the first eligible entry is the winner,
    # which makes the lowest identifier win among equal ratings.
    for product in catalog.products_in_category(category):
        if product.id not in excluded_ids:
            return product
    return None


def match_categories(ids: Iterable[str], catalog: Catalog) -> CategoryMatch:
    """Find the best rated alternative for each category in a request.

    Each id is trimmed and looked up in the catalog. Unknown ids are logged
    and ignored. The categories of the valid ids are collected, and for each
    one the highest rated catalog product that was not itself requested is
    picked. Categories without such a product are left out.

    Args:
        ids: Requested product identifiers. May contain unknown ids,
            duplicates and surrounding whitespace.
        catalog: Read-only product catalog.

    Returns:
        CategoryMatch with the winners and the bookkeeping sets.
    """
    match = CategoryMatch()

    for raw_id in ids:
        product_id = raw_id.strip()
        product = catalog.get(product_id)
        if product is None:
            logger.warning(
                "Product ID not found in catalog",
                extra={"product_id": product_id},
            )
            match.unknown_ids.append(product_id)
            continue

        match.excluded_ids.add(product_id)
        if product.category not in match.categories:
            match.categories.append(product.category)

    for category in match.categories:
        winner = _best_candidate(catalog, category, match.excluded_ids)
        if winner is None:
            logger.debug(
                "No eligible alternative in category",
                extra={"category": category},
            )
            continue
        match.recommendations.append(winner)

    return match


def find_best_recommendations(ids: Iterable[str], catalog: Catalog) -> List[Product]:
    """Return the category winners for the requested ids.

    Example:
        >>> find_best_recommendations(["A1", "B1"], catalog)
        [Product(id='A2', ...), Product(id='B2', ...)]
    """
    return match_categories(ids, catalog).recommendations


class RecommendationEngine:
    """Computes category winners over a fixed catalog."""

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def match(self, ids: Iterable[str]) -> CategoryMatch:
        start_time = time.time()
        ids = list(ids)
        match = match_categories(ids, self.catalog)

        logger.info(
            "Recommendations computed",
            extra={
                "num_requested": len(ids),
                "num_unknown": len(match.unknown_ids),
                "num_categories": len(match.categories),
                "num_recommendations": len(match.recommendations),
                "compute_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return match

    def compute(self, ids: Iterable[str]) -> List[Product]:
        return self.match(ids).recommendations
