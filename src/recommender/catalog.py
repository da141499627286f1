"""Product catalog loading and lookup.

The catalog is built once from a delimited file at process start and is
read-only afterwards, so recommendation requests can read it from many
threads without locking.
"""

import logging
import math
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Tuple

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from src.exceptions import CatalogLoadError

# Configure module logger
logger = logging.getLogger(__name__)

# Positional catalog columns: identifier, category, rating
ID_COLUMN = 0
CATEGORY_COLUMN = 1
RATING_COLUMN = 2


class Product(BaseModel):
    """A catalog product as it travels over the wire.

    Attributes:
        id: Unique product identifier.
        category: Category the product belongs to.
        stars: Non-negative rating.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique product identifier")
    category: str = Field(..., description="Product category")
    stars: float = Field(..., description="Product rating")


class Catalog(Mapping[str, Product]):
    """Immutable mapping from product identifier to Product.

    Besides plain lookups, the catalog keeps a per-category index of products
    ordered by descending rating and then ascending identifier.
    """

    def __init__(self, products: Mapping[str, Product]):
        self._products = MappingProxyType(dict(products))

        by_category: Dict[str, List[Product]] = {}
        for product in self._products.values():
            by_category.setdefault(product.category, []).append(product)

        self._by_category = MappingProxyType(
            {
                category: tuple(sorted(members, key=lambda p: (-p.stars, p.id)))
                for category, members in by_category.items()
            }
        )

    @classmethod
    def from_products(cls, products: Iterable[Product]) -> "Catalog":
        """Build a catalog from products; later duplicates replace earlier ones."""
        return cls({product.id: product for product in products})

    def __getitem__(self, product_id: str) -> Product:
        return self._products[product_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._products)

    def __len__(self) -> int:
        return len(self._products)

    def __repr__(self) -> str:
        return (
            f"Catalog(products={len(self._products)}, "
            f"categories={len(self._by_category)})"
        )

    @property
    def categories(self) -> Tuple[str, ...]:
        """Distinct categories, sorted."""
        return tuple(sorted(self._by_category))

    def products_in_category(self, category: str) -> Tuple[Product, ...]:
        """Products of a category, best rated first, ties by lowest identifier."""
        return self._by_category.get(category, ())


def _parse_rating(raw: str) -> float:
    """Parse a rating cell, returning NaN when it is not a usable rating."""
    try:
        rating = float(raw)
    except (TypeError, ValueError):
        return math.nan
    if not math.isfinite(rating) or rating < 0:
        return math.nan
    return rating


def load_catalog(csv_path: str) -> Catalog:
    """Load the product catalog from a delimited file.

    The first row is a header and is skipped. Columns are read by position as
    identifier, category and rating, so header names do not matter.

    Rows whose rating is not a finite, non-negative number, and rows with
    more fields than the header, are skipped and reported in a warning.
    Rows with an empty identifier are skipped.
    When an identifier appears more than once, the last row wins.

    Args:
        csv_path: Path to the catalog file.

    Returns:
        The loaded, read-only Catalog.

    Raises:
        CatalogLoadError: If the file is missing, unreadable, empty or has
            fewer than three columns.

    Example:
        >>> catalog = load_catalog("data/catalog.csv")
        >>> catalog["A1"].category
        'cat1'
    """
    csv_file = Path(csv_path)
    if not csv_file.is_file():
        raise CatalogLoadError(
            csv_path, FileNotFoundError(f"Catalog file not found: {csv_path}")
        )

    logger.info(f"Loading catalog from {csv_path}")

    bad_lines: List[List[str]] = []

    def skip_bad_line(fields: List[str]) -> None:
        bad_lines.append(fields)
        return None

    try:
        df = pd.read_csv(
            csv_file,
            header=0,
            dtype=str,
            keep_default_na=False,
            engine="python",
            on_bad_lines=skip_bad_line,
        )
    except (
        OSError,
        UnicodeDecodeError,
        pd.errors.ParserError,
        pd.errors.EmptyDataError,
    ) as e:
        raise CatalogLoadError(csv_path, e) from e

    if df.shape[1] <= RATING_COLUMN:
        raise CatalogLoadError(
            csv_path,
            ValueError(f"Catalog needs at least 3 columns, found {df.shape[1]}"),
        )

    if bad_lines:
        logger.warning(
            "Skipping catalog rows with too many fields",
            extra={
                "catalog_path": csv_path,
                "skipped_rows": len(bad_lines),
                "sample_ids": [fields[ID_COLUMN] for fields in bad_lines[:5]],
            },
        )

    df = df.iloc[:, [ID_COLUMN, CATEGORY_COLUMN, RATING_COLUMN]].copy()
    df.columns = ["id", "category", "stars"]
    total_rows = len(df)

    df = df[df["id"].fillna("") != ""].copy()
    missing_ids = total_rows - len(df)

    df["category"] = df["category"].fillna("")
    df["stars"] = df["stars"].map(_parse_rating)
    bad_ratings = df["stars"].isna()
    if bad_ratings.any():
        logger.warning(
            "Skipping catalog rows with malformed ratings",
            extra={
                "catalog_path": csv_path,
                "skipped_rows": int(bad_ratings.sum()),
                "sample_ids": df.loc[bad_ratings, "id"].head(5).tolist(),
            },
        )
        df = df[~bad_ratings]

    if missing_ids:
        logger.warning(
            "Skipping catalog rows without an identifier",
            extra={"catalog_path": csv_path, "skipped_rows": missing_ids},
        )

    duplicated = df["id"].duplicated(keep="last")
    if duplicated.any():
        logger.warning(
            "Duplicate product identifiers in catalog, keeping the last row",
            extra={
                "catalog_path": csv_path,
                "duplicates": int(duplicated.sum()),
            },
        )

    catalog = Catalog.from_products(
        Product(id=row.id, category=row.category, stars=float(row.stars))
        for row in df.itertuples(index=False)
    )

    if not catalog:
        logger.warning(f"Catalog at {csv_path} contains no usable products")

    logger.info(
        "Catalog loaded",
        extra={
            "catalog_path": csv_path,
            "num_rows": total_rows,
            "num_products": len(catalog),
            "num_categories": len(catalog.categories),
        },
    )

    return catalog
