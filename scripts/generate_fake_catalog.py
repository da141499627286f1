"""Generate a fake product catalog for testing and development.

Creates a CSV file with a header row and the columns the catalog loader
expects: product identifier, category and star rating.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_catalog.py

    Or import and use programmatically:
        from scripts.generate_fake_catalog import generate_fake_catalog
        df = generate_fake_catalog(num_products=200, num_categories=10)
"""

import argparse
import random
from pathlib import Path
from typing import Optional

import pandas as pd

# Default configuration constants
DEFAULT_NUM_PRODUCTS = 100
DEFAULT_NUM_CATEGORIES = 8
DEFAULT_MAX_STARS = 5.0
DEFAULT_OUTPUT = "data/catalog.csv"


def generate_fake_catalog(
    num_products: int = DEFAULT_NUM_PRODUCTS,
    num_categories: int = DEFAULT_NUM_CATEGORIES,
    max_stars: float = DEFAULT_MAX_STARS,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """Generate a synthetic product catalog.

    Args:
        num_products: Number of products. Must be positive.
        num_categories: Number of distinct categories. Must be positive.
        max_stars: Highest possible rating. Ratings are rounded to one decimal.
        seed: Optional random seed for reproducible output.

    Returns:
        A pandas DataFrame with the following columns:
            - product_id: String identifier such as "P0001"
            - category: Category name such as "category_3"
            - stars: Rating between 0 and max_stars

    Raises:
        ValueError: If any count is non-positive or max_stars is negative.
    """
    if num_products <= 0 or num_categories <= 0:
        raise ValueError("num_products and num_categories must be positive")
    if max_stars < 0:
        raise ValueError("max_stars must be non-negative")

    rng = random.Random(seed)
    width = len(str(num_products))

    rows = [
        {
            "product_id": f"P{index:0{width}d}",
            "category": f"category_{rng.randint(1, num_categories)}",
            "stars": round(rng.uniform(0, max_stars), 1),
        }
        for index in range(1, num_products + 1)
    ]

    return pd.DataFrame(rows, columns=["product_id", "category", "stars"])


def main() -> None:
    """Generate a catalog and save it as CSV."""
    parser = argparse.ArgumentParser(description="Generate a fake product catalog CSV")
    parser.add_argument("--num-products", type=int, default=DEFAULT_NUM_PRODUCTS)
    parser.add_argument("--num-categories", type=int, default=DEFAULT_NUM_CATEGORIES)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument(
        "--output",
        type=str,
        default=DEFAULT_OUTPUT,
        help=f"Output CSV path (default: {DEFAULT_OUTPUT})",
    )
    args = parser.parse_args()

    print(f"Generating {args.num_products} products in {args.num_categories} categories...")

    try:
        df = generate_fake_catalog(
            num_products=args.num_products,
            num_categories=args.num_categories,
            seed=args.seed,
        )
    except ValueError as e:
        print(f"Error generating data: {e}")
        return

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)

    print(f"\nCatalog generated successfully!")
    print(f"Saved to: {output_path}")
    print(f"\nData preview:")
    print(df.head(10))
    print(f"\nProducts per category:")
    print(df["category"].value_counts().sort_index().to_string())


if __name__ == '__main__':
    main()
