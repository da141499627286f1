"""CLI script for getting category-winner recommendations.

Useful for testing a catalog without running the API. Prints the winners
for a comma separated list of product ids and can optionally forward them
to a running aggregator.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.exceptions import CatalogLoadError, ForwardingError
from src.recommender.catalog import load_catalog
from src.recommender.engine import match_categories, split_product_ids
from src.transport.forwarder import forward_batch

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Recommend the best rated alternative per category",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/recommend_cli.py "A1,B1"
  python scripts/recommend_cli.py "A1, B1" --catalog data/catalog.csv
  python scripts/recommend_cli.py "A1,B1" --forward localhost:8080
        """
    )

    parser.add_argument(
        "product_ids",
        type=str,
        help="Comma separated product ids"
    )

    parser.add_argument(
        "--catalog",
        type=str,
        default="data/catalog.csv",
        help="Catalog CSV file (default: data/catalog.csv)"
    )

    parser.add_argument(
        "--forward",
        type=str,
        metavar="HOST:PORT",
        default=None,
        help="Also send the recommendations to an aggregator"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    try:
        catalog = load_catalog(args.catalog)
    except CatalogLoadError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    match = match_categories(split_product_ids(args.product_ids), catalog)

    print(f"\nCategories covered: {', '.join(match.categories) or '(none)'}")
    if match.unknown_ids:
        print(f"Unknown ids: {', '.join(match.unknown_ids)}")

    print(f"\nRecommendations ({len(match.recommendations)}):")
    for product in match.recommendations:
        print(f"  {product.id:<12} {product.category:<20} {product.stars:g}")

    if args.forward:
        host, _, port = args.forward.rpartition(":")
        try:
            reply = forward_batch((host or "localhost", int(port)), match.recommendations)
        except (ValueError, ForwardingError) as e:
            print(f"\nError forwarding: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"\nForwarded to {args.forward} (reply: {len(reply)} bytes)")

    print()


if __name__ == "__main__":
    main()
