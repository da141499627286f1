"""HTML rendering of the accumulated products."""

from html import escape
from typing import Iterable, Optional

from src.recommender.catalog import Product

PAGE_TITLE = "Received Products"

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
{refresh}<title>{title}</title>
</head>
<body>
<h1>{title}</h1>
<p>{count} products received</p>
<table border="1">
<tr>
<th>ID</th>
<th>Category</th>
<th>Stars</th>
</tr>
{rows}
</table>
</body>
</html>
"""

_ROW_TEMPLATE = "<tr>\n<td>{id}</td>\n<td>{category}</td>\n<td>{stars}</td>\n</tr>"


def format_stars(stars: float) -> str:
    """Print a rating exactly, without a trailing ``.0`` (``5``, ``4.5``)."""
    text = repr(float(stars))
    return text[:-2] if text.endswith(".0") else text


def render_row(product: Product) -> str:
    return _ROW_TEMPLATE.format(
        id=escape(product.id),
        category=escape(product.category),
        stars=format_stars(product.stars),
    )


def render_dashboard(
    items: Iterable[Product], refresh_seconds: Optional[int] = None
) -> str:
    """Render a snapshot of the store as an HTML page.

    One table row per product, in the order given. Nothing is filtered or
    reordered.

    Args:
        items: Snapshot of accumulated products.
        refresh_seconds: When set, the page reloads itself at this interval.

    Returns:
        The HTML document.
    """
    rows = [render_row(product) for product in items]
    refresh = (
        f'<meta http-equiv="refresh" content="{int(refresh_seconds)}">\n'
        if refresh_seconds
        else ""
    )
    return _PAGE_TEMPLATE.format(
        refresh=refresh,
        title=PAGE_TITLE,
        count=len(rows),
        rows="\n".join(rows),
    )
