"""CatRec: best-in-category product recommendations with batch aggregation.

This package provides two services: a recommendation API that picks the
highest rated alternative product per category and forwards the result, and
an aggregator that accumulates every forwarded batch and renders it as a
live dashboard.

Modules:
    api: FastAPI recommendation service
    recommender: Catalog loading and category matching
    transport: TCP forwarding and ingestion of batches
    aggregator: Accumulation store and dashboard service
"""

__version__ = "0.1.0"
