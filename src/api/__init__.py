"""FastAPI application module for CatRec.

This module contains the recommendation API: the endpoint that computes
category winners and forwards them to the aggregator, plus health, status
and metrics endpoints.
"""
