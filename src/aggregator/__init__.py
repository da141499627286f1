"""Aggregator service for CatRec.

This module contains the append-only store that accumulates every
recommendation batch received over TCP, the HTML renderer for it, and the
FastAPI application that serves the live dashboard.
"""
