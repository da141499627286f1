"""Recommendation module for CatRec.

This module contains the product catalog, loaded once from a delimited file,
and the category-winner logic that picks the best rated alternative product
for every category a request touches.
"""
