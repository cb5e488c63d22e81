"""
Catalog Module
==============

Nail design reference data.

Components:
    - DesignCatalog: Read-only lookup, filtering and search
    - load_catalog: YAML loader with built-in sample fallback
"""

from prettynails.catalog.catalog import SAMPLE_DESIGNS, DesignCatalog, load_catalog

__all__ = [
    "SAMPLE_DESIGNS",
    "DesignCatalog",
    "load_catalog",
]
