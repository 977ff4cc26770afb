"""
Catalog module - Works, media references and manifest loading.
"""

from nodefolio.catalog.items import (
    DEFAULT_CATEGORIES,
    MediaRef,
    CatalogItem,
    Catalog,
    load_manifest,
)

__all__ = [
    "DEFAULT_CATEGORIES",
    "MediaRef",
    "CatalogItem",
    "Catalog",
    "load_manifest",
]
