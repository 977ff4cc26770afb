"""
nodefolio - Node-graph portfolio renderer
==========================================

A portfolio presented as a small node graph: a catalog browser feeds a
viewer, and image tools can be spliced into the cable between them. The
viewer composites its frame through whatever tools sit upstream of it.

Main modules:
- nodefolio.graph: Graph store, nodes, cables and editing
- nodefolio.tools: Invert, slideshow, info overlay, smudge brush, ragdoll
- nodefolio.pipeline: Render pipeline, image loading and schedulers
- nodefolio.physics: Verlet particles, constraints and the ragdoll figure
- nodefolio.catalog: Works manifest types

Quick start:
    >>> from nodefolio import Portfolio, load_manifest
    >>> portfolio = Portfolio(catalog=load_manifest("works_manifest.json"))
    >>> portfolio.select("painting", 0)
    >>> portfolio.editor.insert_tool_between("work", "viewer", "invert")
    >>> frame = portfolio.pipeline.frame()
"""

__version__ = "0.1.0"

# Convenience imports
from nodefolio.app import Portfolio
from nodefolio.catalog import Catalog, CatalogItem, load_manifest
from nodefolio.core.config import Config
from nodefolio.tools import default_registry
