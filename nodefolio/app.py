"""
Application wiring: builds the default graph of a portfolio.
"""

import logging
from pathlib import Path

from nodefolio.catalog.items import Catalog
from nodefolio.core.config import Config
from nodefolio.graph.cables import CableLayer
from nodefolio.graph.editor import GraphEditor
from nodefolio.graph.nodes import BrowserNode, ViewerNode
from nodefolio.graph.store import CATALOG_LOADED, GraphStore
from nodefolio.graph.workspace import Workspace
from nodefolio.pipeline.loader import TextFetcher
from nodefolio.pipeline.scheduler import Scheduler
from nodefolio.tools.registry import ToolRegistry, default_registry

logger = logging.getLogger(__name__)

WORK_ID = "work"
VIEWER_ID = "viewer"


class Portfolio:
    """
    The node graph of one portfolio session.

    Starts with the catalog browser connected straight to the viewer;
    tools are spliced in between through ``editor``.

    Example:
        >>> portfolio = Portfolio(Config(), load_manifest("works_manifest.json"))
        >>> portfolio.browser.open_work()
        >>> portfolio.browser.open_category("painting")
        >>> portfolio.browser.choose(0)
        >>> portfolio.editor.insert_tool_between("work", "viewer", "invert")
    """

    def __init__(
        self,
        config: Config | None = None,
        catalog: Catalog | None = None,
        registry: ToolRegistry | None = None,
        scheduler: Scheduler | None = None,
        fetch_text: TextFetcher | None = None,
        media_root: str | Path | None = None,
        canvas_width: float = 1200,
    ):
        self.config = config or Config()
        self.catalog = catalog or Catalog.empty()
        self.registry = registry or default_registry(self.config)
        self.store = GraphStore()
        self.cables = CableLayer(self.store, self.config.cables)
        self.workspace = Workspace(self.store, self.config.workspace)

        self.browser = BrowserNode(WORK_ID, self.store, self.catalog,
                                   x=canvas_width / 2 - 125, y=100)
        self.viewer = ViewerNode(
            VIEWER_ID, self.store,
            catalog=self.catalog,
            config=self.config,
            scheduler=scheduler,
            fetch_text=fetch_text,
            media_root=media_root,
            x=canvas_width / 2 - 300, y=400,
        )
        self.store.connect(WORK_ID, VIEWER_ID)
        self.editor = GraphEditor(self.store, self.registry, self.viewer)

    @property
    def pipeline(self):
        return self.viewer.pipeline

    def set_catalog(self, catalog: Catalog) -> None:
        """Swap in a freshly loaded catalog."""
        self.catalog = catalog
        self.store.emit(CATALOG_LOADED, catalog)
        logger.info("Catalog loaded: %d item(s) in %d categories",
                    len(catalog), len(catalog.categories()))

    def select(self, category: str, index: int):
        """Open ``category`` in the browser and choose item ``index``."""
        self.browser.open_work()
        self.browser.open_category(category)
        return self.browser.choose(index)

    def to_dict(self) -> dict:
        return {
            "nodes": [node.to_dict() for node in self.store.nodes()],
            "edges": [list(edge) for edge in self.store.list_edges()],
            "cables": self.cables.to_dict(),
            "emblems": self.cables.emblems(),
            "workspace": self.workspace.to_dict(),
        }

    def close(self) -> None:
        for node_id in list(self.store.node_ids()):
            self.store.remove_node(node_id)
