"""
Graph nodes: the catalog browser, the viewer and tool hosts.

Each node registers itself with the graph store on construction and keeps
its canvas-space geometry so the cable layer can route connections between
its ports.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any

import cv2

from nodefolio.catalog.items import Catalog, CatalogItem, MediaRef
from nodefolio.core.base import Tool
from nodefolio.core.config import Config
from nodefolio.core.errors import MediaLoadError
from nodefolio.core.surface import Color, DrawingSurface, FontSpec
from nodefolio.graph.store import (
    CATALOG_LOADED,
    CONNECTION_CHANGED,
    IMAGE_CHANGED,
    ITEM_SELECTED,
    STATIC_PAGE_REQUESTED,
    GraphStore,
)
from nodefolio.pipeline.loader import TextFetcher, make_text_fetcher
from nodefolio.pipeline.render import RenderPipeline
from nodefolio.pipeline.scheduler import Scheduler, default_scheduler
from nodefolio.tools.text import TextLayout

logger = logging.getLogger(__name__)

BROWSER_SIZE = (250, 60)
VIEWER_BAR_HEIGHT = 50
TOOL_SIZE = (180, 80)

PAGE_BACKGROUND: Color = (232, 230, 227, 255)
PAGE_INK: Color = (26, 26, 26, 255)
PAGE_FONT = FontSpec(cv2.FONT_HERSHEY_DUPLEX, 0.6, 1)

INFO_PAGE = """INFO & CONTACT

This is a portfolio showcasing creative work across painting, film, and audio.

Get in touch for collaborations or inquiries."""

STATIC_PAGES = {
    "info": INFO_PAGE,
    "contact": INFO_PAGE,
}


class NodeKind(Enum):
    BROWSER = "browser"
    VIEWER = "viewer"
    TOOL_HOST = "tool"


class Node:
    """
    A box on the node canvas.

    Args:
        node_id: Unique id within the store
        store: Graph store the node registers with
        x, y: Top-left corner in canvas space
        width, height: Box size
    """

    kind: NodeKind

    def __init__(
        self,
        node_id: str,
        store: GraphStore,
        x: float = 0.0,
        y: float = 0.0,
        width: float = 200.0,
        height: float = 80.0,
        has_input_port: bool = True,
        has_output_port: bool = True,
        is_removable: bool = True,
    ):
        self.id = node_id
        self.store = store
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.has_input_port = has_input_port
        self.has_output_port = has_output_port
        self.is_removable = is_removable
        store.add_node(node_id, self)

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def input_port(self) -> tuple[float, float]:
        """Anchor of the input port (top edge, centred)."""
        return (self.x + self.width / 2, self.y)

    def output_port(self) -> tuple[float, float]:
        """Anchor of the output port (bottom edge, centred)."""
        return (self.x + self.width / 2, self.y + self.height)

    def move_to(self, x: float, y: float) -> None:
        self.x, self.y = x, y
        self.store.emit(CONNECTION_CHANGED)

    def move_by(self, dx: float, dy: float) -> None:
        self.move_to(self.x + dx, self.y + dy)

    def remove(self) -> None:
        self.store.remove_node(self.id)

    def dispose(self) -> None:
        """Called by the store after the node has been removed."""
        pass

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "removable": self.is_removable,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r})"


class BrowserLevel(Enum):
    ROOT = "root"
    CATEGORIES = "categories"
    ITEMS = "items"


class BrowserNode(Node):
    """
    Catalog browser with ROOT -> CATEGORIES -> ITEMS navigation.

    Choosing an item selects it in the store; the viewer reacts to that.
    """

    kind = NodeKind.BROWSER
    ROOT_ENTRIES = ("WORK", "INFO", "CONTACT")

    def __init__(self, node_id: str, store: GraphStore, catalog: Catalog | None = None,
                 x: float = 0.0, y: float = 0.0, is_removable: bool = False):
        self.catalog = catalog or Catalog.empty()
        self.level = BrowserLevel.ROOT
        self.category: str | None = None
        super().__init__(
            node_id, store, x, y, *BROWSER_SIZE,
            has_input_port=False, is_removable=is_removable,
        )
        self._on_catalog = store.on(CATALOG_LOADED, self._catalog_loaded)

    def _catalog_loaded(self, catalog: Catalog) -> None:
        self.catalog = catalog

    def entries(self) -> list[str]:
        """Labels shown at the current level."""
        if self.level is BrowserLevel.ROOT:
            return list(self.ROOT_ENTRIES)
        if self.level is BrowserLevel.CATEGORIES:
            return [name.upper() for name in self.catalog.categories()]
        return [item.title for item in self.items()]

    def items(self) -> list[CatalogItem]:
        if self.category is None:
            return []
        return self.catalog.items(self.category)

    def _navigate(self, level: BrowserLevel, category: str | None = None) -> None:
        self.level = level
        self.category = category
        # the box changes size with its content
        self.store.emit(CONNECTION_CHANGED)

    def open_work(self) -> None:
        self._navigate(BrowserLevel.CATEGORIES)

    def open_category(self, name: str) -> None:
        self._navigate(BrowserLevel.ITEMS, name.lower())

    def back(self) -> None:
        if self.level is BrowserLevel.ITEMS:
            self._navigate(BrowserLevel.CATEGORIES)
        elif self.level is BrowserLevel.CATEGORIES:
            self._navigate(BrowserLevel.ROOT)

    def choose(self, index: int) -> CatalogItem:
        """
        Select the item at ``index`` in the open category.

        Raises:
            IndexError: If there is no such item
        """
        item = self.items()[index]
        self.store.select_item(item)
        return item

    def request_page(self, name: str) -> None:
        self.store.emit(STATIC_PAGE_REQUESTED, name)

    def dispose(self) -> None:
        self.store.off(CATALOG_LOADED, self._on_catalog)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(level=self.level.value, category=self.category, entries=self.entries())
        return data


class ViewerNode(Node):
    """
    Displays the selected work through a render pipeline.

    Implements the ``ViewerContext`` protocol, so tools attached to this
    viewer can query the current item and request renders.
    """

    kind = NodeKind.VIEWER

    def __init__(
        self,
        node_id: str,
        store: GraphStore,
        catalog: Catalog | None = None,
        config: Config | None = None,
        scheduler: Scheduler | None = None,
        fetch_text: TextFetcher | None = None,
        media_root: str | Path | None = None,
        x: float = 0.0,
        y: float = 0.0,
    ):
        self.config = config or Config()
        viewer = self.config.viewer
        self.content_width = viewer.content_width
        self.content_height = viewer.content_height
        self.catalog = catalog or Catalog.empty()
        self.scheduler = scheduler or default_scheduler()
        self.media_root = Path(media_root) if media_root else None
        self.fetch_text = fetch_text or make_text_fetcher(media_root)
        self.current_item: CatalogItem | None = None
        self.current_image_index = 0
        self.page: str | None = None
        self.layout = TextLayout(self.config.text.cache_size)
        self._loads: set[asyncio.Task] = set()

        super().__init__(
            node_id, store, x, y,
            self.content_width, self.content_height + VIEWER_BAR_HEIGHT,
            has_output_port=False,
        )
        self.pipeline = RenderPipeline(
            store, node_id, config=self.config,
            content_box=lambda: (self.content_width, self.content_height),
        )
        self._subscriptions = [
            (ITEM_SELECTED, store.on(ITEM_SELECTED, self.display_item)),
            (STATIC_PAGE_REQUESTED, store.on(STATIC_PAGE_REQUESTED, self.display_static_page)),
            (CATALOG_LOADED, store.on(CATALOG_LOADED, self._catalog_loaded)),
        ]

    def _catalog_loaded(self, catalog: Catalog) -> None:
        self.catalog = catalog

    # ------------------------------------------------------------------
    # ViewerContext
    # ------------------------------------------------------------------

    def current_media(self) -> MediaRef | None:
        if self.current_item is None:
            return None
        return self.current_item.media_at(self.current_image_index)

    def select_item(self, item: CatalogItem) -> None:
        self.store.select_item(item)

    def show_image_index(self, index: int) -> None:
        item = self.current_item
        if item is None or not 0 <= index < item.image_count:
            logger.debug("Ignoring image index %d", index)
            return
        self.current_image_index = index
        self._show_current()

    def request_render(self) -> None:
        self.pipeline.render()

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def display_item(self, item: CatalogItem) -> None:
        self.current_item = item
        self.current_image_index = 0
        self.page = None
        self._show_current()

    def next_image(self) -> bool:
        """Step forward within a composite item. Returns False at the end."""
        item = self.current_item
        if item is None or self.current_image_index >= item.image_count - 1:
            return False
        self.show_image_index(self.current_image_index + 1)
        return True

    def previous_image(self) -> bool:
        if self.current_item is None or self.current_image_index <= 0:
            return False
        self.show_image_index(self.current_image_index - 1)
        return True

    def _show_current(self) -> None:
        media = self.current_media()
        if media is not None and media.is_image:
            self._load(self.resolve(media.path))
        elif media is not None:
            logger.info("%s is a %s; nothing to composite", media.filename or media.url, media.kind)

        self.store.emit(IMAGE_CHANGED, {
            "viewer": self.id,
            "item": self.current_item,
            "index": self.current_image_index,
            "media": media,
        })
        self._notify_tools()

    def _notify_tools(self) -> None:
        for tool in self.pipeline.registered_tools().values():
            tool.on_media_changed(self)

    def resolve(self, path: str) -> str:
        """Resolve a catalog path against ``media_root``."""
        target = Path(path)
        if self.media_root is not None and not target.is_absolute():
            target = self.media_root / target.as_posix().lstrip("/")
        return str(target)

    def _load(self, path: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                self.pipeline.load_image_sync(path)
            except MediaLoadError as e:
                logger.warning("%s", e)
            return

        task = loop.create_task(self.pipeline.load_image(path))
        self._loads.add(task)
        task.add_done_callback(self._load_done)

    async def wait_loaded(self) -> None:
        """Wait for every image load started so far."""
        if self._loads:
            await asyncio.gather(*list(self._loads), return_exceptions=True)

    def _load_done(self, task: asyncio.Task) -> None:
        self._loads.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        # MediaLoadError is already logged by the pipeline
        if error is not None and not isinstance(error, MediaLoadError):
            logger.error("Image load failed", exc_info=error)

    def display_static_page(self, page: str) -> None:
        """Render a text page as an image so tools can work on it too."""
        text = STATIC_PAGES.get(page, "Page not found")
        self.page = page
        self.current_item = CatalogItem(title=page.upper())
        self.current_image_index = 0

        surface = DrawingSurface(self.content_width, self.content_height)
        surface.fill_rect(0, 0, surface.width, surface.height, PAGE_BACKGROUND)
        self.layout.draw_text_box(
            surface, text, PAGE_FONT, PAGE_INK, None, padding=40, line_height=24,
        )
        self.pipeline.set_image(surface.read_pixels(), path=f"page:{page}")
        self.store.emit(IMAGE_CHANGED, {
            "viewer": self.id,
            "item": self.current_item,
            "index": 0,
            "media": None,
        })
        self._notify_tools()

    def resize(self, width: float, height: float) -> tuple[float, float]:
        """Resize the node, respecting the minimum content size."""
        viewer = self.config.viewer
        self.width = max(viewer.min_width, width)
        self.height = max(viewer.min_height + VIEWER_BAR_HEIGHT, height)
        self.content_width = int(self.width)
        self.content_height = int(self.height - VIEWER_BAR_HEIGHT)
        self.pipeline.render()
        self.store.emit(CONNECTION_CHANGED)
        return (self.width, self.height)

    def dispose(self) -> None:
        for task in list(self._loads):
            task.cancel()
        self.pipeline.cleanup()
        for event, handler in self._subscriptions:
            self.store.off(event, handler)
        self._subscriptions = []

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        item = self.current_item
        data.update(
            item=item.title if item else None,
            image_index=self.current_image_index,
            compositing=self.pipeline.compositing,
        )
        return data


class ToolHostNode(Node):
    """A node that owns exactly one tool."""

    kind = NodeKind.TOOL_HOST

    def __init__(self, node_id: str, store: GraphStore, tool: Tool, label: str = "",
                 x: float = 0.0, y: float = 0.0):
        self.tool = tool
        self.tool_kind = tool.kind
        self.label = label or tool.kind.upper()
        super().__init__(node_id, store, x, y, *TOOL_SIZE)

    def dispose(self) -> None:
        self.tool.cleanup()

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(tool=self.tool_kind, label=self.label, active=self.tool.active)
        return data
