"""
Slideshow tool - auto-advances through the current category.
"""

import logging

import numpy as np

from nodefolio.core.base import Tool, ViewerContext
from nodefolio.pipeline.scheduler import Handle

logger = logging.getLogger(__name__)


class SlideshowTool(Tool):
    """
    Pass-through tool that selects the next item on a fixed timer.

    Composite items are stepped through image by image before the
    slideshow moves on to the next item. The last item wraps to the first.
    """

    kind = "slideshow"

    def __init__(self, interval: float = 3.0):
        super().__init__()
        self.interval = interval
        self.items: list = []
        self.item_index = 0
        self.image_index = 0
        self._timer: Handle | None = None

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.cancelled

    def activate(self, context: ViewerContext) -> bool:
        if not super().activate(context):
            return False

        self.items = self._category_items(context)
        if not self.items:
            logger.info("Slideshow has nothing to show")
            return True

        current = context.current_item
        index = _index_of(self.items, current)
        if index is not None:
            self.item_index = index
            self.image_index = context.current_image_index or 0

        self._timer = context.scheduler.call_every(self.interval, self.advance)
        return True

    @staticmethod
    def _category_items(context: ViewerContext) -> list:
        catalog = context.catalog
        if catalog is None:
            return []
        category = catalog.find_category(context.current_item)
        if category is not None:
            return catalog.items(category)
        return catalog.all_items()

    def advance(self) -> None:
        """Show the next image, or the next item once an item is exhausted."""
        if not self.items or self.context is None:
            return

        item = self.items[self.item_index]
        if getattr(item, "is_composite", False):
            self.image_index += 1
            if self.image_index >= item.image_count:
                self._next_item()
            else:
                self.context.show_image_index(self.image_index)
        else:
            self._next_item()

    def _next_item(self) -> None:
        self.image_index = 0
        self.item_index = (self.item_index + 1) % len(self.items)
        self.context.select_item(self.items[self.item_index])

    def transform(self, buffer: np.ndarray, surface) -> np.ndarray:
        return buffer

    def cleanup(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.items = []
        self.item_index = 0
        self.image_index = 0
        self.context = None


def _index_of(items: list, item) -> int | None:
    if item is None:
        return None
    for i, candidate in enumerate(items):
        if candidate is item:
            return i
    for i, candidate in enumerate(items):
        if candidate == item:
            return i
    return None
