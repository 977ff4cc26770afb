"""
Info overlay - shows the caption text of the current media in a box.
"""

import asyncio
import logging

import numpy as np

from nodefolio.core.base import Tool, ViewerContext
from nodefolio.core.config import TextSettings
from nodefolio.core.errors import MetadataFetchError
from nodefolio.tools.text import TextLayout

logger = logging.getLogger(__name__)

NO_INFO = "No info available"
NOT_FOUND = "Info file not found"
LOADING = "Loading info..."


class InfoTool(Tool):
    """
    Draws the current item's info text over the image.

    The text is fetched asynchronously whenever the tool is activated or the
    viewer switches media. Only the most recent fetch may update the text.
    """

    kind = "info"

    def __init__(self, settings: TextSettings | None = None, layout: TextLayout | None = None):
        super().__init__()
        self.settings = settings or TextSettings()
        self.layout = layout or TextLayout(self.settings.cache_size)
        self.text = LOADING
        self._token = 0
        self._task: asyncio.Task | None = None

    def activate(self, context: ViewerContext) -> bool:
        if not super().activate(context):
            return False
        self.refresh()
        return True

    def on_media_changed(self, context: ViewerContext) -> None:
        self.context = context
        self.refresh()

    def info_path(self) -> str | None:
        """Media-level info file first, then the item's."""
        if self.context is None:
            return None
        media = self.context.current_media()
        if media is not None and getattr(media, "info_path", None):
            return media.info_path
        item = self.context.current_item
        return getattr(item, "info_path", None)

    def refresh(self) -> None:
        """Start fetching the text for the current media."""
        self._token += 1
        token = self._token
        self._cancel_task()

        path = self.info_path()
        if not path:
            self.text = NO_INFO
            return

        self.text = LOADING
        coro = self._fetch(token, path)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # headless: nothing else is running, finish the fetch now
            asyncio.run(coro)
            return
        self._task = loop.create_task(coro)

    async def _fetch(self, token: int, path: str) -> None:
        fetch = getattr(self.context, "fetch_text", None)
        if fetch is None:
            text = NOT_FOUND
        else:
            try:
                text = await fetch(path)
            except asyncio.CancelledError:
                raise
            except MetadataFetchError as e:
                logger.warning("%s", e)
                text = NOT_FOUND
            except Exception:
                logger.exception("Fetching info for %s failed", path)
                text = NOT_FOUND

        if token != self._token:
            logger.debug("Discarding stale info for %s", path)
            return
        self.text = text or NO_INFO
        self._task = None
        if self.context is not None:
            self.context.request_render()

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def transform(self, buffer: np.ndarray, surface) -> np.ndarray:
        surface.write_pixels(buffer)
        self.layout.draw_text_box(
            surface,
            self.text,
            padding=self.settings.padding,
            line_height=self.settings.line_height,
        )
        return surface.read_pixels()

    def cleanup(self) -> None:
        self._token += 1
        self._cancel_task()
        self.text = LOADING
