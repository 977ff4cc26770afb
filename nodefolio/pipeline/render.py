"""
Render pipeline - composites the viewer frame through the tool chain.

Tools are registered by the id of the node that hosts them, but executed in
graph order: the pipeline walks the edges backward from the viewer and
runs the upstream-most tool first, regardless of registration order.
"""

import logging
from collections import deque
from typing import Callable

import numpy as np

from nodefolio.core.base import MANAGED, Tool
from nodefolio.core.config import Config
from nodefolio.core.errors import MediaLoadError, ToolTransformError
from nodefolio.core.surface import DrawingSurface, KeyEvent, PointerEvent
from nodefolio.pipeline.loader import load_image_async, read_image

logger = logging.getLogger(__name__)


class RenderPipeline:
    """
    Produces the composited buffer shown in a viewer.

    Args:
        graph: Object exposing ``list_edges()`` (normally a GraphStore)
        viewer_id: Id of the viewer node the chain ends at
        surface: Shared drawing surface. A new one is created if omitted.
        config: Settings; only ``viewer`` and ``pipeline`` sections are used
        content_box: Callable returning the viewer's (width, height) content box

    Example:
        >>> pipeline = RenderPipeline(store, "viewer")
        >>> pipeline.add_tool(InvertTool(), "tool-0")
        >>> pipeline.set_image(rgba)
        >>> frame = pipeline.frame()
    """

    def __init__(
        self,
        graph,
        viewer_id: str,
        surface: DrawingSurface | None = None,
        config: Config | None = None,
        content_box: Callable[[], tuple[int, int]] | None = None,
    ):
        self.graph = graph
        self.viewer_id = viewer_id
        self.surface = surface or DrawingSurface()
        self.config = config or Config()
        self._content_box = content_box or (
            lambda: (self.config.viewer.content_width, self.config.viewer.content_height)
        )
        self._tools: dict[str, Tool] = {}

        self.source_image: np.ndarray | None = None
        self.source_path: str | None = None
        self.current_frame: np.ndarray | None = None
        self.needs_base_redraw = False
        self.frame_count = 0
        self.errors: deque[ToolTransformError] = deque(maxlen=self.config.pipeline.max_errors)

        # Loads are numbered when they start; a completion older than the
        # last applied one is dropped.
        self._load_seq = 0
        self._applied_seq = 0
        self._rendering = False

    # ------------------------------------------------------------------
    # Tool registration
    # ------------------------------------------------------------------

    @property
    def compositing(self) -> bool:
        """True while at least one tool is registered."""
        return bool(self._tools)

    def has_tools(self) -> bool:
        return bool(self._tools)

    def add_tool(self, tool: Tool, host_node_id: str) -> None:
        """Register ``tool`` under its hosting node id and re-render."""
        if host_node_id in self._tools:
            logger.warning("Replacing tool registered on %s", host_node_id)
        self._tools[host_node_id] = tool
        self.render()

    def remove_tool(self, host_node_id: str) -> Tool | None:
        """
        Unregister the tool hosted by ``host_node_id``.

        With no tools left the viewer falls back to the plain scaled image.
        """
        tool = self._tools.pop(host_node_id, None)
        if tool is None:
            return None
        if not self._tools:
            logger.debug("No tools left; showing plain image")
        self.render()
        return tool

    def tool_for(self, host_node_id: str) -> Tool | None:
        return self._tools.get(host_node_id)

    def registered_tools(self) -> dict[str, Tool]:
        return dict(self._tools)

    def tools(self) -> list[Tool]:
        """Tools reachable upstream of the viewer, in execution order."""
        return self.resolve_tool_order()

    # ------------------------------------------------------------------
    # Order resolution
    # ------------------------------------------------------------------

    def resolve_chain(self) -> list[tuple[str, Tool]]:
        """
        Walk the edges backward from the viewer collecting (host_id, tool).

        The result runs upstream to downstream. A revisited node means the
        graph has a cycle: the walk stops and the partial chain is used.
        """
        sources_of: dict[str, list[str]] = {}
        for src, dst in self.graph.list_edges():
            sources_of.setdefault(dst, []).append(src)

        chain: list[tuple[str, Tool]] = []
        visited = {self.viewer_id}
        current = self.viewer_id
        while True:
            sources = sources_of.get(current)
            if not sources:
                break
            if len(sources) > 1:
                logger.debug("Node %s has %d inputs; following %s", current, len(sources), sources[0])
            parent = sources[0]
            if parent in visited:
                logger.warning(
                    "Cycle in graph at %s; truncating tool chain to %d tool(s)",
                    parent, len(chain),
                )
                break
            visited.add(parent)
            tool = self._tools.get(parent)
            if tool is not None:
                chain.insert(0, (parent, tool))
            current = parent
        return chain

    def resolve_tool_order(self) -> list[Tool]:
        return [tool for _, tool in self.resolve_chain()]

    # ------------------------------------------------------------------
    # Image loading
    # ------------------------------------------------------------------

    def _next_load(self) -> int:
        self._load_seq += 1
        return self._load_seq

    def _apply_image(self, seq: int, image: np.ndarray, path: str | None) -> bool:
        if seq < self._applied_seq:
            logger.debug("Dropping stale image load #%d (have #%d)", seq, self._applied_seq)
            return False
        self._applied_seq = seq
        self.source_image = image
        self.source_path = path
        self.needs_base_redraw = True
        self.render()
        return True

    def set_image(self, image: np.ndarray, path: str | None = None) -> bool:
        """Use an already decoded RGBA image as the source and render."""
        if image.ndim != 3 or image.shape[2] != 4 or image.dtype != np.uint8:
            raise ValueError(f"Expected an RGBA uint8 image, got {image.shape} {image.dtype}")
        return self._apply_image(self._next_load(), image, path)

    def load_image_sync(self, path: str) -> bool:
        """
        Blocking variant of ``load_image``.

        Raises:
            MediaLoadError: If the image cannot be read; the previous frame stays
        """
        seq = self._next_load()
        image = read_image(path)
        return self._apply_image(seq, image, str(path))

    async def load_image(self, path: str) -> bool:
        """
        Decode ``path`` without blocking the loop, then render.

        Returns:
            False if a newer load finished first and this result was dropped

        Raises:
            MediaLoadError: If the image cannot be read; the previous frame stays
        """
        seq = self._next_load()
        try:
            image = await load_image_async(path)
        except MediaLoadError as e:
            logger.warning("%s", e)
            raise
        return self._apply_image(seq, image, str(path))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def target_size(self, src_width: int, src_height: int) -> tuple[int, int]:
        """Fit the source into the content box, keeping aspect and never upscaling."""
        max_w, max_h = self._content_box()
        scale = min(max_w / src_width, max_h / src_height, 1.0)
        return max(1, int(src_width * scale)), max(1, int(src_height * scale))

    def render(self) -> np.ndarray | None:
        """
        Composite one frame.

        Returns:
            The final RGBA buffer, or None if no image is loaded
        """
        if self.source_image is None:
            return None
        if self._rendering:
            logger.debug("render() re-entered; keeping current frame")
            return self.current_frame

        self._rendering = True
        try:
            return self._render()
        finally:
            self._rendering = False

    def _render(self) -> np.ndarray:
        src_h, src_w = self.source_image.shape[:2]
        width, height = self.target_size(src_w, src_h)
        self.surface.draw_image(self.source_image, width, height)
        self.needs_base_redraw = False
        buffer = self.surface.read_pixels()

        chain = self.resolve_chain()
        last = len(chain) - 1
        for index, (host_id, tool) in enumerate(chain):
            # Tools get a read-only view; the pipeline owns the buffer
            view = buffer.view()
            view.flags.writeable = False
            try:
                result = tool.transform(view, self.surface)
                if result is not MANAGED and (
                    not isinstance(result, np.ndarray) or result.shape != buffer.shape
                ):
                    raise ValueError(
                        f"transform returned {getattr(result, 'shape', type(result).__name__)}, "
                        f"expected {buffer.shape}"
                    )
            except Exception as e:
                error = ToolTransformError(host_id, tool.kind, e)
                self.errors.append(error)
                logger.warning("%s", error, exc_info=e)
                # Undo anything the tool painted before failing
                self.surface.write_pixels(buffer)
                continue

            if result is MANAGED:
                buffer = self.surface.read_pixels()
            elif result is view:
                # pass-through
                continue
            else:
                buffer = np.ascontiguousarray(result, dtype=np.uint8)
                if index != last:
                    self.surface.write_pixels(buffer)

        self.surface.write_pixels(buffer)
        self.current_frame = buffer
        self.frame_count += 1
        return buffer

    def frame(self) -> np.ndarray | None:
        """Copy of the most recently rendered frame."""
        return None if self.current_frame is None else self.current_frame.copy()

    # ------------------------------------------------------------------
    # Input and teardown
    # ------------------------------------------------------------------

    def handle_pointer(self, event: PointerEvent) -> None:
        self.surface.dispatch_pointer(event)

    def handle_key(self, event: KeyEvent) -> None:
        self.surface.dispatch_key(event)

    def cleanup(self) -> None:
        """Clean up every registered tool and drop the loaded image."""
        for tool in self._tools.values():
            tool.cleanup()
        self._tools.clear()
        self.source_image = None
        self.source_path = None
        self.current_frame = None
