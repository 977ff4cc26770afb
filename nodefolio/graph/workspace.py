"""
Pan/zoom state of the node canvas.

Screen coordinates map to canvas coordinates as
``screen = canvas * scale + pan``.
"""

import math

from nodefolio.core.config import WorkspaceSettings
from nodefolio.core.surface import KEY_DOWN, KEY_UP, KeyEvent
from nodefolio.graph.store import GraphStore

PAN_KEY = "Space"


class Workspace:
    """
    View transform for the canvas holding the nodes.

    Example:
        >>> ws = Workspace(store)
        >>> ws.zoom_at(0, 0, -10000)
        >>> ws.scale
        3.0
    """

    def __init__(self, store: GraphStore, settings: WorkspaceSettings | None = None):
        self.store = store
        self.settings = settings or WorkspaceSettings()
        self.scale = 1.0
        self.pan_x = 0.0
        self.pan_y = 0.0
        self.pan_key_down = False
        self.panning = False
        self._pan_start = (0.0, 0.0)

    def _clamp(self, scale: float) -> float:
        return max(self.settings.min_scale, min(self.settings.max_scale, scale))

    def set_scale(self, scale: float, anchor_x: float = 0.0, anchor_y: float = 0.0) -> None:
        """Zoom to ``scale`` keeping the screen point (anchor_x, anchor_y) fixed."""
        new_scale = self._clamp(scale)
        ratio = (new_scale - self.scale) / self.scale
        self.pan_x -= (anchor_x - self.pan_x) * ratio
        self.pan_y -= (anchor_y - self.pan_y) * ratio
        self.scale = new_scale

    def zoom_at(self, x: float, y: float, delta: float) -> None:
        """
        Wheel zoom around the screen point (x, y).

        ``delta`` follows the wheel convention: negative zooms in.
        """
        self.set_scale(self.scale * math.exp(-delta * self.settings.zoom_intensity), x, y)

    # ------------------------------------------------------------------
    # Panning
    # ------------------------------------------------------------------

    def handle_key(self, event: KeyEvent) -> None:
        """Holding Space turns a primary-button drag into a pan."""
        if event.key != PAN_KEY:
            return
        if event.kind == KEY_DOWN and not event.repeat:
            self.pan_key_down = True
        elif event.kind == KEY_UP:
            self.pan_key_down = False

    def wants_pan(self, button: int, on_background: bool = False) -> bool:
        """Middle/right drags, Space+drag and drags on empty canvas all pan."""
        return button in (1, 2) or (button == 0 and (self.pan_key_down or on_background))

    def begin_pan(self, x: float, y: float) -> None:
        self.panning = True
        self._pan_start = (x - self.pan_x, y - self.pan_y)

    def pan_to(self, x: float, y: float) -> None:
        if not self.panning:
            return
        self.pan_x = x - self._pan_start[0]
        self.pan_y = y - self._pan_start[1]

    def end_pan(self) -> None:
        self.panning = False

    def pan_by(self, dx: float, dy: float) -> None:
        """Trackpad scroll."""
        self.pan_x -= dx
        self.pan_y -= dy

    # ------------------------------------------------------------------
    # Coordinates
    # ------------------------------------------------------------------

    def to_canvas(self, x: float, y: float) -> tuple[float, float]:
        return ((x - self.pan_x) / self.scale, (y - self.pan_y) / self.scale)

    def to_screen(self, x: float, y: float) -> tuple[float, float]:
        return (x * self.scale + self.pan_x, y * self.scale + self.pan_y)

    def frame_all_nodes(self, container_width: float, container_height: float) -> bool:
        """
        Fit every node into the container with padding, never zooming past 1.

        Returns:
            False if there are no nodes to frame
        """
        nodes = self.store.nodes()
        if not nodes:
            return False
        pad = self.settings.home_padding
        min_x = min(n.x for n in nodes) - pad
        min_y = min(n.y for n in nodes) - pad
        max_x = max(n.x + n.width for n in nodes) + pad
        max_y = max(n.y + n.height for n in nodes) + pad

        box_w, box_h = max_x - min_x, max_y - min_y
        self.scale = min(container_width / box_w, container_height / box_h, 1.0)
        self.pan_x = (container_width - box_w * self.scale) / 2 - min_x * self.scale
        self.pan_y = (container_height - box_h * self.scale) / 2 - min_y * self.scale
        return True

    def to_dict(self) -> dict:
        return {"scale": self.scale, "pan_x": self.pan_x, "pan_y": self.pan_y}
