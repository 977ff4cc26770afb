"""
Smudge tool - a mixer brush that picks up colour and drags it across the image.

Unlike the other tools the smudge keeps its own copy of the image, because
strokes must survive re-renders (a ragdoll or slideshow upstream triggers
one every frame). The copy is only reset when the incoming image changes.
"""

import logging
import math
from collections import deque

import numpy as np

from nodefolio.core.base import MANAGED, Tool
from nodefolio.core.config import BrushSettings
from nodefolio.core.surface import (
    POINTER_DOWN,
    POINTER_LEAVE,
    POINTER_MOVE,
    POINTER_UP,
    DrawingSurface,
    PointerEvent,
)

logger = logging.getLogger(__name__)

HASH_SAMPLES = 100


def content_hash(buffer: np.ndarray) -> int:
    """
    Cheap 32-bit fingerprint of a buffer.

    Roughly ``HASH_SAMPLES`` bytes are read at a fixed stride and folded with
    ``h = h * 31 + byte``.
    """
    flat = buffer.reshape(-1)
    step = max(1, flat.size // HASH_SAMPLES)
    h = 0
    for value in flat[::step].tolist():
        h = (h * 31 + value) & 0xFFFFFFFF
    return h


class SmudgeTool(Tool):
    """Interactive mixer brush painting into a private canvas."""

    kind = "smudge"

    def __init__(self, settings: BrushSettings | None = None):
        super().__init__()
        self.settings = settings or BrushSettings()
        self.canvas: np.ndarray | None = None
        self.last_hash: int | None = None
        self.painting = False
        self.last_point = (0.0, 0.0)
        self.color: np.ndarray | None = None
        self.samples: deque[np.ndarray] = deque(maxlen=self.settings.max_samples)
        self._surface: DrawingSurface | None = None
        self._handlers: list[tuple[str, object]] = []

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def transform(self, buffer: np.ndarray, surface: DrawingSurface):
        digest = content_hash(buffer)
        if self.canvas is None or self.canvas.shape != buffer.shape:
            self._reset(buffer, digest)
        elif digest != self.last_hash:
            logger.debug("Smudge input changed; discarding strokes")
            self._reset(buffer, digest)

        if self._surface is not surface:
            self._subscribe(surface)

        surface.write_pixels(self.canvas)
        return MANAGED

    def _reset(self, buffer: np.ndarray, digest: int) -> None:
        self.canvas = np.array(buffer, dtype=np.uint8, copy=True)
        self.last_hash = digest
        self.color = None
        self.samples.clear()
        self.painting = False

    def _subscribe(self, surface: DrawingSurface) -> None:
        self._unsubscribe()
        self._surface = surface
        for event, handler in (
            (POINTER_DOWN, self.on_pointer_down),
            (POINTER_MOVE, self.on_pointer_move),
            (POINTER_UP, self.on_pointer_up),
            (POINTER_LEAVE, self.on_pointer_up),
        ):
            surface.input.on(event, handler)
            self._handlers.append((event, handler))

    def _unsubscribe(self) -> None:
        if self._surface is not None:
            for event, handler in self._handlers:
                self._surface.input.off(event, handler)
        self._handlers = []
        self._surface = None

    # ------------------------------------------------------------------
    # Brush
    # ------------------------------------------------------------------

    def on_pointer_down(self, event: PointerEvent) -> None:
        if self.canvas is None:
            return
        self.painting = True
        self.last_point = (event.x, event.y)
        self.samples.clear()
        self.color = self.pickup(event.x, event.y)
        self.samples.append(self.color)
        self.dab(event.x, event.y)
        self._request_render()

    def on_pointer_move(self, event: PointerEvent) -> None:
        if not self.painting or self.canvas is None:
            return
        x0, y0 = self.last_point
        dist = math.hypot(event.x - x0, event.y - y0)
        steps = max(1, math.ceil(dist / self.settings.spacing))
        wetness = self.settings.wetness
        for i in range(1, steps + 1):
            t = i / steps
            x = x0 + (event.x - x0) * t
            y = y0 + (event.y - y0) * t
            self.samples.append(self.pickup(x, y))
            mean = np.mean(list(self.samples), axis=0)
            if self.color is None:
                self.color = mean
            else:
                self.color = self.color * (1 - wetness) + mean * wetness
            self.dab(x, y)
        self.last_point = (event.x, event.y)
        self._request_render()

    def on_pointer_up(self, event: PointerEvent | None = None) -> None:
        self.painting = False

    def pickup(self, x: float, y: float) -> np.ndarray:
        """Average RGB of the centre plus a ring of points inside the brush."""
        h, w = self.canvas.shape[:2]
        ring = self.settings.size / 4
        count = max(1, self.settings.pickup_points)
        points = [(x, y)]
        for i in range(count):
            angle = 2 * math.pi * i / count
            points.append((x + math.cos(angle) * ring, y + math.sin(angle) * ring))

        picked = [
            self.canvas[min(h - 1, max(0, int(py))), min(w - 1, max(0, int(px))), :3]
            for px, py in points
        ]
        return np.mean(np.array(picked, dtype=np.float32), axis=0)

    def dab(self, x: float, y: float) -> None:
        """Blend the brush colour into the canvas with a linear radial falloff."""
        if self.color is None:
            return
        h, w = self.canvas.shape[:2]
        radius = self.settings.size / 2
        x0, x1 = max(0, int(x - radius)), min(w, int(math.ceil(x + radius)) + 1)
        y0, y1 = max(0, int(y - radius)), min(h, int(math.ceil(y + radius)) + 1)
        if x1 <= x0 or y1 <= y0:
            return

        yy, xx = np.mgrid[y0:y1, x0:x1]
        dist = np.sqrt((xx - x) ** 2 + (yy - y) ** 2) / radius
        weight = (np.clip(1.0 - dist, 0.0, 1.0) * self.settings.strength)[..., None]

        region = self.canvas[y0:y1, x0:x1, :3].astype(np.float32)
        region += (self.color - region) * weight
        self.canvas[y0:y1, x0:x1, :3] = np.clip(np.rint(region), 0, 255).astype(np.uint8)

    def _request_render(self) -> None:
        if self.context is not None:
            self.context.request_render()

    def cleanup(self) -> None:
        self._unsubscribe()
        self.canvas = None
        self.last_hash = None
        self.color = None
        self.samples.clear()
        self.painting = False
