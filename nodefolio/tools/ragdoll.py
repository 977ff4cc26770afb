"""
Ragdoll overlay - a draggable stick figure hanging over the image.

Moving the viewer node shakes the figure: the viewer's displacement since
the previous frame is turned into an extra acceleration, so the body swings
the opposite way.
"""

import logging

import numpy as np

from nodefolio.core.base import Tool, ViewerContext
from nodefolio.core.config import PhysicsSettings
from nodefolio.core.surface import (
    POINTER_DOWN,
    POINTER_LEAVE,
    POINTER_MOVE,
    POINTER_UP,
    DrawingSurface,
    PointerEvent,
)
from nodefolio.physics.verlet import Ragdoll
from nodefolio.pipeline.scheduler import Handle

logger = logging.getLogger(__name__)

INK = (26, 26, 26, 255)
ACCENT = (243, 156, 18, 255)
WHITE = (255, 255, 255, 255)

MAX_SCALE = 3.5
# Figure height at scale 1, used to fit the ragdoll to the viewer
FIGURE_HEIGHT = 130


class RagdollTool(Tool):
    """Physics overlay that re-renders every frame while active."""

    kind = "ragdoll"

    def __init__(self, settings: PhysicsSettings | None = None):
        super().__init__()
        self.settings = settings or PhysicsSettings()
        self.ragdoll: Ragdoll | None = None
        self.gravity = (0.0, self.settings.gravity_y)
        self.dragging = False
        self._last_position: tuple[float, float] | None = None
        self._last_time: float | None = None
        self._frames: Handle | None = None
        self._surface: DrawingSurface | None = None
        self._handlers: list[tuple[str, object]] = []

    def activate(self, context: ViewerContext) -> bool:
        if not super().activate(context):
            return False
        self._last_position = tuple(context.position)
        return True

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def transform(self, buffer: np.ndarray, surface: DrawingSurface) -> np.ndarray:
        height, width = buffer.shape[:2]
        if self.ragdoll is None:
            self._build(width, height)
        else:
            self.ragdoll.set_bounds(width, height)

        if self._surface is not surface:
            self._subscribe(surface)

        self.update_gravity()
        self.ragdoll.gravity = self.gravity
        dt = self._elapsed()
        if dt > 0:
            self.ragdoll.step(dt)

        surface.write_pixels(buffer)
        self.draw(surface)
        return surface.read_pixels()

    def _build(self, width: int, height: int) -> None:
        scale = min(height / FIGURE_HEIGHT, MAX_SCALE)
        s = self.settings
        self.ragdoll = Ragdoll(
            width / 2, height / 2, scale,
            width=width, height=height,
            gravity=self.gravity,
            iterations=s.iterations,
            stiffness=s.stiffness,
        )
        logger.debug("Ragdoll built at scale %.2f for %dx%d", scale, width, height)

        scheduler = getattr(self.context, "scheduler", None)
        if scheduler is not None:
            self._last_time = scheduler.now()
            self._frames = scheduler.request_frames(self.context.request_render)

    def update_gravity(self) -> None:
        """Add the inertial kick from the viewer's movement since last frame."""
        if self.context is None:
            return
        x, y = self.context.position
        if self._last_position is None:
            self._last_position = (x, y)
        dx = x - self._last_position[0]
        dy = y - self._last_position[1]
        k = self.settings.accel_factor
        self.gravity = (-dx * k, self.settings.gravity_y - dy * k)
        self._last_position = (x, y)

    def _elapsed(self) -> float:
        scheduler = getattr(self.context, "scheduler", None)
        if scheduler is None:
            return self.settings.max_dt
        now = scheduler.now()
        last = self._last_time if self._last_time is not None else now
        self._last_time = now
        return min(max(0.0, now - last), self.settings.max_dt)

    def draw(self, surface: DrawingSurface) -> None:
        ragdoll = self.ragdoll
        line_width = max(1, int(round(2 * ragdoll.scale)))
        for c in ragdoll.constraints:
            surface.draw_line((c.a.x, c.a.y), (c.b.x, c.b.y), INK, line_width)

        for p in ragdoll.particles[1:]:
            surface.draw_circle((p.x, p.y), p.radius, ACCENT if p.pinned else INK)
            surface.draw_circle((p.x, p.y), p.radius, WHITE, thickness=1)

        head = ragdoll.head
        s = ragdoll.scale
        surface.draw_circle((head.x, head.y), ragdoll.head_radius, ACCENT)
        surface.draw_circle((head.x, head.y), ragdoll.head_radius, INK, thickness=2)
        # face
        surface.draw_circle((head.x - 5 * s, head.y - 2 * s), 2 * s, INK)
        surface.draw_circle((head.x + 5 * s, head.y - 2 * s), 2 * s, INK)
        surface.draw_arc((head.x, head.y + 3 * s), 6 * s, 0, 180, INK, thickness=2)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

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

    def on_pointer_down(self, event: PointerEvent) -> None:
        if self.ragdoll is not None and self.ragdoll.start_drag(event.x, event.y):
            self.dragging = True

    def on_pointer_move(self, event: PointerEvent) -> None:
        if self.dragging:
            self.ragdoll.drag(event.x, event.y)

    def on_pointer_up(self, event: PointerEvent | None = None) -> None:
        if self.dragging:
            self.ragdoll.stop_drag()
            self.dragging = False

    def cleanup(self) -> None:
        if self._frames is not None:
            self._frames.cancel()
            self._frames = None
        self._unsubscribe()
        self.ragdoll = None
        self.dragging = False
        self._last_time = None
