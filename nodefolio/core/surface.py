"""
Raster drawing surface used by the render pipeline and the overlay tools.

The surface holds an RGBA ``uint8`` buffer of shape ``(H, W, 4)`` and wraps
the handful of OpenCV drawing calls the tools need. It also carries the
input channel: hosts push normalized pointer and keyboard events through
``dispatch_pointer`` / ``dispatch_key`` and interactive tools subscribe to
``surface.input``.
"""

from dataclasses import dataclass

import cv2
import numpy as np

from nodefolio.core.events import EventEmitter

POINTER_DOWN = "pointer_down"
POINTER_MOVE = "pointer_move"
POINTER_UP = "pointer_up"
POINTER_LEAVE = "pointer_leave"
KEY_DOWN = "key_down"
KEY_UP = "key_up"

POINTER_EVENTS = (POINTER_DOWN, POINTER_MOVE, POINTER_UP, POINTER_LEAVE)

Color = tuple[int, int, int, int]


@dataclass(frozen=True)
class PointerEvent:
    """A pointer event in buffer-space coordinates."""
    kind: str
    x: float
    y: float
    button: int = 0

    @classmethod
    def from_display(
        cls,
        kind: str,
        client_x: float,
        client_y: float,
        rect: tuple[float, float, float, float],
        buffer_size: tuple[int, int],
        button: int = 0,
    ) -> "PointerEvent":
        """
        Build an event from display coordinates.

        Args:
            kind: One of the POINTER_* constants
            client_x: Pointer x in display space
            client_y: Pointer y in display space
            rect: Displayed surface rectangle as (left, top, width, height)
            buffer_size: Underlying buffer size as (width, height)
            button: Mouse button index

        Returns:
            Event with coordinates scaled into buffer space
        """
        left, top, width, height = rect
        buf_w, buf_h = buffer_size
        scale_x = buf_w / width if width else 1.0
        scale_y = buf_h / height if height else 1.0
        return cls(kind, (client_x - left) * scale_x, (client_y - top) * scale_y, button)


@dataclass(frozen=True)
class KeyEvent:
    """A keyboard event. ``key`` uses DOM-style codes such as ``"Space"``."""
    kind: str
    key: str
    repeat: bool = False


@dataclass(frozen=True)
class FontSpec:
    """OpenCV Hershey font description. Hashable so it can key caches."""
    face: int = cv2.FONT_HERSHEY_PLAIN
    scale: float = 1.1
    thickness: int = 1

    def __str__(self) -> str:
        return f"hershey{self.face}@{self.scale}x{self.thickness}"


def blank_buffer(width: int, height: int) -> np.ndarray:
    """Return a transparent RGBA buffer."""
    return np.zeros((height, width, 4), dtype=np.uint8)


class DrawingSurface:
    """
    2D RGBA raster with draw/read/write operations.

    Example:
        >>> surface = DrawingSurface(4, 2)
        >>> surface.fill_rect(0, 0, 4, 2, (255, 0, 0, 255))
        >>> surface.read_pixels()[0, 0].tolist()
        [255, 0, 0, 255]
    """

    def __init__(self, width: int = 1, height: int = 1):
        self.pixels = blank_buffer(max(1, width), max(1, height))
        self.input = EventEmitter()

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def resize(self, width: int, height: int) -> None:
        """Reallocate the surface. Contents are cleared to transparent."""
        self.pixels = blank_buffer(max(1, int(width)), max(1, int(height)))

    def clear(self) -> None:
        self.pixels[:] = 0

    # ------------------------------------------------------------------
    # Pixel transfer
    # ------------------------------------------------------------------

    def draw_image(self, image: np.ndarray, width: int, height: int) -> None:
        """
        Scale ``image`` to (width, height) and blit it at the origin.

        The surface is resized to exactly that size first.
        """
        width, height = max(1, int(width)), max(1, int(height))
        if self.size != (width, height):
            self.resize(width, height)
        src_h, src_w = image.shape[:2]
        if (src_w, src_h) == (width, height):
            self.pixels[:] = image
            return
        shrinking = width < src_w or height < src_h
        interp = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
        self.pixels[:] = cv2.resize(image, (width, height), interpolation=interp)

    def read_pixels(self) -> np.ndarray:
        """Return a copy of the current buffer."""
        return self.pixels.copy()

    def write_pixels(self, buffer: np.ndarray) -> None:
        """Replace the surface contents with ``buffer`` (same shape required)."""
        if buffer.shape != self.pixels.shape:
            raise ValueError(
                f"Buffer shape {buffer.shape} does not match surface {self.pixels.shape}"
            )
        self.pixels[:] = buffer

    # ------------------------------------------------------------------
    # Drawing primitives
    # ------------------------------------------------------------------

    def draw_line(self, p1, p2, color: Color, thickness: int = 1) -> None:
        cv2.line(self.pixels, _pt(p1), _pt(p2), color, max(1, int(thickness)), cv2.LINE_AA)

    def draw_circle(self, center, radius: float, color: Color, thickness: int = -1) -> None:
        """Draw a circle. ``thickness=-1`` fills it."""
        cv2.circle(self.pixels, _pt(center), max(1, int(round(radius))), color,
                   int(thickness), cv2.LINE_AA)

    def draw_arc(self, center, radius: float, start_deg: float, end_deg: float,
                 color: Color, thickness: int = 1) -> None:
        r = max(1, int(round(radius)))
        cv2.ellipse(self.pixels, _pt(center), (r, r), 0, start_deg, end_deg, color,
                    max(1, int(thickness)), cv2.LINE_AA)

    def fill_rect(self, x: float, y: float, width: float, height: float, color: Color) -> None:
        """Fill a rectangle, alpha-blending ``color`` over the existing pixels."""
        x0, y0 = max(0, int(x)), max(0, int(y))
        x1 = min(self.width, int(x + width))
        y1 = min(self.height, int(y + height))
        if x1 <= x0 or y1 <= y0:
            return
        region = self.pixels[y0:y1, x0:x1]
        alpha = color[3] / 255.0
        if alpha >= 1.0:
            region[:] = color
            return
        src = np.array(color[:3], dtype=np.float32)
        rgb = region[..., :3].astype(np.float32)
        region[..., :3] = np.clip(rgb * (1 - alpha) + src * alpha, 0, 255).astype(np.uint8)
        out_a = region[..., 3].astype(np.float32) * (1 - alpha) + 255 * alpha
        region[..., 3] = np.clip(out_a, 0, 255).astype(np.uint8)

    def measure_text(self, text: str, font: FontSpec) -> tuple[int, int]:
        """Return (width, height) of ``text`` rendered in ``font``."""
        (w, h), baseline = cv2.getTextSize(text, font.face, font.scale, font.thickness)
        return w, h + baseline

    def draw_text(self, text: str, x: float, y: float, font: FontSpec, color: Color) -> None:
        """Draw ``text`` with its top-left corner at (x, y)."""
        (_, h), _ = cv2.getTextSize(text, font.face, font.scale, font.thickness)
        cv2.putText(self.pixels, text, (int(x), int(y + h)), font.face, font.scale,
                    color, font.thickness, cv2.LINE_AA)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def dispatch_pointer(self, event: PointerEvent) -> None:
        self.input.emit(event.kind, event)

    def dispatch_key(self, event: KeyEvent) -> None:
        self.input.emit(event.kind, event)


def _pt(p) -> tuple[int, int]:
    return (int(round(p[0])), int(round(p[1])))
