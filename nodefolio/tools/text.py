"""
Word wrapping and text-box drawing with a bounded layout cache.
"""

from collections import OrderedDict
from typing import Callable

import cv2

from nodefolio.core.surface import Color, DrawingSurface, FontSpec

DEFAULT_FONT = FontSpec(cv2.FONT_HERSHEY_PLAIN, 1.1, 1)
TEXT_COLOR: Color = (243, 156, 18, 255)
BOX_COLOR: Color = (0, 0, 0, 191)


def text_width(text: str, font: FontSpec) -> int:
    (w, _), _ = cv2.getTextSize(text, font.face, font.scale, font.thickness)
    return w


class TextLayout:
    """
    Wraps text to a pixel width, caching results per (text, max_width, font).

    The cache holds at most ``cache_size`` entries; the oldest entry is
    evicted first.
    """

    def __init__(self, cache_size: int = 100,
                 measure: Callable[[str, FontSpec], int] = text_width):
        self.cache_size = cache_size
        self.measure = measure
        self._cache: OrderedDict[tuple[str, int, FontSpec], list[str]] = OrderedDict()
        self.misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        self._cache.clear()

    def wrap(self, text: str, max_width: int, font: FontSpec = DEFAULT_FONT) -> list[str]:
        """
        Split ``text`` into lines no wider than ``max_width``.

        A single word wider than ``max_width`` gets a line of its own.
        Newlines start a new paragraph.
        """
        key = (text, int(max_width), font)
        cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        self.misses += 1
        lines: list[str] = []
        for paragraph in text.split("\n"):
            current = ""
            for word in paragraph.split():
                candidate = f"{current} {word}" if current else word
                if current and self.measure(candidate, font) > max_width:
                    lines.append(current)
                    current = word
                else:
                    current = candidate
            lines.append(current)

        # drop trailing blank lines left by a final newline
        while lines and not lines[-1]:
            lines.pop()

        self._cache[key] = lines
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)
        return list(lines)

    def draw_text_box(
        self,
        surface: DrawingSurface,
        text: str,
        font: FontSpec = DEFAULT_FONT,
        text_color: Color = TEXT_COLOR,
        bg_color: Color | None = BOX_COLOR,
        padding: int = 15,
        line_height: int = 20,
        max_width: int | None = None,
    ) -> list[str]:
        """
        Draw ``text`` wrapped inside a padded box centred on the surface.

        Returns:
            The wrapped lines that were drawn
        """
        if max_width is None:
            max_width = surface.width - 40
        max_width = max(1, int(max_width))

        lines = self.wrap(text, max_width, font)
        if not lines:
            return lines

        box_w = max_width + padding * 2
        box_h = len(lines) * line_height + padding * 2
        box_x = (surface.width - box_w) / 2
        box_y = (surface.height - box_h) / 2

        if bg_color is not None and bg_color[3] > 0:
            surface.fill_rect(box_x, box_y, box_w, box_h, bg_color)
        for i, line in enumerate(lines):
            if line:
                surface.draw_text(line, box_x + padding, box_y + padding + i * line_height,
                                  font, text_color)
        return lines
