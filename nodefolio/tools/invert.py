"""
Colour inversion tool.
"""

import numpy as np

from nodefolio.core.base import Tool


def invert_rgba(buffer: np.ndarray) -> np.ndarray:
    """Return ``255 - channel`` for R, G and B; alpha is copied unchanged."""
    output = buffer.copy()
    np.subtract(255, buffer[..., :3], out=output[..., :3])
    return output


class InvertTool(Tool):
    """Pure per-pixel channel inversion."""

    kind = "invert"

    def transform(self, buffer: np.ndarray, surface) -> np.ndarray:
        return invert_rgba(buffer)
