"""
Image decoding and text fetching.

Decoding runs through OpenCV and always yields an RGBA ``uint8`` buffer.
The async variants push the blocking work onto the event loop's default
executor so the UI loop keeps running while files load.
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable

import cv2
import numpy as np

from nodefolio.core.errors import MediaLoadError, MetadataFetchError

TextFetcher = Callable[[str], Awaitable[str]]


def to_rgba(image: np.ndarray) -> np.ndarray:
    """
    Convert an OpenCV image (gray, BGR or BGRA; 8/16-bit or float) to RGBA uint8.

    Args:
        image: Image as returned by cv2.imread / cv2.imdecode

    Returns:
        Contiguous RGBA uint8 array of shape (H, W, 4)
    """
    if image.dtype == np.uint16:
        image = (image.astype(np.float32) / 257.0).round().astype(np.uint8)
    elif image.dtype in (np.float32, np.float64):
        image = (np.clip(image, 0.0, 1.0) * 255).round().astype(np.uint8)
    elif image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    channels = image.shape[2]
    if channels == 1:
        return cv2.cvtColor(image[:, :, 0], cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    raise ValueError(f"Unsupported channel count: {channels}")


def decode_image(data: bytes, source: str = "<bytes>") -> np.ndarray:
    """
    Decode encoded image bytes (PNG, JPEG, ...) into RGBA.

    Raises:
        MediaLoadError: If OpenCV cannot decode the data
    """
    if not data:
        raise MediaLoadError(source, "empty data")
    image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise MediaLoadError(source)
    try:
        return to_rgba(image)
    except ValueError as e:
        raise MediaLoadError(source, str(e)) from e


def read_image(path: str | Path) -> np.ndarray:
    """
    Read and decode an image file into RGBA.

    Raises:
        MediaLoadError: If the file is missing, unreadable or undecodable
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise MediaLoadError(str(path), e.strerror or str(e)) from e
    return decode_image(data, str(path))


def encode_png(buffer: np.ndarray) -> bytes:
    """Encode an RGBA buffer as PNG bytes."""
    ok, png = cv2.imencode(".png", cv2.cvtColor(buffer, cv2.COLOR_RGBA2BGRA))
    if not ok:
        raise ValueError("PNG encoding failed")
    return png.tobytes()


def write_image(path: str | Path, buffer: np.ndarray) -> None:
    """Write an RGBA buffer to disk; the format follows the file extension."""
    if not cv2.imwrite(str(path), cv2.cvtColor(buffer, cv2.COLOR_RGBA2BGRA)):
        raise OSError(f"Could not write image: {path}")


async def load_image_async(path: str | Path) -> np.ndarray:
    """Decode ``path`` in the default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, read_image, path)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8").strip()
    except (OSError, ValueError) as e:
        raise MetadataFetchError(str(path), str(e)) from e


async def fetch_text(path: str | Path) -> str:
    """
    Read a caption/info text file asynchronously.

    Raises:
        MetadataFetchError: If the file cannot be read
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _read_text, Path(path))


def make_text_fetcher(root: str | Path | None = None) -> TextFetcher:
    """Return a fetcher that resolves relative paths against ``root``."""
    base = Path(root).expanduser().resolve() if root else None

    async def fetch(path: str) -> str:
        target = Path(path)
        if base is not None and not target.is_absolute():
            target = base / target
        return await fetch_text(target)

    return fetch
