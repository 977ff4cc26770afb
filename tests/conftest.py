"""
Shared fixtures for the nodefolio tests.
"""

import cv2
import numpy as np
import pytest

from nodefolio.app import Portfolio
from nodefolio.catalog import Catalog, CatalogItem, MediaRef
from nodefolio.core.config import Config
from nodefolio.graph.store import GraphStore
from nodefolio.pipeline import ManualScheduler, make_text_fetcher


def solid(width, height, color=(10, 20, 30, 255)):
    """RGBA buffer filled with one colour."""
    buffer = np.zeros((height, width, 4), dtype=np.uint8)
    buffer[:] = color
    return buffer


def write_rgba(path, rgba):
    """Write an RGBA buffer with OpenCV (which expects BGRA)."""
    assert cv2.imwrite(str(path), cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA))
    return path


class FakeViewer:
    """Minimal ViewerContext for exercising tools without a graph."""

    def __init__(self, catalog=None, item=None, scheduler=None, fetch_text=None):
        self.position = (0.0, 0.0)
        self.catalog = catalog or Catalog()
        self.current_item = item
        self.current_image_index = 0
        self.scheduler = scheduler or ManualScheduler()
        self.fetch_text = fetch_text
        self.selected = []
        self.shown = []
        self.renders = 0

    def current_media(self):
        if self.current_item is None:
            return None
        return self.current_item.media_at(self.current_image_index)

    def select_item(self, item):
        self.selected.append(item)
        self.current_item = item
        self.current_image_index = 0

    def show_image_index(self, index):
        self.shown.append(index)
        self.current_image_index = index

    def request_render(self):
        self.renders += 1


@pytest.fixture
def store():
    return GraphStore()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def image_file(tmp_path):
    """A 2x1 PNG: one dark and one warm pixel."""
    rgba = np.array([[[10, 20, 30, 255], [200, 100, 50, 255]]], dtype=np.uint8)
    return write_rgba(tmp_path / "work.png", rgba)


@pytest.fixture
def catalog(tmp_path, image_file):
    """Painting category with a single work and a three-image folder."""
    gradient = np.zeros((30, 40, 4), dtype=np.uint8)
    gradient[..., 0] = np.arange(40, dtype=np.uint8)[None, :] * 6
    gradient[..., 3] = 255
    folder = []
    for i in range(3):
        path = write_rgba(tmp_path / f"series_{i}.png", gradient)
        folder.append(MediaRef("image", str(path), path.name))
    (tmp_path / "series.txt").write_text("A series of three.")

    single = CatalogItem.single(str(image_file), title="Work", category="painting")
    series = CatalogItem("Series", tuple(folder), info_path=str(tmp_path / "series.txt"),
                         category="painting", is_composite=True)
    return Catalog({"painting": [single, series], "film": []})


@pytest.fixture
def portfolio(catalog, scheduler, tmp_path):
    return Portfolio(
        Config(),
        catalog,
        scheduler=scheduler,
        fetch_text=make_text_fetcher(tmp_path),
    )
