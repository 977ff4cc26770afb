"""
Tests for catalog types and manifest loading.
"""

import json
import logging

import pytest

from nodefolio.catalog import DEFAULT_CATEGORIES, Catalog, CatalogItem, MediaRef, load_manifest

MANIFEST = {
    "painting": [
        {
            "type": "image",
            "title": "Harbour",
            "path": "works/painting/harbour.jpg",
            "filename": "harbour.jpg",
            "infoPath": "works/painting/harbour.txt",
        },
        {
            "type": "folder",
            "foldername": "triptych",
            "infoPath": "works/painting/triptych/info.txt",
            "thumbnail": "works/painting/triptych/1.jpg",
            "images": [
                {"type": "image", "path": "works/painting/triptych/1.jpg", "filename": "1.jpg"},
                {"type": "image", "path": "works/painting/triptych/2.jpg", "filename": "2.jpg"},
            ],
        },
    ],
    "film": [
        {"type": "youtube", "title": "Reel", "videoId": "abc123", "url": "https://youtu.be/abc123"},
    ],
    "audio": [],
}


@pytest.fixture
def manifest_file(tmp_path):
    path = tmp_path / "works_manifest.json"
    path.write_text(json.dumps(MANIFEST))
    return path


class TestManifest:
    """Tests for parsing the works manifest."""

    def test_categories_keep_order(self, manifest_file):
        """Test categories come back in manifest order."""
        catalog = load_manifest(manifest_file)
        assert catalog.categories() == ["painting", "film", "audio"]
        assert len(catalog) == 3

    def test_single_image(self, manifest_file):
        """Test a single work keeps its info on the media."""
        harbour = load_manifest(manifest_file).items("painting")[0]
        assert harbour.title == "Harbour"
        assert not harbour.is_composite
        assert harbour.info_path is None
        assert harbour.media_at(0).info_path == "works/painting/harbour.txt"
        assert harbour.media_at(0).is_image

    def test_folder(self, manifest_file):
        """Test a folder becomes a composite with ordered sub-media."""
        triptych = load_manifest(manifest_file).items("painting")[1]
        assert triptych.title == "triptych"
        assert triptych.is_composite
        assert triptych.image_count == 2
        assert [m.filename for m in triptych.media] == ["1.jpg", "2.jpg"]
        assert triptych.info_path == "works/painting/triptych/info.txt"
        assert triptych.media_at(2) is None

    def test_video(self, manifest_file):
        """Test YouTube entries become video media that is not an image."""
        reel = load_manifest(manifest_file).items("film")[0]
        media = reel.media_at(0)
        assert media.kind == "video"
        assert media.video_id == "abc123"
        assert not media.is_image

    def test_missing_manifest(self, tmp_path, caplog):
        """Test a missing manifest gives an empty catalog."""
        with caplog.at_level(logging.ERROR):
            catalog = load_manifest(tmp_path / "nope.json")
        assert catalog.categories() == list(DEFAULT_CATEGORIES)
        assert len(catalog) == 0
        assert "Manifest not found" in caplog.text

    @pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
    def test_invalid_manifest(self, tmp_path, content):
        """Test malformed manifests give an empty catalog."""
        path = tmp_path / "works_manifest.json"
        path.write_text(content)
        assert len(load_manifest(path)) == 0

    def test_non_list_category_is_skipped(self):
        """Test categories that are not lists are ignored."""
        catalog = Catalog.from_manifest({"painting": [], "meta": {"version": 2}})
        assert catalog.categories() == ["painting"]


class TestCatalog:
    """Tests for catalog lookups."""

    def test_single_from_path(self):
        """Test titles are derived from file names."""
        item = CatalogItem.single("works/blue_moon-study.png")
        assert item.title == "blue moon study"
        assert item.media == (MediaRef("image", "works/blue_moon-study.png", "blue_moon-study.png"),)

    def test_find_category(self):
        """Test lookup by identity first, then by equality."""
        a, b = CatalogItem("A"), CatalogItem("B")
        catalog = Catalog({"painting": [a], "film": [b]})
        assert catalog.find_category(b) == "film"
        assert catalog.find_category(CatalogItem("A")) == "painting"
        assert catalog.find_category(CatalogItem("C")) is None
        assert catalog.find_category(None) is None

    def test_all_items_and_iteration(self):
        """Test items are listed in category order."""
        a, b, c = CatalogItem("A"), CatalogItem("B"), CatalogItem("C")
        catalog = Catalog({"painting": [a, b], "film": [c]})
        assert catalog.all_items() == [a, b, c]
        assert list(catalog) == [a, b, c]
        assert catalog.items("audio") == []
