"""
Catalog value types consumed by the viewer and the slideshow/info tools.

The catalog is read-only from the core's point of view: the browser node
hands ``CatalogItem`` values to the graph store, and tools look up sibling
items through ``Catalog``.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ("painting", "film", "audio", "other")


@dataclass(frozen=True)
class MediaRef:
    """One displayable medium: an image file or an embedded video."""
    kind: str = "image"  # "image" or "video"
    path: str | None = None
    filename: str = ""
    info_path: str | None = None
    video_id: str | None = None
    url: str | None = None

    @property
    def is_image(self) -> bool:
        return self.kind == "image" and bool(self.path)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MediaRef":
        kind = data.get("type", "image")
        if kind == "youtube":
            kind = "video"
        return cls(
            kind=kind,
            path=data.get("path"),
            filename=data.get("filename", ""),
            info_path=data.get("infoPath"),
            video_id=data.get("videoId"),
            url=data.get("url"),
        )


@dataclass(frozen=True)
class CatalogItem:
    """
    A work in the catalog.

    Single works carry one ``MediaRef``; composite (folder) works carry an
    ordered tuple of sub-media and may have a folder-level ``info_path``.
    """
    title: str
    media: tuple[MediaRef, ...] = ()
    info_path: str | None = None
    category: str | None = None
    is_composite: bool = False
    thumbnail: str | None = None

    @property
    def image_count(self) -> int:
        return len(self.media)

    def media_at(self, index: int) -> MediaRef | None:
        if 0 <= index < len(self.media):
            return self.media[index]
        return None

    @classmethod
    def single(cls, path: str, title: str | None = None, info_path: str | None = None,
               category: str | None = None) -> "CatalogItem":
        """Build a one-image item from a file path."""
        name = Path(path).name
        if title is None:
            title = re.sub(r"[-_]", " ", Path(path).stem)
        return cls(
            title=title,
            media=(MediaRef("image", path, name, info_path),),
            category=category,
            thumbnail=path,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], category: str | None = None) -> "CatalogItem":
        """Parse one entry of a works manifest."""
        kind = data.get("type", "image")
        if kind == "folder":
            return cls(
                title=data.get("title") or data.get("foldername", ""),
                media=tuple(MediaRef.from_dict(m) for m in data.get("images", [])),
                info_path=data.get("infoPath"),
                category=category,
                is_composite=True,
                thumbnail=data.get("thumbnail"),
            )
        media = MediaRef.from_dict(data)
        return cls(
            title=data.get("title", media.filename),
            media=(media,),
            # single works keep their info text on the media itself
            info_path=None,
            category=category,
            thumbnail=data.get("thumbnail"),
        )


@dataclass
class Catalog:
    """
    Ordered mapping of category name to items.

    Example:
        >>> a, b = CatalogItem("A"), CatalogItem("B")
        >>> catalog = Catalog({"painting": [a, b]})
        >>> catalog.find_category(b)
        'painting'
    """
    categories_map: dict[str, list[CatalogItem]] = field(default_factory=dict)

    def categories(self) -> list[str]:
        return list(self.categories_map)

    def items(self, category: str) -> list[CatalogItem]:
        return list(self.categories_map.get(category, []))

    def all_items(self) -> list[CatalogItem]:
        """Every item, in category order."""
        return [item for items in self.categories_map.values() for item in items]

    def find_category(self, item: CatalogItem | None) -> str | None:
        """Return the category containing ``item``, by identity then equality."""
        if item is None:
            return None
        for name, items in self.categories_map.items():
            if any(candidate is item for candidate in items):
                return name
        for name, items in self.categories_map.items():
            if item in items:
                return name
        return None

    def __iter__(self) -> Iterator[CatalogItem]:
        return iter(self.all_items())

    def __len__(self) -> int:
        return sum(len(items) for items in self.categories_map.values())

    @classmethod
    def from_manifest(cls, data: dict[str, Any]) -> "Catalog":
        """Build a catalog from the ``works_manifest.json`` structure."""
        categories: dict[str, list[CatalogItem]] = {}
        for name, entries in data.items():
            if not isinstance(entries, list):
                logger.warning("Skipping manifest key %r: expected a list", name)
                continue
            categories[name] = [CatalogItem.from_dict(e, name) for e in entries]
        return cls(categories)

    @classmethod
    def empty(cls) -> "Catalog":
        return cls({name: [] for name in DEFAULT_CATEGORIES})


def load_manifest(path: str | Path) -> Catalog:
    """
    Load a works manifest.

    A missing or malformed manifest yields an empty catalog with the
    default categories; the problem is logged.
    """
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.error("Manifest not found: %s", path)
        return Catalog.empty()
    except json.JSONDecodeError as e:
        logger.error("Invalid manifest %s: %s", path, e)
        return Catalog.empty()
    if not isinstance(data, dict):
        logger.error("Invalid manifest %s: top level must be an object", path)
        return Catalog.empty()
    return Catalog.from_manifest(data)
