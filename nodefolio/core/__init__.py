"""
Core module - Base classes, protocols, and shared abstractions.
"""

from nodefolio.core.base import MANAGED, Tool, ToolState, ViewerContext
from nodefolio.core.config import (
    Config,
    load_config,
    save_config,
    apply_env_overrides,
)
from nodefolio.core.errors import (
    NodefolioError,
    GraphIntegrityError,
    DuplicateIdError,
    NodeNotFoundError,
    ToolTransformError,
    MediaLoadError,
    MetadataFetchError,
    DegenerateConstraintError,
    UnknownToolError,
)
from nodefolio.core.events import EventEmitter
from nodefolio.core.surface import (
    DrawingSurface,
    FontSpec,
    KeyEvent,
    PointerEvent,
)

__all__ = [
    "MANAGED",
    "Tool",
    "ToolState",
    "ViewerContext",
    "Config",
    "load_config",
    "save_config",
    "apply_env_overrides",
    "NodefolioError",
    "GraphIntegrityError",
    "DuplicateIdError",
    "NodeNotFoundError",
    "ToolTransformError",
    "MediaLoadError",
    "MetadataFetchError",
    "DegenerateConstraintError",
    "UnknownToolError",
    "EventEmitter",
    "DrawingSurface",
    "FontSpec",
    "KeyEvent",
    "PointerEvent",
]
