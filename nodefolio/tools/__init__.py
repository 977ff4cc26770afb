"""
Tools module - Image transforms and interactive overlays.
"""

from nodefolio.tools.info import InfoTool
from nodefolio.tools.invert import InvertTool, invert_rgba
from nodefolio.tools.ragdoll import RagdollTool
from nodefolio.tools.registry import ToolEntry, ToolRegistry, default_registry
from nodefolio.tools.slideshow import SlideshowTool
from nodefolio.tools.smudge import SmudgeTool, content_hash
from nodefolio.tools.text import TextLayout

__all__ = [
    "InfoTool",
    "InvertTool",
    "invert_rgba",
    "RagdollTool",
    "ToolEntry",
    "ToolRegistry",
    "default_registry",
    "SlideshowTool",
    "SmudgeTool",
    "content_hash",
    "TextLayout",
]
