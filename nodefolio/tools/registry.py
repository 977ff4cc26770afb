"""
Tool registry.

To add a new tool:
1. Subclass Tool and implement ``transform``
2. Register a factory under a kind name, either with ``register`` or the
   ``@registry.tool(...)`` decorator

The registry is a plain value built at start-up and handed to the editor;
there is no module-level global.
"""

from dataclasses import dataclass
from typing import Callable

from nodefolio.core.base import Tool
from nodefolio.core.config import Config
from nodefolio.core.errors import UnknownToolError
from nodefolio.tools.info import InfoTool
from nodefolio.tools.invert import InvertTool
from nodefolio.tools.ragdoll import RagdollTool
from nodefolio.tools.slideshow import SlideshowTool
from nodefolio.tools.smudge import SmudgeTool

ToolFactory = Callable[..., Tool]


@dataclass(frozen=True)
class ToolEntry:
    kind: str
    factory: ToolFactory
    label: str
    description: str = ""


class ToolRegistry:
    """
    Maps tool kind names to factories and display labels.

    Example:
        >>> registry = ToolRegistry()
        >>> _ = registry.register("invert", InvertTool, "INVERT")
        >>> registry.create("invert")
        InvertTool(state=inactive)
    """

    def __init__(self):
        self._entries: dict[str, ToolEntry] = {}

    def register(self, kind: str, factory: ToolFactory, label: str | None = None,
                 description: str = "") -> ToolEntry:
        """Register (or replace) the factory for ``kind``."""
        entry = ToolEntry(kind, factory, label or kind.upper(), description)
        self._entries[kind] = entry
        return entry

    def tool(self, kind: str, label: str | None = None, description: str = ""):
        """Decorator form of ``register``."""
        def decorator(factory: ToolFactory) -> ToolFactory:
            self.register(kind, factory, label, description)
            return factory
        return decorator

    def get(self, kind: str) -> ToolEntry:
        if kind not in self._entries:
            raise UnknownToolError(kind, self.kinds())
        return self._entries[kind]

    def create(self, kind: str, **kwargs) -> Tool:
        """
        Instantiate a new tool of the given kind.

        Raises:
            UnknownToolError: If ``kind`` is not registered
        """
        return self.get(kind).factory(**kwargs)

    def kinds(self) -> list[str]:
        return list(self._entries)

    def entries(self) -> list[ToolEntry]:
        return list(self._entries.values())

    def __contains__(self, kind: str) -> bool:
        return kind in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def default_registry(config: Config | None = None) -> ToolRegistry:
    """Registry holding the built-in tools, configured from ``config``."""
    config = config or Config()
    registry = ToolRegistry()

    @registry.tool("info", "SHOW DATA", "Display metadata information")
    def make_info(**kwargs) -> Tool:
        return InfoTool(kwargs.pop("settings", config.text), **kwargs)

    @registry.tool("ragdoll", "MEET THE ARTIST", "Physics-based ragdoll character")
    def make_ragdoll(**kwargs) -> Tool:
        return RagdollTool(kwargs.pop("settings", config.physics), **kwargs)

    registry.register("invert", InvertTool, "INVERT", "Invert image colors")

    @registry.tool("smudge", "SMUDGE", "Interactive smudge painting effect")
    def make_smudge(**kwargs) -> Tool:
        return SmudgeTool(kwargs.pop("settings", config.brush), **kwargs)

    @registry.tool("slideshow", "SLIDESHOW", "Auto-cycle through items")
    def make_slideshow(**kwargs) -> Tool:
        return SlideshowTool(kwargs.pop("interval", config.slideshow.interval), **kwargs)

    return registry
