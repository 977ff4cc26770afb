"""
Base classes and protocols for nodefolio tools.

This module defines the contract every tool implements and the narrow view
of the viewer node that tools are allowed to use.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Protocol, runtime_checkable

import numpy as np

logger = logging.getLogger(__name__)


class _Managed:
    """Sentinel type: the tool painted the shared surface itself."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MANAGED"

    def __bool__(self) -> bool:
        return False


MANAGED = _Managed()


class ToolState(Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"


@runtime_checkable
class ViewerContext(Protocol):
    """What a tool may read from, or ask of, the viewer it is attached to."""

    position: tuple[float, float]
    current_item: Any
    current_image_index: int
    catalog: Any
    scheduler: Any
    fetch_text: Callable[[str], Any]

    def current_media(self) -> Any:
        """Return the media reference currently displayed, or None."""
        ...

    def select_item(self, item: Any) -> None:
        """Select a catalog item exactly as the browser node would."""
        ...

    def show_image_index(self, index: int) -> None:
        """Show another sub-image of the current composite item."""
        ...

    def request_render(self) -> None:
        """Ask the viewer's pipeline for a new frame."""
        ...


class Tool(ABC):
    """
    Abstract base class for all tools.

    Subclasses implement ``transform`` and usually extend ``activate`` and
    ``cleanup``. ``transform`` either returns a new buffer of the same shape
    or paints ``surface`` directly and returns ``MANAGED``.
    """

    kind: str = "tool"

    def __init__(self):
        self.state = ToolState.INACTIVE
        self.context: ViewerContext | None = None

    @property
    def active(self) -> bool:
        return self.state is ToolState.ACTIVE

    def activate(self, context: ViewerContext) -> bool:
        """
        Transition INACTIVE -> ACTIVE.

        Subclasses extend this and only start their own work when it
        returns True.

        Args:
            context: The viewer this tool renders into

        Returns:
            False if the tool was already active
        """
        if self.active:
            logger.warning("%s tool activated twice; ignoring", self.kind)
            return False
        self.context = context
        self.state = ToolState.ACTIVE
        return True

    def deactivate(self, context: ViewerContext | None = None) -> None:
        """Transition ACTIVE -> INACTIVE and release resources."""
        self.state = ToolState.INACTIVE
        self.cleanup()

    def cleanup(self) -> None:
        """Release timers, buffers and subscriptions. Must be idempotent."""
        pass

    @abstractmethod
    def transform(self, buffer: np.ndarray, surface) -> "np.ndarray | _Managed":
        """
        Process one frame.

        Args:
            buffer: RGBA uint8 buffer produced by the previous step
            surface: The pipeline's DrawingSurface for this frame

        Returns:
            A new buffer of the same shape, or MANAGED
        """
        pass

    def on_media_changed(self, context: ViewerContext) -> None:
        """Hook called when the viewer switches to another image."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(state={self.state.value})"
