"""
Synchronous event emitter shared by the graph store and drawing surfaces.
"""

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class EventEmitter:
    """
    Minimal observer hub.

    Handlers run synchronously, in registration order, before ``emit``
    returns. The handler list is copied before dispatch so a handler may
    unsubscribe itself (or others) without skipping anyone in the
    current round.

    Example:
        >>> emitter = EventEmitter()
        >>> seen = []
        >>> _ = emitter.on("ping", seen.append)
        >>> emitter.emit("ping", 1)
        >>> seen
        [1]
    """

    def __init__(self):
        self._listeners: dict[str, list[Handler]] = {}

    def on(self, event: str, handler: Handler) -> Handler:
        """Register a handler. Returns the handler so it can be kept for ``off``."""
        self._listeners.setdefault(event, []).append(handler)
        return handler

    def off(self, event: str, handler: Handler) -> bool:
        """Remove a handler. Returns False if it was not registered."""
        handlers = self._listeners.get(event)
        if not handlers:
            return False
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        if not handlers:
            del self._listeners[event]
        return True

    def emit(self, event: str, payload: Any = None) -> None:
        """Deliver ``payload`` to every handler registered for ``event``."""
        for handler in list(self._listeners.get(event, ())):
            try:
                handler(payload)
            except Exception:
                logger.exception("Listener for %r failed", event)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def remove_all_listeners(self, event: str | None = None) -> None:
        """Drop the handlers for one event, or for every event."""
        if event:
            self._listeners.pop(event, None)
        else:
            self._listeners.clear()
