"""
Graph store: nodes by id, single-valued directed edges, and the current
catalog selection.

Every mutation emits an event synchronously so the cable layer, viewer and
pipeline can react before the mutating call returns.
"""

import logging
from typing import Any

from nodefolio.core.errors import DuplicateIdError, NodeNotFoundError
from nodefolio.core.events import EventEmitter

logger = logging.getLogger(__name__)

NODE_ADDED = "node_added"
NODE_REMOVED = "node_removed"
CONNECTION_CHANGED = "connection_changed"
ITEM_SELECTED = "item_selected"
IMAGE_CHANGED = "image_changed"
STATIC_PAGE_REQUESTED = "static_page_requested"
CATALOG_LOADED = "catalog_loaded"


class GraphStore(EventEmitter):
    """
    Single source of truth for the node graph.

    Edges map a source id to exactly one destination id; connecting a
    source again overwrites its previous edge. Fan-in is allowed and
    neither ids nor cycles are validated on ``connect``.

    Example:
        >>> store = GraphStore()
        >>> store.connect("a", "b")
        >>> store.connect("a", "c")
        >>> store.list_edges()
        [('a', 'c')]
    """

    def __init__(self):
        super().__init__()
        self._nodes: dict[str, Any] = {}
        self._edges: dict[str, str] = {}
        self.selected_item: Any = None

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, node_id: str, node: Any) -> None:
        """
        Register a node.

        Raises:
            DuplicateIdError: If ``node_id`` is already registered
        """
        if node_id in self._nodes:
            raise DuplicateIdError(node_id)
        self._nodes[node_id] = node
        self.emit(NODE_ADDED, {"id": node_id, "node": node})

    def remove_node(self, node_id: str) -> Any:
        """
        Remove a node and every edge touching it.

        The node's ``dispose()`` hook (if any) runs after it leaves the
        store. Emits ``node_removed`` and then, if edges were dropped,
        ``connection_changed``.

        Raises:
            NodeNotFoundError: If ``node_id`` is not registered
        """
        if node_id not in self._nodes:
            raise NodeNotFoundError(node_id)
        node = self._nodes.pop(node_id)

        stale = [src for src, dst in self._edges.items() if src == node_id or dst == node_id]
        for src in stale:
            del self._edges[src]

        dispose = getattr(node, "dispose", None)
        if callable(dispose):
            dispose()

        self.emit(NODE_REMOVED, {"id": node_id, "node": node})
        if stale:
            self.emit(CONNECTION_CHANGED)
        return node

    def get_node(self, node_id: str) -> Any:
        return self._nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def nodes(self) -> list[Any]:
        return list(self._nodes.values())

    def node_ids(self) -> list[str]:
        return list(self._nodes)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def connect(self, from_id: str, to_id: str) -> None:
        """Set (or overwrite) the outgoing edge of ``from_id``."""
        self._edges[from_id] = to_id
        self.emit(CONNECTION_CHANGED)

    def disconnect(self, from_id: str) -> bool:
        """Remove the outgoing edge of ``from_id``. Returns False if there was none."""
        if from_id not in self._edges:
            return False
        del self._edges[from_id]
        self.emit(CONNECTION_CHANGED)
        return True

    def list_edges(self) -> list[tuple[str, str]]:
        return list(self._edges.items())

    def downstream_of(self, node_id: str) -> str | None:
        return self._edges.get(node_id)

    def upstream_of(self, node_id: str) -> list[str]:
        return [src for src, dst in self._edges.items() if dst == node_id]

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_item(self, item: Any) -> None:
        self.selected_item = item
        self.emit(ITEM_SELECTED, item)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes
