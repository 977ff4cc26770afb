"""
Graph editing: inserting and removing tool nodes on a connection.
"""

import itertools
import logging

from nodefolio.core.errors import GraphIntegrityError, NodeNotFoundError
from nodefolio.graph.nodes import TOOL_SIZE, NodeKind, ToolHostNode, ViewerNode
from nodefolio.graph.store import GraphStore
from nodefolio.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class GraphEditor:
    """
    Applies tool insertions and removals to the store and the viewer pipeline.

    Example:
        >>> editor = GraphEditor(store, registry, viewer)
        >>> node_id = editor.insert_tool_between("work", "viewer", "invert")
        >>> editor.remove_tool_node(node_id)
    """

    def __init__(self, store: GraphStore, registry: ToolRegistry, viewer: ViewerNode):
        self.store = store
        self.registry = registry
        self.viewer = viewer
        self._counter = itertools.count()

    def _next_id(self) -> str:
        while True:
            node_id = f"tool-{next(self._counter)}"
            if node_id not in self.store:
                return node_id

    def insert_tool_between(self, from_id: str, to_id: str, tool_kind: str) -> str:
        """
        Splice a new tool node into the edge ``from_id -> to_id``.

        Returns:
            Id of the new tool node

        Raises:
            NodeNotFoundError: If either node does not exist
            GraphIntegrityError: If there is no edge from_id -> to_id
            UnknownToolError: If ``tool_kind`` is not registered
        """
        from_node = self.store.get_node(from_id)
        to_node = self.store.get_node(to_id)
        if from_node is None:
            raise NodeNotFoundError(from_id)
        if to_node is None:
            raise NodeNotFoundError(to_id)
        if self.store.downstream_of(from_id) != to_id:
            raise GraphIntegrityError(f"No connection {from_id} -> {to_id}")

        entry = self.registry.get(tool_kind)
        tool = entry.factory()

        # place the node where the emblem was
        mid_x = (from_node.x + to_node.x) / 2
        mid_y = (from_node.y + to_node.y) / 2
        width, height = TOOL_SIZE
        node_id = self._next_id()
        ToolHostNode(node_id, self.store, tool, entry.label,
                     x=mid_x - width / 2, y=mid_y - height / 2)

        try:
            tool.activate(self.viewer)
            self.store.connect(from_id, node_id)
            self.store.connect(node_id, to_id)
            self.viewer.pipeline.add_tool(tool, node_id)
        except Exception:
            logger.exception("Inserting %s tool failed; restoring %s -> %s",
                             tool_kind, from_id, to_id)
            self._rollback_insert(node_id, tool, from_id, to_id)
            raise

        logger.info("Inserted %s tool %s between %s and %s", tool_kind, node_id, from_id, to_id)
        return node_id

    def _rollback_insert(self, node_id: str, tool, from_id: str, to_id: str) -> None:
        self.viewer.pipeline.remove_tool(node_id)
        tool.deactivate(self.viewer)
        if node_id in self.store:
            self.store.remove_node(node_id)
        self.store.connect(from_id, to_id)

    def remove_tool_node(self, node_id: str) -> None:
        """
        Remove a tool node and reconnect its upstream node to its downstream node.

        Raises:
            NodeNotFoundError: If the node does not exist
            GraphIntegrityError: If the node is not a tool host
        """
        node = self.store.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        if getattr(node, "kind", None) is not NodeKind.TOOL_HOST:
            raise GraphIntegrityError(f"Node {node_id!r} is not a tool node")

        upstream = self.store.upstream_of(node_id)
        downstream = self.store.downstream_of(node_id)
        if len(upstream) > 1:
            logger.debug("Tool node %s has %d inputs; reconnecting %s", node_id,
                         len(upstream), upstream[0])

        node.tool.deactivate(self.viewer)
        self.store.remove_node(node_id)
        if upstream and downstream is not None:
            self.store.connect(upstream[0], downstream)
        self.viewer.pipeline.remove_tool(node_id)

        logger.info("Removed tool node %s", node_id)

    def toggle_tool(self, tool_kind: str, from_id: str, to_id: str) -> str | None:
        """
        Handle a click on the emblem of the cable ``from_id -> to_id``.

        If the cable already leads into a tool node that node is removed,
        otherwise a new ``tool_kind`` node is inserted.

        Returns:
            The new node id, or None if a node was removed
        """
        target = self.store.get_node(to_id)
        if getattr(target, "kind", None) is NodeKind.TOOL_HOST:
            self.remove_tool_node(to_id)
            return None
        return self.insert_tool_between(from_id, to_id, tool_kind)

    def tool_nodes(self) -> list[ToolHostNode]:
        return [n for n in self.store.nodes() if getattr(n, "kind", None) is NodeKind.TOOL_HOST]
