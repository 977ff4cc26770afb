"""
Graph module - Node store, nodes, cables and editing.
"""

from nodefolio.graph.store import (
    GraphStore,
    NODE_ADDED,
    NODE_REMOVED,
    CONNECTION_CHANGED,
    ITEM_SELECTED,
    IMAGE_CHANGED,
    STATIC_PAGE_REQUESTED,
    CATALOG_LOADED,
)
from nodefolio.graph.nodes import (
    NodeKind,
    Node,
    BrowserLevel,
    BrowserNode,
    ViewerNode,
    ToolHostNode,
)
from nodefolio.graph.cables import (
    CablePath,
    CableLayer,
    cable_path,
    curve_between,
    emblem_position,
    emblem_visible,
)
from nodefolio.graph.editor import GraphEditor
from nodefolio.graph.workspace import Workspace

__all__ = [
    "GraphStore",
    "NODE_ADDED",
    "NODE_REMOVED",
    "CONNECTION_CHANGED",
    "ITEM_SELECTED",
    "IMAGE_CHANGED",
    "STATIC_PAGE_REQUESTED",
    "CATALOG_LOADED",
    "NodeKind",
    "Node",
    "BrowserLevel",
    "BrowserNode",
    "ViewerNode",
    "ToolHostNode",
    "CablePath",
    "CableLayer",
    "cable_path",
    "curve_between",
    "emblem_position",
    "emblem_visible",
    "GraphEditor",
    "Workspace",
]
