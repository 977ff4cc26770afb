"""
Exception hierarchy for nodefolio.

Structural graph errors surface to the caller immediately. Tool and
metadata failures are contained by the pipeline and the overlay tools,
so their exception types exist mostly for logging and error records.
"""


class NodefolioError(Exception):
    """Base class for all nodefolio errors."""


class GraphIntegrityError(NodefolioError):
    """A graph edit referenced a node or edge that breaks the graph's shape."""


class DuplicateIdError(GraphIntegrityError):
    """A node id was registered twice in the same graph store."""

    def __init__(self, node_id: str):
        super().__init__(f"Node id already registered: {node_id!r}")
        self.node_id = node_id


class NodeNotFoundError(GraphIntegrityError, KeyError):
    """An operation named a node id that is not in the graph store."""

    def __init__(self, node_id: str):
        super().__init__(f"Node not found: {node_id!r}")
        self.node_id = node_id

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class ToolTransformError(NodefolioError):
    """A tool raised while transforming a frame."""

    def __init__(self, host_id: str, tool_kind: str, cause: BaseException):
        super().__init__(f"Tool {tool_kind!r} on node {host_id!r} failed: {cause}")
        self.host_id = host_id
        self.tool_kind = tool_kind
        self.cause = cause


class MediaLoadError(NodefolioError):
    """An image could not be read or decoded."""

    def __init__(self, source: str, reason: str = "could not decode image"):
        super().__init__(f"Failed to load {source}: {reason}")
        self.source = source
        self.reason = reason


class MetadataFetchError(NodefolioError):
    """Caption or info text could not be fetched."""

    def __init__(self, path: str, reason: str = ""):
        message = f"Could not fetch info text from {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.path = path


class DegenerateConstraintError(NodefolioError):
    """A distance constraint collapsed to (near) zero length."""


class UnknownToolError(NodefolioError, ValueError):
    """No tool is registered under the requested kind."""

    def __init__(self, kind: str, available: list[str]):
        super().__init__(f"Unknown tool: {kind}. Available: {available}")
        self.kind = kind
        self.available = available
