"""
Cable geometry between node ports.

A cable leaves the bottom of the source node and enters the top of the
destination node as a vertical cubic Bezier. The tool emblem ("+" menu)
sits at the straight-line midpoint and is hidden on short cables.
"""

import logging
import math
from dataclasses import dataclass

from nodefolio.core.config import CableSettings
from nodefolio.graph.store import CONNECTION_CHANGED, NODE_REMOVED, GraphStore

logger = logging.getLogger(__name__)

Point = tuple[float, float]


@dataclass(frozen=True)
class CablePath:
    """Cubic Bezier from ``p0`` to ``p3`` with control points ``p1``, ``p2``."""
    p0: Point
    p1: Point
    p2: Point
    p3: Point

    def point_at(self, t: float) -> Point:
        u = 1.0 - t
        a, b, c, d = u * u * u, 3 * u * u * t, 3 * u * t * t, t * t * t
        return (
            a * self.p0[0] + b * self.p1[0] + c * self.p2[0] + d * self.p3[0],
            a * self.p0[1] + b * self.p1[1] + c * self.p2[1] + d * self.p3[1],
        )

    @property
    def length(self) -> float:
        """Straight-line distance between the two ports."""
        return math.dist(self.p0, self.p3)

    def arc_length(self, samples: int = 32) -> float:
        points = [self.point_at(i / samples) for i in range(samples + 1)]
        return sum(math.dist(a, b) for a, b in zip(points, points[1:]))

    @property
    def midpoint(self) -> Point:
        return ((self.p0[0] + self.p3[0]) / 2, (self.p0[1] + self.p3[1]) / 2)

    def svg_d(self) -> str:
        """SVG path data, e.g. for an ``<path d=...>`` element."""
        (x1, y1), (cx1, cy1), (cx2, cy2), (x2, y2) = self.p0, self.p1, self.p2, self.p3
        return f"M {x1:g} {y1:g} C {cx1:g} {cy1:g}, {cx2:g} {cy2:g}, {x2:g} {y2:g}"


def curve_between(start: Point, end: Point, curve_factor: float = 0.3,
                  max_curve: float = 50.0) -> CablePath:
    """Bezier between two port anchors; the bend grows with vertical distance."""
    (x1, y1), (x2, y2) = start, end
    curve = min(abs(y2 - y1) * curve_factor, max_curve)
    return CablePath((x1, y1), (x1, y1 + curve), (x2, y2 - curve), (x2, y2))


def cable_path(from_node, to_node, curve_factor: float = 0.3, max_curve: float = 50.0) -> CablePath:
    return curve_between(from_node.output_port(), to_node.input_port(), curve_factor, max_curve)


def emblem_position(path: CablePath, offset: float = 12.0) -> Point:
    """Top-left corner of the emblem so that it is centred on the cable."""
    mx, my = path.midpoint
    return (mx - offset, my - offset)


def emblem_visible(path: CablePath, min_length: float = 60.0) -> bool:
    return path.length >= min_length


class CableLayer:
    """
    Keeps one cable per connection, keyed by source node id.

    Listens to the store so paths follow node moves, resizes and rewiring.
    """

    def __init__(self, store: GraphStore, settings: CableSettings | None = None):
        self.store = store
        self.settings = settings or CableSettings()
        self.paths: dict[str, CablePath] = {}
        self.targets: dict[str, str] = {}
        store.on(CONNECTION_CHANGED, self.update_all)
        store.on(NODE_REMOVED, self._node_removed)
        self.update_all()

    def update_all(self, _payload=None) -> None:
        edges = self.store.list_edges()
        active = {src for src, _ in edges}
        for src in list(self.paths):
            if src not in active:
                self.remove_path(src)
        for src, dst in edges:
            self.update_connection(src, dst)

    def update_connection(self, from_id: str, to_id: str) -> CablePath | None:
        from_node = self.store.get_node(from_id)
        to_node = self.store.get_node(to_id)
        if from_node is None or to_node is None:
            logger.debug("Edge %s -> %s has no node on one end", from_id, to_id)
            return None
        s = self.settings
        path = cable_path(from_node, to_node, s.curve_factor, s.max_curve)
        self.paths[from_id] = path
        self.targets[from_id] = to_id
        return path

    def _node_removed(self, payload: dict) -> None:
        self.remove_path(payload["id"])

    def remove_path(self, from_id: str) -> None:
        self.paths.pop(from_id, None)
        self.targets.pop(from_id, None)

    def emblems(self) -> list[dict]:
        """Emblem placement for every cable long enough to show one."""
        s = self.settings
        result = []
        for src, path in self.paths.items():
            if not emblem_visible(path, s.min_length_for_emblem):
                continue
            x, y = emblem_position(path, s.emblem_offset)
            result.append({"from_id": src, "to_id": self.targets[src], "x": x, "y": y})
        return result

    def to_dict(self) -> list[dict]:
        return [
            {"from_id": src, "to_id": self.targets[src], "d": path.svg_d()}
            for src, path in self.paths.items()
        ]
