"""Force-directed layout for the family relationship graph.

The engine follows d3-force semantics: per tick, link springs, many-body
repulsion, centering and collision adjust node velocities; velocities then
decay and are integrated into positions while ``alpha`` cools toward its
target. Nodes live in a dense array and edges refer to them by index.

There is no internal timer. Callers drive the simulation with
:meth:`ForceLayout.advance` (elapsed seconds) or :meth:`ForceLayout.tick`.
"""

from __future__ import annotations

import math
import random
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .schemas import EdgeType, RelationshipEdge
from .utils import logger

LABEL_OFFSET = 12.0


class LayoutError(RuntimeError):
    pass


class LayoutState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SETTLED = "settled"
    STOPPED = "stopped"


@dataclass
class LayoutConfig:
    """Tuning constants for the simulation; values match the original chart."""

    width: float = 1200.0
    height: float = 700.0
    marriage_distance: float = 260.0
    marriage_strength: float = 0.85
    parent_distance: float = 220.0
    parent_strength: float = 0.7
    charge_strength: float = -420.0
    charge_distance_min: float = 1.0
    center_strength: float = 1.0
    collide_strength: float = 1.0
    default_collide_radius: float = 34.0
    alpha_min: float = 0.001
    alpha_decay: float = 1 - 0.001 ** (1 / 300)
    alpha_target: float = 0.0
    drag_alpha_target: float = 0.3
    velocity_decay: float = 0.4
    initial_radius: float = 10.0
    tick_interval: float = 1 / 60
    max_ticks_per_advance: int = 10

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2, self.height / 2

    def link_params(self, edge_type: EdgeType) -> tuple[float, float]:
        if edge_type is EdgeType.MARRIAGE:
            return self.marriage_distance, self.marriage_strength
        return self.parent_distance, self.parent_strength


@dataclass
class LayoutNode:
    id: str
    index: int
    radius: float
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    fx: Optional[float] = None
    fy: Optional[float] = None

    @property
    def pinned(self) -> bool:
        return self.fx is not None and self.fy is not None


@dataclass
class LayoutEdge:
    source: int
    target: int
    type: EdgeType
    distance: float
    strength: float
    bias: float = 0.5


@dataclass
class PositionSnapshot:
    tick: int
    alpha: float
    state: LayoutState
    positions: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "tick": self.tick,
            "alpha": self.alpha,
            "state": self.state.value,
            "positions": {node_id: dict(pos) for node_id, pos in self.positions.items()},
        }


class ForceLayout:
    def __init__(
        self,
        node_ids: Iterable[str],
        edges: Iterable[RelationshipEdge],
        *,
        radii: Mapping[str, float] | None = None,
        config: LayoutConfig | None = None,
        rng: random.Random | None = None,
        seed: int | None = None,
    ) -> None:
        self.config = config or LayoutConfig()
        self.rng = rng or random.Random(seed)
        radii = radii or {}

        self.nodes: List[LayoutNode] = []
        self.index: Dict[str, int] = {}
        for node_id in node_ids:
            if node_id in self.index:
                continue
            idx = len(self.nodes)
            self.index[node_id] = idx
            radius = radii.get(node_id, self.config.default_collide_radius)
            self.nodes.append(LayoutNode(id=node_id, index=idx, radius=radius))

        self.edges: List[LayoutEdge] = []
        self.dropped_edges = 0
        for edge in edges:
            source = self.index.get(edge.source)
            target = self.index.get(edge.target)
            if source is None or target is None:
                self.dropped_edges += 1
                continue
            distance, strength = self.config.link_params(edge.type)
            self.edges.append(LayoutEdge(source, target, edge.type, distance, strength))
        if self.dropped_edges:
            logger.warning("Layout dropped %d edges with unknown endpoints", self.dropped_edges)

        self.alpha = 1.0
        self.alpha_target = self.config.alpha_target
        self.state = LayoutState.IDLE
        self.tick_count = 0
        self._elapsed = 0.0
        self._ticking = False

        self._compute_bias()
        self._initialize_positions()

    @classmethod
    def from_classifier(cls, classifier, **kwargs) -> "ForceLayout":
        """Build an engine from an :class:`~familynet.classifier.EdgeClassifier`."""
        return cls(
            list(classifier.people),
            classifier.edges,
            radii=classifier.collide_radii(),
            **kwargs,
        )

    def _compute_bias(self) -> None:
        # Each link force counts degree over its own links only.
        for edge_type in EdgeType:
            group = [edge for edge in self.edges if edge.type is edge_type]
            count: Counter[int] = Counter()
            for edge in group:
                count[edge.source] += 1
                count[edge.target] += 1
            for edge in group:
                edge.bias = count[edge.source] / (count[edge.source] + count[edge.target])

    def _initialize_positions(self) -> None:
        cx, cy = self.config.center
        spread = self.config.initial_radius * math.sqrt(0.5 + len(self.nodes))
        for node in self.nodes:
            angle = self.rng.uniform(0.0, 2 * math.pi)
            distance = spread * math.sqrt(self.rng.random())
            node.x = cx + distance * math.cos(angle)
            node.y = cy + distance * math.sin(angle)
            node.vx = node.vy = 0.0

    def _jiggle(self) -> float:
        return (self.rng.random() - 0.5) * 1e-6

    # -- lifecycle --------------------------------------------------------

    def start(self) -> PositionSnapshot:
        """(Re)start the simulation at full energy."""
        self.alpha = 1.0
        self._elapsed = 0.0
        self.state = LayoutState.RUNNING
        return self.snapshot()

    def stop(self) -> None:
        if self.state is LayoutState.STOPPED:
            return
        self.state = LayoutState.STOPPED
        logger.debug("Layout stopped after %d ticks", self.tick_count)

    def reheat(self, alpha_target: float | None = None) -> None:
        """Raise the energy target and resume ticking (used when a drag starts).

        A stopped layout stays stopped; only :meth:`start` brings it back.
        """
        if self.state is LayoutState.STOPPED:
            logger.debug("Ignoring reheat on a stopped layout")
            return
        if alpha_target is None:
            alpha_target = self.config.drag_alpha_target
        self.alpha_target = alpha_target
        self.state = LayoutState.RUNNING

    def relax(self) -> None:
        """Drop the energy target back to its resting value."""
        self.alpha_target = self.config.alpha_target

    @property
    def running(self) -> bool:
        return self.state is LayoutState.RUNNING

    # -- pinning ----------------------------------------------------------

    def node(self, node_id: str) -> LayoutNode:
        try:
            return self.nodes[self.index[node_id]]
        except KeyError:
            raise LayoutError(f"Unknown node {node_id!r}") from None

    def pin(self, node_id: str, x: float | None = None, y: float | None = None) -> None:
        node = self.node(node_id)
        node.fx = node.x if x is None else x
        node.fy = node.y if y is None else y

    def unpin(self, node_id: str) -> None:
        node = self.node(node_id)
        node.fx = None
        node.fy = None

    # -- forces -----------------------------------------------------------

    def _apply_links(self, edge_type: EdgeType) -> None:
        nodes = self.nodes
        alpha = self.alpha
        for edge in self.edges:
            if edge.type is not edge_type:
                continue
            source = nodes[edge.source]
            target = nodes[edge.target]
            x = target.x + target.vx - source.x - source.vx or self._jiggle()
            y = target.y + target.vy - source.y - source.vy or self._jiggle()
            length = math.sqrt(x * x + y * y)
            length = (length - edge.distance) / length * alpha * edge.strength
            x *= length
            y *= length
            target.vx -= x * edge.bias
            target.vy -= y * edge.bias
            source.vx += x * (1 - edge.bias)
            source.vy += y * (1 - edge.bias)

    def _apply_charge(self) -> None:
        strength = self.config.charge_strength
        distance_min2 = self.config.charge_distance_min ** 2
        alpha = self.alpha
        for node in self.nodes:
            for other in self.nodes:
                if other is node:
                    continue
                x = other.x - node.x
                y = other.y - node.y
                l2 = x * x + y * y
                if x == 0:
                    x = self._jiggle()
                    l2 += x * x
                if y == 0:
                    y = self._jiggle()
                    l2 += y * y
                if l2 < distance_min2:
                    l2 = math.sqrt(distance_min2 * l2)
                weight = strength * alpha / l2
                node.vx += x * weight
                node.vy += y * weight

    def _apply_center(self) -> None:
        if not self.nodes:
            return
        cx, cy = self.config.center
        n = len(self.nodes)
        sx = (sum(node.x for node in self.nodes) / n - cx) * self.config.center_strength
        sy = (sum(node.y for node in self.nodes) / n - cy) * self.config.center_strength
        for node in self.nodes:
            node.x -= sx
            node.y -= sy

    def _apply_collide(self) -> None:
        strength = self.config.collide_strength
        nodes = self.nodes
        for i, node in enumerate(nodes):
            ri = node.radius
            ri2 = ri * ri
            xi = node.x + node.vx
            yi = node.y + node.vy
            for other in nodes[i + 1:]:
                rj = other.radius
                r = ri + rj
                x = xi - other.x - other.vx
                y = yi - other.y - other.vy
                l2 = x * x + y * y
                if l2 >= r * r:
                    continue
                if x == 0:
                    x = self._jiggle()
                    l2 += x * x
                if y == 0:
                    y = self._jiggle()
                    l2 += y * y
                length = math.sqrt(l2)
                length = (r - length) / length * strength
                x *= length
                y *= length
                rj2 = rj * rj
                share = rj2 / (ri2 + rj2)
                node.vx += x * share
                node.vy += y * share
                other.vx -= x * (1 - share)
                other.vy -= y * (1 - share)

    def _integrate(self) -> None:
        keep = 1 - self.config.velocity_decay
        for node in self.nodes:
            if node.fx is None:
                node.vx *= keep
                node.x += node.vx
            else:
                node.x = node.fx
                node.vx = 0.0
            if node.fy is None:
                node.vy *= keep
                node.y += node.vy
            else:
                node.y = node.fy
                node.vy = 0.0

    # -- stepping ---------------------------------------------------------

    def tick(self) -> PositionSnapshot:
        """Run exactly one simulation step."""
        if self._ticking:
            raise LayoutError("tick() re-entered while a tick is in progress")
        self._ticking = True
        try:
            self.alpha += (self.alpha_target - self.alpha) * self.config.alpha_decay
            self._apply_links(EdgeType.MARRIAGE)
            self._apply_links(EdgeType.PARENT_CHILD)
            self._apply_charge()
            self._apply_center()
            self._apply_collide()
            self._integrate()
            self.tick_count += 1
            if self.state is LayoutState.RUNNING and self.alpha < self.config.alpha_min:
                self.state = LayoutState.SETTLED
                logger.debug("Layout settled after %d ticks", self.tick_count)
        finally:
            self._ticking = False
        return self.snapshot()

    def advance(self, dt: float) -> PositionSnapshot:
        """Advance by ``dt`` seconds of wall time; ticks only while running."""
        if dt < 0:
            raise ValueError("dt must be non-negative")
        if self.state is not LayoutState.RUNNING:
            return self.snapshot()
        interval = self.config.tick_interval
        self._elapsed += dt
        steps = int(self._elapsed / interval + 1e-9)
        self._elapsed -= steps * interval
        if steps > self.config.max_ticks_per_advance:
            steps = self.config.max_ticks_per_advance
            self._elapsed = 0.0
        for _ in range(steps):
            self.tick()
            if self.state is not LayoutState.RUNNING:
                self._elapsed = 0.0
                break
        return self.snapshot()

    # -- output -----------------------------------------------------------

    def position(self, node_id: str) -> tuple[float, float]:
        node = self.node(node_id)
        return node.x, node.y

    def positions(self) -> Dict[str, Dict[str, float]]:
        return {node.id: {"x": node.x, "y": node.y} for node in self.nodes}

    def snapshot(self) -> PositionSnapshot:
        return PositionSnapshot(
            tick=self.tick_count,
            alpha=self.alpha,
            state=self.state,
            positions=self.positions(),
        )

    def edge_endpoints(self) -> List[Dict[str, object]]:
        """Current line segments, resolved through the node arena.

        Each segment also carries its label anchor: the midpoint pushed
        ``LABEL_OFFSET`` units along the normal, with the rotation in degrees.
        Marriage labels are flipped so they never render upside down.
        """
        segments: List[Dict[str, object]] = []
        for edge in self.edges:
            source = self.nodes[edge.source]
            target = self.nodes[edge.target]
            label_x, label_y, label_angle = label_anchor(
                source.x, source.y, target.x, target.y, upright=edge.type is EdgeType.MARRIAGE
            )
            segments.append(
                {
                    "source": source.id,
                    "target": target.id,
                    "type": edge.type.value,
                    "x1": source.x,
                    "y1": source.y,
                    "x2": target.x,
                    "y2": target.y,
                    "label_x": label_x,
                    "label_y": label_y,
                    "label_angle": label_angle,
                }
            )
        return segments


def label_anchor(
    x1: float, y1: float, x2: float, y2: float, *, upright: bool = False
) -> tuple[float, float, float]:
    angle = math.degrees(math.atan2(y2 - y1, x2 - x1))
    if upright and (angle > 90 or angle < -90):
        angle += 180
    normal = math.radians(angle + 90)
    x = (x1 + x2) / 2 + LABEL_OFFSET * math.cos(normal)
    y = (y1 + y2) / 2 + LABEL_OFFSET * math.sin(normal)
    return x, y, angle


def pinned_ids(layout: ForceLayout) -> Sequence[str]:
    return [node.id for node in layout.nodes if node.pinned]


__all__ = [
    "ForceLayout",
    "LayoutConfig",
    "LayoutEdge",
    "LayoutError",
    "LayoutNode",
    "LayoutState",
    "PositionSnapshot",
    "label_anchor",
    "pinned_ids",
]
