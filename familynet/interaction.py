"""Pointer interaction over a running layout: hover, drag and zoom/pan.

Pointer coordinates arrive in screen space and are mapped into simulation
space through the current :class:`ZoomTransform`. Handlers never tick the
simulation; they only set pins and energy targets consumed by the next tick.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple, Union

from .classifier import ClassifiedEdge, EdgeClassifier
from .layout import ForceLayout
from .utils import logger


@dataclass(frozen=True)
class ZoomConfig:
    scale_extent: Tuple[float, float] = (0.5, 2.5)


@dataclass(frozen=True)
class ZoomTransform:
    """Affine view transform ``screen = sim * k + (x, y)``."""

    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def apply(self, px: float, py: float) -> Tuple[float, float]:
        return px * self.k + self.x, py * self.k + self.y

    def invert(self, sx: float, sy: float) -> Tuple[float, float]:
        return (sx - self.x) / self.k, (sy - self.y) / self.k

    def translate_by(self, dx: float, dy: float) -> "ZoomTransform":
        return replace(self, x=self.x + dx, y=self.y + dy)

    def scale_by(
        self,
        factor: float,
        anchor: Tuple[float, float] = (0.0, 0.0),
        extent: Tuple[float, float] = ZoomConfig.scale_extent,
    ) -> "ZoomTransform":
        """Scale around a screen-space anchor, which stays put on screen."""
        low, high = extent
        k = min(high, max(low, self.k * factor))
        ax, ay = anchor
        px, py = self.invert(ax, ay)
        return ZoomTransform(k=k, x=ax - px * k, y=ay - py * k)

    def to_dict(self) -> Dict[str, float]:
        return {"k": self.k, "x": self.x, "y": self.y}


@dataclass
class HighlightEvent:
    node_id: str
    edges: List[ClassifiedEdge]
    detail: Dict[str, object] = field(default_factory=dict)
    type: str = "highlight"


@dataclass
class ResetEvent:
    node_id: str
    edges: List[ClassifiedEdge]
    type: str = "reset"


InteractionEvent = Union[HighlightEvent, ResetEvent]


class InteractionController:
    def __init__(
        self,
        layout: ForceLayout,
        classifier: EdgeClassifier,
        zoom: ZoomConfig | None = None,
    ) -> None:
        self.layout = layout
        self.classifier = classifier
        self.zoom_config = zoom or ZoomConfig()
        self.transform = ZoomTransform()
        self.hovered: Optional[str] = None
        self.dragging: Optional[str] = None
        self._render_radii = {
            node_id: style.radius for node_id, style in classifier.node_styles().items()
        }

    # -- hit testing ------------------------------------------------------

    def node_at(self, sx: float, sy: float) -> Optional[str]:
        """Nearest node whose rendered circle contains the screen point."""
        px, py = self.transform.invert(sx, sy)
        best: Optional[str] = None
        best_distance = math.inf
        for node in self.layout.nodes:
            radius = self._render_radii.get(node.id, node.radius)
            distance = math.hypot(node.x - px, node.y - py)
            if distance <= radius and distance < best_distance:
                best = node.id
                best_distance = distance
        return best

    # -- hover ------------------------------------------------------------

    def _incident(self, node_id: str, highlighted: bool) -> List[ClassifiedEdge]:
        classified: List[ClassifiedEdge] = []
        for index in self.classifier.incident_edges(node_id):
            item = self.classifier.classify_edge(index)
            if highlighted:
                item.style = self.classifier.highlight_style(item.edge)
            classified.append(item)
        return classified

    def _detail(self, node_id: str) -> Dict[str, object]:
        person = self.classifier.people.get(node_id)
        if person is None:
            return {"id": node_id}
        return person.detail()

    def hover(self, sx: float, sy: float) -> List[InteractionEvent]:
        target = self.node_at(sx, sy)
        if target == self.hovered:
            return []
        events: List[InteractionEvent] = []
        if self.hovered is not None:
            events.append(ResetEvent(self.hovered, self._incident(self.hovered, highlighted=False)))
        if target is not None:
            events.append(
                HighlightEvent(target, self._incident(target, highlighted=True), self._detail(target))
            )
        self.hovered = target
        return events

    def leave(self) -> List[InteractionEvent]:
        if self.hovered is None:
            return []
        event = ResetEvent(self.hovered, self._incident(self.hovered, highlighted=False))
        self.hovered = None
        return [event]

    # -- drag -------------------------------------------------------------

    def drag_start(self, node_id: str, sx: float, sy: float) -> None:
        if self.dragging is not None and self.dragging != node_id:
            self.drag_end()
        px, py = self.transform.invert(sx, sy)
        self.layout.pin(node_id, px, py)
        self.layout.reheat()
        self.dragging = node_id
        logger.debug("Drag started on %s", node_id)

    def drag_move(self, sx: float, sy: float) -> None:
        if self.dragging is None:
            return
        px, py = self.transform.invert(sx, sy)
        self.layout.pin(self.dragging, px, py)

    def drag_end(self) -> None:
        if self.dragging is None:
            return
        self.layout.unpin(self.dragging)
        self.layout.relax()
        self.dragging = None

    # -- zoom / pan -------------------------------------------------------

    def zoom(self, factor: float, sx: float = 0.0, sy: float = 0.0) -> ZoomTransform:
        self.transform = self.transform.scale_by(factor, (sx, sy), self.zoom_config.scale_extent)
        return self.transform

    def pan(self, dx: float, dy: float) -> ZoomTransform:
        self.transform = self.transform.translate_by(dx, dy)
        return self.transform


__all__ = [
    "HighlightEvent",
    "InteractionController",
    "InteractionEvent",
    "ResetEvent",
    "ZoomConfig",
    "ZoomTransform",
]
