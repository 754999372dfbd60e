"""Derive style-relevant tags for canonical edges and people.

Everything here is a pure query over the resolved edge set and the person
records. The graph is held as a ``networkx.MultiDiGraph`` so repeated
marriage edges between the same pair survive as distinct instances.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

import networkx as nx

from .schemas import EdgeType, Person, RelationshipEdge, Sex

MARRIED_LABEL = "married"
SAME_SEX_MARRIED_LABEL = "married (same-sex)"
PARENT_LABEL = "parent → child"

REGULAR_RADIUS = 12.0
LEAF_RADIUS = 8.0
REGULAR_COLLIDE_RADIUS = 34.0
LEAF_COLLIDE_RADIUS = 28.0

SEX_FILLS = {"Male": "#3b82f6", "Female": "#ef4444"}
UNKNOWN_FILL = "#64748b"
LEAF_FILL = "#a78bfa"

EDGE_STYLES = {
    "marriage_same_sex": {"stroke": "#22c55e", "label_fill": "#14532d", "width": 6.0, "opacity": 0.95},
    "marriage_opposite_sex": {"stroke": "#ef4444", "label_fill": "#7f1d1d", "width": 6.0, "opacity": 0.95},
    "parent": {"stroke": "#64748b", "label_fill": "#475569", "width": 3.0, "opacity": 0.9, "dash": "8,5", "marker": "arrow-parent"},
}
NODE_STYLES = {
    "male": {"fill": SEX_FILLS["Male"], "radius": REGULAR_RADIUS},
    "female": {"fill": SEX_FILLS["Female"], "radius": REGULAR_RADIUS},
    "unknown": {"fill": UNKNOWN_FILL, "radius": REGULAR_RADIUS},
    "leaf_child": {"fill": LEAF_FILL, "radius": LEAF_RADIUS},
}
HIGHLIGHT_EXTRA_WIDTH = 3.0

LEGEND = {"edges": EDGE_STYLES, "nodes": NODE_STYLES}


@dataclass(frozen=True)
class EdgeStyle:
    stroke: str
    width: float
    opacity: float
    label: str
    label_fill: str
    dash: Optional[str] = None
    marker: Optional[str] = None

    def dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class NodeStyle:
    radius: float
    collide_radius: float
    fill: str
    stroke: str
    stroke_width: float
    annotation: str = ""

    def dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass
class ClassifiedEdge:
    index: int
    edge: RelationshipEdge
    style: EdgeStyle
    tags: Dict[str, object] = field(default_factory=dict)

    def dict(self) -> Dict[str, object]:
        return {
            "index": self.index,
            "source": self.edge.source,
            "target": self.edge.target,
            "type": self.edge.type.value,
            "style": self.style.dict(),
            "tags": dict(self.tags),
        }


class EdgeClassifier:
    def __init__(self, people: Iterable[Person], edges: Iterable[RelationshipEdge]) -> None:
        self.people: Dict[str, Person] = {person.id: person for person in people}
        self.edges: List[RelationshipEdge] = list(edges)
        self.graph = nx.MultiDiGraph()
        for person in self.people.values():
            self.graph.add_node(person.id, label=person.display_name)
        for index, edge in enumerate(self.edges):
            self.graph.add_edge(edge.source, edge.target, relation=edge.type.value, index=index)

    # -- edge queries -----------------------------------------------------

    def is_same_sex_marriage(self, edge: RelationshipEdge) -> bool:
        first = self.people.get(edge.source)
        second = self.people.get(edge.target)
        if first is None or second is None:
            return False
        if first.sex is None or second.sex is None or first.sex != second.sex:
            return False
        if first.sex is Sex.OTHER:
            # "Other" covers any unrecognised value; only identical labels match.
            return first.sex_label.lower() == second.sex_label.lower()
        return True

    def marriage_has_children(self, edge: RelationshipEdge) -> bool:
        return any(
            person is not None and person.num_kids > 0
            for person in (self.people.get(edge.source), self.people.get(edge.target))
        )

    def edge_label(self, edge: RelationshipEdge) -> str:
        if edge.is_marriage:
            return SAME_SEX_MARRIED_LABEL if self.is_same_sex_marriage(edge) else MARRIED_LABEL
        return PARENT_LABEL

    def edge_tags(self, edge: RelationshipEdge) -> Dict[str, object]:
        if edge.is_marriage:
            return {
                "kind": "marriage",
                "same_sex": self.is_same_sex_marriage(edge),
                "has_children": self.marriage_has_children(edge),
                "bond": "strong" if self.marriage_has_children(edge) else "fluid",
            }
        return {"kind": "parent", "parent": edge.source, "child": edge.target}

    def edge_style(self, edge: RelationshipEdge) -> EdgeStyle:
        if edge.is_marriage:
            key = "marriage_same_sex" if self.is_same_sex_marriage(edge) else "marriage_opposite_sex"
        else:
            key = "parent"
        spec = EDGE_STYLES[key]
        return EdgeStyle(
            stroke=spec["stroke"],
            width=spec["width"],
            opacity=spec["opacity"],
            label=self.edge_label(edge),
            label_fill=spec["label_fill"],
            dash=spec.get("dash"),
            marker=spec.get("marker"),
        )

    def highlight_style(self, edge: RelationshipEdge) -> EdgeStyle:
        base = self.edge_style(edge)
        return EdgeStyle(
            stroke=base.stroke,
            width=base.width + HIGHLIGHT_EXTRA_WIDTH,
            opacity=1.0,
            label=base.label,
            label_fill=base.label_fill,
            dash=base.dash,
            marker=base.marker,
        )

    def classify_edge(self, index: int) -> ClassifiedEdge:
        edge = self.edges[index]
        return ClassifiedEdge(index=index, edge=edge, style=self.edge_style(edge), tags=self.edge_tags(edge))

    def classify(self) -> List[ClassifiedEdge]:
        return [self.classify_edge(index) for index in range(len(self.edges))]

    def incident_edges(self, node_id: str) -> List[int]:
        """Indices of edges touching ``node_id``, in canonical order."""
        if node_id not in self.graph:
            return []
        indices = {data["index"] for _, _, data in self.graph.in_edges(node_id, data=True)}
        indices.update(data["index"] for _, _, data in self.graph.out_edges(node_id, data=True))
        return sorted(indices)

    # -- node queries -----------------------------------------------------

    def _parent_edges(self, node_id: str, incoming: bool) -> List[str]:
        if node_id not in self.graph:
            return []
        view = self.graph.in_edges if incoming else self.graph.out_edges
        found: List[str] = []
        for u, v, data in view(node_id, data=True):
            if data.get("relation") != EdgeType.PARENT_CHILD.value:
                continue
            found.append(u if incoming else v)
        return found

    def parents_of(self, node_id: str) -> List[str]:
        return self._parent_edges(node_id, incoming=True)

    def parent_count(self, node_id: str) -> int:
        return len(self._parent_edges(node_id, incoming=True))

    def child_count(self, node_id: str) -> int:
        return len(self._parent_edges(node_id, incoming=False))

    def is_leaf_child_of_two_parents(self, node_id: str) -> bool:
        return self.parent_count(node_id) == 2 and self.child_count(node_id) == 0

    def initial_of(self, node_id: str) -> str:
        person = self.people.get(node_id)
        if person is None:
            return node_id[0].upper() if node_id else "?"
        return person.initial

    def child_of_annotation(self, node_id: str) -> str:
        if not self.is_leaf_child_of_two_parents(node_id):
            return ""
        first, second = self.parents_of(node_id)
        return f"child of ({self.initial_of(first)}, {self.initial_of(second)})"

    def node_style(self, node_id: str) -> NodeStyle:
        if self.is_leaf_child_of_two_parents(node_id):
            return NodeStyle(
                radius=LEAF_RADIUS,
                collide_radius=LEAF_COLLIDE_RADIUS,
                fill=LEAF_FILL,
                stroke="#111827",
                stroke_width=1.0,
                annotation=self.child_of_annotation(node_id),
            )
        person = self.people.get(node_id)
        sex = person.sex.value if person is not None and person.sex is not None else None
        return NodeStyle(
            radius=REGULAR_RADIUS,
            collide_radius=REGULAR_COLLIDE_RADIUS,
            fill=SEX_FILLS.get(sex or "", UNKNOWN_FILL),
            stroke="#111827",
            stroke_width=1.5,
        )

    def node_styles(self) -> Dict[str, NodeStyle]:
        return {node_id: self.node_style(node_id) for node_id in self.people}

    def collide_radii(self) -> Mapping[str, float]:
        return {node_id: style.collide_radius for node_id, style in self.node_styles().items()}


__all__ = [
    "EdgeClassifier",
    "ClassifiedEdge",
    "EdgeStyle",
    "NodeStyle",
    "EDGE_STYLES",
    "NODE_STYLES",
    "LEGEND",
    "MARRIED_LABEL",
    "SAME_SEX_MARRIED_LABEL",
    "PARENT_LABEL",
]
