"""Session export utilities."""

from __future__ import annotations

import csv
import json
import os
from typing import TYPE_CHECKING, Dict, Iterable, Mapping, Sequence

import networkx as nx

from .classifier import LEGEND
from .layout import pinned_ids
from .loader import LINK_COLUMNS, NODE_COLUMNS
from .schemas import Person, RelationshipEdge
from .utils import console, timestamp

if TYPE_CHECKING:  # pragma: no cover
    from .api import GraphSession

NODES_CSV = "family_nodes_data.csv"
LINKS_CSV = "family_links_data.csv"


def _is_scalar(value: object) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def sanitize_graph_for_graphml(graph: nx.MultiDiGraph) -> nx.MultiDiGraph:
    """Return a copied graph with GraphML-safe attributes.

    NetworkX's GraphML writer only accepts scalar attributes, and rejects
    ``None``. Non-scalars become JSON strings and ``None`` values are dropped.
    """

    def _sanitize(data: Mapping[str, object]) -> Dict[str, object]:
        clean: Dict[str, object] = {}
        for key, value in data.items():
            if value is None:
                continue
            if _is_scalar(value):
                clean[key] = value
                continue
            try:
                clean[key] = json.dumps(value, ensure_ascii=False)
            except TypeError:
                clean[key] = json.dumps(str(value), ensure_ascii=False)
        return clean

    safe = graph.__class__()
    for node, data in graph.nodes(data=True):
        safe.add_node(node, **_sanitize(data))
    for u, v, data in graph.edges(data=True):
        safe.add_edge(u, v, **_sanitize(data))
    return safe


def write_csv(path: str, rows: Iterable[Mapping[str, object]], columns: Sequence[str]) -> str:
    with open(path, "w", encoding="utf-8", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=list(columns), extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return path


def export_csv(
    people: Iterable[Person], edges: Iterable[RelationshipEdge], out_dir: str
) -> Dict[str, str]:
    """Write the records back out in the same CSV layout they were loaded from."""
    os.makedirs(out_dir, exist_ok=True)
    return {
        "nodes_csv": write_csv(
            os.path.join(out_dir, NODES_CSV), (p.to_record() for p in people), NODE_COLUMNS
        ),
        "links_csv": write_csv(
            os.path.join(out_dir, LINKS_CSV), (e.to_record() for e in edges), LINK_COLUMNS
        ),
    }


def build_graph(session: "GraphSession") -> nx.MultiDiGraph:
    """Canonical graph annotated with positions and styles."""
    graph = nx.MultiDiGraph()
    positions = session.layout.positions()
    styles = session.classifier.node_styles()
    for person in session.people:
        pos = positions.get(person.id, {})
        graph.add_node(
            person.id,
            label=person.display_name,
            sex=person.sex.value if person.sex else None,
            birth_year=person.birth_year,
            x=pos.get("x"),
            y=pos.get("y"),
            fill=styles[person.id].fill,
            radius=styles[person.id].radius,
            annotation=styles[person.id].annotation,
        )
    for item in session.classifier.classify():
        graph.add_edge(
            item.edge.source,
            item.edge.target,
            relation=item.edge.type.value,
            label=item.style.label,
            tags=item.tags,
        )
    return graph


def layout_document(session: "GraphSession") -> Dict[str, object]:
    styles = session.classifier.node_styles()
    snapshot = session.layout.snapshot()
    return {
        "generated_at": timestamp(),
        "viewport": {"width": session.layout.config.width, "height": session.layout.config.height},
        "snapshot": snapshot.to_dict(),
        "transform": session.interaction.transform.to_dict(),
        "pinned": list(pinned_ids(session.layout)),
        "nodes": [
            {
                "id": person.id,
                "label": person.display_name,
                "style": styles[person.id].dict(),
                **snapshot.positions.get(person.id, {}),
            }
            for person in session.people
        ],
        "edges": [item.dict() for item in session.classifier.classify()],
    }


def export_session(session: "GraphSession", out_dir: str) -> Dict[str, str]:
    os.makedirs(out_dir, exist_ok=True)
    layout_path = os.path.join(out_dir, "layout.json")
    legend_path = os.path.join(out_dir, "legend.json")
    diagnostics_path = os.path.join(out_dir, "diagnostics.json")
    stats_path = os.path.join(out_dir, "stats.json")
    graphml_path = os.path.join(out_dir, "graph.graphml")

    with open(layout_path, "w", encoding="utf-8") as fh:
        json.dump(layout_document(session), fh, indent=2, ensure_ascii=False)
    with open(legend_path, "w", encoding="utf-8") as fh:
        json.dump(LEGEND, fh, indent=2)
    with open(diagnostics_path, "w", encoding="utf-8") as fh:
        json.dump(
            {
                "dropped_references": session.resolution.dropped_references,
                "diagnostics": [diag.dict() for diag in session.resolution.diagnostics],
            },
            fh,
            indent=2,
        )
    with open(stats_path, "w", encoding="utf-8") as fh:
        json.dump(session.chart_series(), fh, indent=2)
    nx.write_graphml(sanitize_graph_for_graphml(build_graph(session)), graphml_path)
    console.log("GraphML export ready", graphml_path)

    paths = {
        "layout": layout_path,
        "legend": legend_path,
        "diagnostics": diagnostics_path,
        "stats": stats_path,
        "graphml": graphml_path,
    }
    paths.update(export_csv(session.people, session.raw_edges, out_dir))
    return paths


__all__ = [
    "LINKS_CSV",
    "NODES_CSV",
    "build_graph",
    "export_csv",
    "export_session",
    "layout_document",
    "sanitize_graph_for_graphml",
]
