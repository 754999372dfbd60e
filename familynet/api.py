"""High-level API helpers for familynet."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Sequence

from .classifier import ClassifiedEdge, EdgeClassifier
from .export import export_session
from .interaction import InteractionController, ZoomConfig
from .layout import ForceLayout, LayoutConfig, LayoutState, PositionSnapshot
from .loader import Dataset, load_dataset, sample_dataset
from .resolver import LinkResolver, ResolutionResult
from .schemas import Person, RelationshipEdge
from .stats import chart_series
from .utils import console, logger

FRAME_DT = 1 / 60


@dataclass
class GraphSession:
    """One rendering session over a loaded dataset."""

    people: List[Person]
    raw_edges: List[RelationshipEdge]
    resolution: ResolutionResult
    classifier: EdgeClassifier
    layout: ForceLayout
    interaction: InteractionController

    def frame(self, dt: float = FRAME_DT) -> PositionSnapshot:
        return self.layout.advance(dt)

    def classified_edges(self) -> List[ClassifiedEdge]:
        return self.classifier.classify()

    def chart_series(self) -> Dict[str, object]:
        return chart_series(self.people, self.raw_edges)

    def close(self) -> None:
        self.layout.stop()


def build_session(
    people: Sequence[Person],
    edges: Sequence[RelationshipEdge],
    *,
    config: LayoutConfig | None = None,
    zoom: ZoomConfig | None = None,
    seed: int | None = None,
    rng: random.Random | None = None,
) -> GraphSession:
    """Resolve, classify and lay out ``people``/``edges``; the layout is started."""
    people = list(people)
    edges = list(edges)
    resolution = LinkResolver(people).resolve(edges)
    classifier = EdgeClassifier(people, resolution.edges)
    layout = ForceLayout.from_classifier(classifier, config=config, rng=rng, seed=seed)
    interaction = InteractionController(layout, classifier, zoom=zoom)
    layout.start()
    return GraphSession(
        people=people,
        raw_edges=edges,
        resolution=resolution,
        classifier=classifier,
        layout=layout,
        interaction=interaction,
    )


def run_frames(layout: ForceLayout, *, frame_dt: float = FRAME_DT, max_frames: int = 600) -> PositionSnapshot:
    """Drive ``layout`` the way a display loop would, until it settles."""
    if layout.state is LayoutState.IDLE:
        layout.start()
    snapshot = layout.snapshot()
    for _ in range(max_frames):
        if not layout.running:
            break
        snapshot = layout.advance(frame_dt)
    return snapshot


def load_session_dataset(
    nodes: str | None,
    links: str | None,
    *,
    sample: bool = False,
    fallback_to_sample: bool = True,
) -> Dataset:
    if sample or not nodes:
        return sample_dataset()
    return load_dataset(nodes, links, fallback_to_sample=fallback_to_sample)


def run_pipeline(
    *,
    nodes: str | None,
    links: str | None,
    out_dir: str,
    seed: int | None = None,
    max_frames: int = 600,
    config: LayoutConfig | None = None,
    sample: bool = False,
) -> GraphSession:
    """End-to-end helper that mirrors ``familynet layout``."""

    dataset = load_session_dataset(nodes, links, sample=sample)
    if dataset.error:
        console.log(f"[yellow]Using sample data: {dataset.error}[/yellow]")
    session = build_session(dataset.people, dataset.edges, config=config, seed=seed)
    snapshot = run_frames(session.layout, max_frames=max_frames)
    logger.info("Layout reached %s after %d ticks (alpha=%.4f)", snapshot.state.value, snapshot.tick, snapshot.alpha)
    export_session(session, out_dir)
    session.close()
    return session


__all__ = ["GraphSession", "build_session", "load_session_dataset", "run_frames", "run_pipeline"]
