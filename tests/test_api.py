import random

from familynet.api import build_session, load_session_dataset, run_frames, run_pipeline
from familynet.layout import LayoutState
from familynet.loader import parse_edges, parse_people
from scripts.generate_sample_family import LINKS, PEOPLE


def sample_family():
    people, _ = parse_people(PEOPLE)
    edges, _ = parse_edges(LINKS)
    return people, edges


def test_build_session_resolves_before_layout():
    people, edges = sample_family()
    session = build_session(people, edges, seed=1)
    assert session.layout.state is LayoutState.RUNNING
    assert len(session.raw_edges) == 10
    assert len(session.resolution.edges) == 9
    assert session.resolution.parent_groups["P07"] == ["P03", "P04"]
    assert len(session.layout.edges) == 9
    assert [node.id for node in session.layout.nodes] == [p.id for p in people]


def test_leaf_children_get_smaller_collision_radius():
    people, edges = sample_family()
    session = build_session(people, edges, seed=1)
    radii = {node.id: node.radius for node in session.layout.nodes}
    assert radii["P07"] < radii["P01"]


def test_injected_rng_controls_initial_positions():
    people, edges = sample_family()
    first = build_session(people, edges, rng=random.Random(5))
    second = build_session(people, edges, rng=random.Random(5))
    assert first.layout.positions() == second.layout.positions()


def test_frames_settle_and_close_is_idempotent():
    people, edges = sample_family()
    session = build_session(people, edges, seed=2)
    snapshot = run_frames(session.layout, max_frames=1000)
    assert snapshot.state is LayoutState.SETTLED
    session.close()
    session.close()
    assert session.layout.state is LayoutState.STOPPED
    ticks = session.layout.tick_count
    session.frame()
    assert session.layout.tick_count == ticks


def test_frame_advances_running_layout():
    people, edges = sample_family()
    session = build_session(people, edges, seed=2)
    snapshot = session.frame()
    assert snapshot.tick == 1


def test_load_session_dataset_uses_sample_without_nodes():
    dataset = load_session_dataset(None, None)
    assert dataset.is_sample


def test_run_pipeline_with_sample(tmp_path):
    session = run_pipeline(nodes=None, links=None, out_dir=str(tmp_path), seed=1, max_frames=10, sample=True)
    assert session.layout.state is LayoutState.STOPPED
    assert (tmp_path / "layout.json").exists()
    assert (tmp_path / "graph.graphml").exists()
