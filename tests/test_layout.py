import math

import pytest

from familynet.api import run_frames
from familynet.layout import LABEL_OFFSET, ForceLayout, LayoutConfig, LayoutError, LayoutState, label_anchor
from familynet.schemas import EdgeType, RelationshipEdge


def marriage(source, target):
    return RelationshipEdge(source, target, EdgeType.MARRIAGE)


def parent(source, target):
    return RelationshipEdge(source, target, EdgeType.PARENT_CHILD)


def small_family(**kwargs):
    nodes = ["A", "B", "C", "D"]
    edges = [marriage("A", "B"), parent("A", "C"), parent("B", "C"), parent("A", "D")]
    return ForceLayout(nodes, edges, **kwargs)


def distance(layout, a, b):
    ax, ay = layout.position(a)
    bx, by = layout.position(b)
    return math.hypot(ax - bx, ay - by)


def test_empty_layout_is_a_no_op():
    layout = ForceLayout([], [])
    layout.start()
    snapshot = layout.tick()
    assert snapshot.positions == {}
    assert layout.advance(1.0).positions == {}
    layout.stop()


def test_edges_with_unknown_endpoints_are_dropped():
    layout = ForceLayout(["A", "B"], [marriage("A", "B"), parent("A", "Z")], seed=1)
    assert len(layout.edges) == 1
    assert layout.dropped_edges == 1


def test_edges_reference_nodes_by_index():
    layout = small_family(seed=3)
    edge = layout.edges[0]
    assert layout.nodes[edge.source].id == "A"
    assert layout.nodes[edge.target].id == "B"
    layout.nodes[edge.source].x = 42.0
    assert layout.edge_endpoints()[0]["x1"] == 42.0


def test_same_seed_reproduces_layout():
    first = small_family(seed=7)
    second = small_family(seed=7)
    for _ in range(50):
        first.tick()
        second.tick()
    assert first.positions() == second.positions()


def test_pinned_node_does_not_move():
    layout = small_family(seed=11)
    layout.start()
    before = layout.position("C")
    layout.pin("C")
    layout.tick()
    assert layout.position("C") == before
    layout.pin("C", 10.0, 20.0)
    layout.tick()
    layout.tick()
    assert layout.position("C") == (10.0, 20.0)


def test_unpinned_node_rejoins_simulation():
    layout = small_family(seed=11)
    layout.start()
    layout.pin("C", 10.0, 20.0)
    layout.tick()
    layout.unpin("C")
    for _ in range(5):
        layout.tick()
    assert layout.position("C") != (10.0, 20.0)


def test_pin_unknown_node_raises():
    layout = small_family(seed=1)
    with pytest.raises(LayoutError):
        layout.pin("nope")


def test_simulation_settles_and_stays_put():
    layout = small_family(seed=5)
    snapshot = run_frames(layout, max_frames=1000)
    assert snapshot.state is LayoutState.SETTLED
    assert layout.alpha < layout.config.alpha_min
    ticks = layout.tick_count
    layout.advance(1.0)
    assert layout.tick_count == ticks


def test_marriage_link_pulls_toward_target_distance():
    config = LayoutConfig(charge_strength=0.0)
    layout = ForceLayout(["A", "B"], [marriage("A", "B")], config=config, seed=2)
    run_frames(layout, max_frames=1000)
    assert distance(layout, "A", "B") == pytest.approx(config.marriage_distance, abs=5.0)


def test_repulsion_and_collision_separate_unlinked_nodes():
    layout = ForceLayout(["A", "B"], [], seed=9)
    run_frames(layout, max_frames=1000)
    assert distance(layout, "A", "B") > 2 * layout.config.default_collide_radius


def test_centering_keeps_centroid_at_viewport_center():
    config = LayoutConfig(width=800, height=600)
    layout = small_family(config=config, seed=4)
    run_frames(layout, max_frames=1000)
    xs = [node.x for node in layout.nodes]
    ys = [node.y for node in layout.nodes]
    assert sum(xs) / len(xs) == pytest.approx(400, abs=1.0)
    assert sum(ys) / len(ys) == pytest.approx(300, abs=1.0)


def test_stop_is_idempotent_and_halts_advance():
    layout = small_family(seed=1)
    layout.start()
    layout.advance(1 / 60)
    ticks = layout.tick_count
    layout.stop()
    layout.stop()
    assert layout.state is LayoutState.STOPPED
    layout.advance(1.0)
    assert layout.tick_count == ticks


def test_idle_layout_does_not_advance():
    layout = small_family(seed=1)
    layout.advance(1.0)
    assert layout.tick_count == 0
    assert layout.state is LayoutState.IDLE


def test_advance_accumulates_partial_frames():
    layout = small_family(seed=1)
    layout.start()
    layout.advance(1 / 120)
    assert layout.tick_count == 0
    layout.advance(1 / 120)
    assert layout.tick_count == 1


def test_advance_caps_ticks_per_call():
    config = LayoutConfig(max_ticks_per_advance=3)
    layout = small_family(config=config, seed=1)
    layout.start()
    layout.advance(10.0)
    assert layout.tick_count == 3


def test_advance_rejects_negative_dt():
    layout = small_family(seed=1)
    with pytest.raises(ValueError):
        layout.advance(-0.1)


def test_reheat_resumes_settled_layout():
    layout = small_family(seed=5)
    run_frames(layout, max_frames=1000)
    layout.reheat()
    assert layout.state is LayoutState.RUNNING
    assert layout.alpha_target == layout.config.drag_alpha_target
    layout.advance(1 / 60)
    assert layout.alpha > layout.config.alpha_min
    layout.relax()
    assert layout.alpha_target == 0.0


def test_tick_cannot_be_reentered(monkeypatch):
    layout = small_family(seed=1)

    def reenter():
        layout.tick()

    monkeypatch.setattr(layout, "_apply_center", reenter)
    with pytest.raises(LayoutError):
        layout.tick()
    # the guard is released afterwards
    monkeypatch.undo()
    layout.tick()


def test_snapshot_to_dict():
    layout = small_family(seed=1)
    data = layout.start().to_dict()
    assert data["state"] == "running"
    assert set(data["positions"]) == {"A", "B", "C", "D"}
    assert set(data["positions"]["A"]) == {"x", "y"}


def test_reheat_does_not_resume_stopped_layout():
    layout = small_family(seed=5)
    layout.start()
    layout.stop()
    layout.reheat()
    assert layout.state is LayoutState.STOPPED
    assert layout.alpha_target == 0.0
    layout.advance(1.0)
    assert layout.tick_count == 0
    layout.start()
    assert layout.running


def test_label_anchor_sits_beside_segment_midpoint():
    x, y, angle = label_anchor(0.0, 0.0, 100.0, 0.0)
    assert angle == 0.0
    assert (x, y) == pytest.approx((50.0, LABEL_OFFSET))

    # right-to-left segments keep their angle unless labels must stay upright
    x, y, angle = label_anchor(100.0, 0.0, 0.0, 0.0)
    assert angle == pytest.approx(180.0)
    assert (x, y) == pytest.approx((50.0, -LABEL_OFFSET))
    x, y, angle = label_anchor(100.0, 0.0, 0.0, 0.0, upright=True)
    assert angle == pytest.approx(360.0)
    assert (x, y) == pytest.approx((50.0, LABEL_OFFSET))


def test_edge_endpoints_include_label_anchors():
    layout = ForceLayout(["A", "B", "C"], [marriage("A", "B"), parent("A", "C")], seed=1)
    placements = {"A": (200.0, 0.0), "B": (0.0, 0.0), "C": (200.0, 100.0)}
    for node in layout.nodes:
        node.x, node.y = placements[node.id]
    marriage_segment, parent_segment = layout.edge_endpoints()
    assert marriage_segment["label_angle"] == pytest.approx(360.0)
    assert (marriage_segment["label_x"], marriage_segment["label_y"]) == pytest.approx((100.0, LABEL_OFFSET))
    assert parent_segment["label_angle"] == pytest.approx(90.0)
    assert (parent_segment["label_x"], parent_segment["label_y"]) == pytest.approx((200.0 - LABEL_OFFSET, 50.0))
