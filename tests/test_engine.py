"""Tests for the graph engine."""

import numpy as np
import pytest

from examples.grid_graphs import get_grid_graph
from perfect_matching_app import engine as engine_module
from perfect_matching_app.backend import Edge, InvalidGraphError, is_perfect_matching
from perfect_matching_app.engine import DUPLICATE_VERTEX_DISTANCE, Engine, EngineError


@pytest.fixture
def engine():
    """Fresh engine, independent of the process-wide singleton."""
    return Engine()


@pytest.fixture
def statuses(engine):
    messages = []
    engine.add_status_listener(messages.append)
    return messages


@pytest.fixture
def diagonal_grid(engine):
    """
    0-1-2
    |/| |
    3-5-6
    """
    positions = {
        0: (0.0, 0.0), 1: (0.5, 0.0), 2: (1.0, 0.0),
        3: (0.0, 1.0), 5: (0.5, 1.0), 6: (1.0, 1.0),
    }
    ids = {label: engine.add_vertex(*xy) for label, xy in positions.items()}
    for a, b in [(0, 1), (0, 3), (1, 2), (1, 3), (1, 5), (2, 6), (3, 5), (5, 6)]:
        engine.add_edge(ids[a], ids[b])
    return ids


def test_instance_is_singleton():
    assert Engine.instance() is Engine.instance()


def test_add_vertex_assigns_increasing_ids(engine):
    assert engine.add_vertex(0.1, 0.1) == 0
    assert engine.add_vertex(0.2, 0.2) == 1
    assert engine.vertex_ids() == [0, 1]
    assert engine.vertex_position(1) == (0.2, 0.2)


def test_ids_are_not_reused_after_removal(engine):
    first = engine.add_vertex(0.1, 0.1)
    engine.remove_vertex(first)
    assert engine.add_vertex(0.3, 0.3) == 1


@pytest.mark.parametrize("x, y", [(-0.1, 0.5), (0.5, 1.5), (float("nan"), 0.5), (0.5, float("inf"))])
def test_add_vertex_rejects_bad_coordinates(engine, x, y):
    with pytest.raises(EngineError):
        engine.add_vertex(x, y)


def test_add_vertex_rejects_same_position(engine):
    engine.add_vertex(0.5, 0.5)
    with pytest.raises(EngineError):
        engine.add_vertex(0.5, 0.5)


def test_add_edge_validation(engine):
    a = engine.add_vertex(0.1, 0.1)
    b = engine.add_vertex(0.9, 0.9)

    assert engine.add_edge(b, a) == Edge.of(a, b)
    with pytest.raises(EngineError):
        engine.add_edge(a, b)
    with pytest.raises(EngineError):
        engine.add_edge(a, a)
    with pytest.raises(EngineError):
        engine.add_edge(a, 42)


def test_remove_vertex_drops_incident_edges(engine):
    a = engine.add_vertex(0.1, 0.1)
    b = engine.add_vertex(0.5, 0.5)
    c = engine.add_vertex(0.9, 0.9)
    engine.add_edge(a, b)
    engine.add_edge(b, c)
    engine.add_edge(a, c)

    engine.remove_vertex(b)

    assert engine.edges() == [Edge.of(a, c)]
    assert engine.get_counts() == (2, 1)
    with pytest.raises(EngineError):
        engine.remove_vertex(b)


def test_remove_edge(engine):
    a = engine.add_vertex(0.1, 0.1)
    b = engine.add_vertex(0.9, 0.9)
    engine.add_edge(a, b)
    engine.remove_edge(b, a)
    assert engine.edges() == []
    with pytest.raises(EngineError):
        engine.remove_edge(a, b)


def test_compute_on_grid_with_diagonal(engine, diagonal_grid, statuses):
    assert engine.compute_perfect_matchings() == 3
    assert not engine.is_truncated()
    assert statuses[-1] == "Found 3 perfect matchings."

    vertex_ids = engine.vertex_ids()
    for matching in engine.matchings():
        assert is_perfect_matching(vertex_ids, matching)

    labels = {vertex_id: label for label, vertex_id in diagonal_grid.items()}
    found = {
        frozenset(frozenset((labels[e.v1], labels[e.v2])) for e in matching)
        for matching in engine.matchings()
    }
    assert found == {
        frozenset({frozenset({0, 1}), frozenset({3, 5}), frozenset({2, 6})}),
        frozenset({frozenset({0, 3}), frozenset({1, 5}), frozenset({2, 6})}),
        frozenset({frozenset({0, 3}), frozenset({1, 2}), frozenset({5, 6})}),
    }


def test_matching_segments(engine, diagonal_grid):
    engine.compute_perfect_matchings()
    segments = engine.get_matching_segments(0)

    assert len(segments) == 3
    endpoints = sorted(point for segment in segments for point in segment)
    assert endpoints == sorted(engine.vertex_position(v) for v in engine.vertex_ids())

    with pytest.raises(EngineError):
        engine.get_matching_segments(3)
    with pytest.raises(EngineError):
        engine.get_matching_segments(-1)


def test_no_matching_is_not_an_error(engine, statuses):
    a = engine.add_vertex(0.1, 0.1)
    b = engine.add_vertex(0.5, 0.5)
    engine.add_vertex(0.9, 0.9)
    engine.add_edge(a, b)

    assert engine.compute_perfect_matchings() == 0
    assert not engine.has_matchings()
    assert statuses[-1] == "The graph has no perfect matching."


def test_empty_board_has_no_matching(engine):
    assert engine.compute_perfect_matchings() == 0


def test_limit_truncates(engine, statuses):
    points, edges = get_grid_graph(4, 4)
    engine.load_graph(points, edges)

    assert engine.compute_perfect_matchings(limit=10) == 10
    assert engine.is_truncated()
    assert statuses[-1] == "Showing the first 10 perfect matchings."

    assert engine.compute_perfect_matchings(limit=36) == 36
    assert not engine.is_truncated()

    assert engine.compute_perfect_matchings(limit=None) == 36


@pytest.mark.parametrize("limit", [0, -1])
def test_bad_limit(engine, limit):
    with pytest.raises(EngineError):
        engine.compute_perfect_matchings(limit=limit)


def test_edit_invalidates_matchings(engine, diagonal_grid):
    engine.compute_perfect_matchings()
    assert engine.matching_count() == 3

    engine.remove_edge(diagonal_grid[5], diagonal_grid[6])

    assert engine.matching_count() == 0
    assert engine.compute_perfect_matchings() == 2


def test_backend_error_is_wrapped(engine, monkeypatch):
    def broken(*args, **kwargs):
        raise InvalidGraphError("broken graph")

    monkeypatch.setattr(engine_module, "enumerate_perfect_matchings", broken)
    with pytest.raises(EngineError) as excinfo:
        engine.compute_perfect_matchings()
    assert isinstance(excinfo.value.__cause__, InvalidGraphError)


def test_refresh_and_reset_callbacks(engine):
    refreshes = []
    resets = []
    engine.add_refresh_action(lambda: refreshes.append(1))
    engine.add_reset_action(lambda: resets.append(1))
    assert len(refreshes) == 1

    engine.add_vertex(0.2, 0.2)
    assert len(refreshes) == 2

    engine.reset()
    assert resets == [1]
    assert len(refreshes) == 3
    assert engine.get_counts() == (0, 0)
    assert engine.add_vertex(0.2, 0.2) == 0


def test_clear_board_keeps_numbering(engine, statuses):
    engine.add_vertex(0.2, 0.2)
    engine.clear_board()
    assert engine.get_counts() == (0, 0)
    assert statuses[-1] == "Board cleared."
    assert engine.add_vertex(0.2, 0.2) == 1


def test_load_graph(engine, statuses):
    points, edges = get_grid_graph(2, 3)
    engine.load_graph(points, np.vstack([edges, [[0, 0], [1, 0]]]))

    assert engine.vertex_ids() == list(range(6))
    assert engine.get_counts() == (6, 7)
    assert statuses[-1] == "Graph loaded: 6 vertices, 7 edges."
    np.testing.assert_allclose(engine.get_points(), points)
    assert engine.compute_perfect_matchings() == 3
    assert engine.add_vertex(0.25, 0.25) == 6


def test_load_graph_scales_points(engine):
    engine.load_graph([[0.0, 0.0], [10.0, 5.0]], [[0, 1]])
    points = engine.get_points()

    assert points.min() >= 0.0 and points.max() <= 1.0
    np.testing.assert_allclose(points, [[0.0, 0.0], [1.0, 0.5]])


def test_load_graph_rejects_coincident_points(engine):
    engine.load_graph([[0.1, 0.1], [0.9, 0.9]], [[0, 1]])

    with pytest.raises(EngineError):
        engine.load_graph([[0.1, 0.1], [0.9, 0.9], [0.1, 0.1]], [[0, 1]])
    with pytest.raises(EngineError):
        engine.load_graph([[0.5, 0.5], [0.5, 0.5 + DUPLICATE_VERTEX_DISTANCE / 2]], [])

    assert engine.get_counts() == (2, 1)


def test_load_empty_graph(engine):
    engine.load_graph([], [])
    assert engine.get_points().shape == (0, 2)
    assert engine.get_counts() == (0, 0)


@pytest.mark.parametrize(
    "points, edges",
    [
        ([[0.0, 0.0, 0.0]], []),
        ([["a", "b"]], []),
        ([[0.0, float("nan")], [0.5, 0.5]], []),
        ([[0.0, 0.0], [1.0, 1.0]], [[0, 2]]),
        ([[0.0, 0.0], [1.0, 1.0]], [[0, 1, 1]]),
        ([[0.0, 0.0], [1.0, 1.0]], [[-1, 0]]),
    ],
)
def test_load_graph_rejects_bad_arrays(engine, points, edges):
    with pytest.raises(EngineError):
        engine.load_graph(points, edges)


def test_graph_snapshot_for_drawing(engine):
    a = engine.add_vertex(0.1, 0.2)
    b = engine.add_vertex(0.3, 0.4)
    engine.add_edge(a, b)
    engine.compute_perfect_matchings()

    snapshot = engine.get_graph_for_drawing()

    assert snapshot["vertices"] == {a: (0.1, 0.2), b: (0.3, 0.4)}
    assert snapshot["segments"] == [((0.1, 0.2), (0.3, 0.4))]
    assert snapshot["matchings"] == 1
