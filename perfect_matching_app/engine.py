"""Stateful engine coordinating the drawn graph and perfect matching calls."""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Callable, Iterable

import numpy as np

from .backend import Edge, InvalidGraphError, Matching, enumerate_perfect_matchings

logger = logging.getLogger(__name__)

DEFAULT_MATCHING_LIMIT: int = 10_000
DUPLICATE_VERTEX_DISTANCE: float = 1e-3

Segment = tuple[tuple[float, float], tuple[float, float]]


class EngineError(RuntimeError):
    """Raised when the engine cannot complete a requested operation."""


class Engine:
    """Holds the drawn graph and exposes a UI-friendly API."""

    _instance: "Engine | None" = None

    @classmethod
    def instance(cls) -> "Engine":
        """Return the singleton engine instance."""

        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(self) -> None:
        self._vertices: dict[int, tuple[float, float]] = {}
        self._edges: list[Edge] = []
        self._next_id: int = 0
        self._matchings: list[Matching] = []
        self._truncated: bool = False
        self._refresh_callbacks: list[Callable[[], None]] = []
        self._reset_callbacks: list[Callable[[], None]] = []
        self._status_listeners: list[Callable[[str], None]] = []

    # ------------------------------------------------------------------
    # Callback management
    def add_refresh_action(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked when state changes."""

        self._refresh_callbacks.append(callback)
        callback()

    def add_reset_action(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked when a full reset happens."""

        self._reset_callbacks.append(callback)

    def add_status_listener(self, callback: Callable[[str], None]) -> None:
        """Register a callback receiving human-readable status messages."""

        self._status_listeners.append(callback)

    def refresh(self) -> None:
        """Notify listeners that state has changed."""

        for callback in list(self._refresh_callbacks):
            callback()

    def reset(self) -> None:
        """Clear engine state, restart vertex numbering and notify listeners."""

        self._vertices = {}
        self._edges = []
        self._next_id = 0
        self._invalidate_matchings()
        for callback in list(self._reset_callbacks):
            callback()
        self.refresh()

    # ------------------------------------------------------------------
    # Graph editing
    def clear_board(self) -> None:
        """Remove all vertices, edges and computed matchings."""

        self._vertices = {}
        self._edges = []
        self._invalidate_matchings()
        self._emit_status("Board cleared.")
        self.refresh()

    def add_vertex(self, x: float, y: float) -> int:
        """Add a vertex at normalized coordinates and return its id."""

        self._check_coordinates(x, y)
        for vertex_id, (vx, vy) in self._vertices.items():
            if abs(vx - x) < DUPLICATE_VERTEX_DISTANCE and abs(vy - y) < DUPLICATE_VERTEX_DISTANCE:
                raise EngineError(f"Vertex {vertex_id} already occupies this position.")

        vertex_id = self._next_id
        self._next_id += 1
        self._vertices[vertex_id] = (float(x), float(y))
        self._invalidate_matchings()
        self.refresh()
        return vertex_id

    def remove_vertex(self, vertex_id: int) -> None:
        """Remove a vertex together with every edge touching it."""

        self._require_vertex(vertex_id)
        del self._vertices[vertex_id]
        self._edges = [edge for edge in self._edges if not edge.touches(vertex_id)]
        self._invalidate_matchings()
        self.refresh()

    def add_edge(self, a: int, b: int) -> Edge:
        """Connect two existing vertices."""

        self._require_vertex(a)
        self._require_vertex(b)
        if a == b:
            raise EngineError("An edge must connect two different vertices.")

        edge = Edge.of(a, b)
        if edge in self._edges:
            raise EngineError(f"Vertices {a} and {b} are already connected.")

        self._edges.append(edge)
        self._invalidate_matchings()
        self.refresh()
        return edge

    def remove_edge(self, a: int, b: int) -> None:
        edge = Edge.of(a, b)
        if edge not in self._edges:
            raise EngineError(f"Vertices {a} and {b} are not connected.")
        self._edges.remove(edge)
        self._invalidate_matchings()
        self.refresh()

    def load_graph(self, points: Iterable[Iterable[float]], edges: Iterable[Iterable[int]]) -> None:
        """Replace the graph with ``points`` (n, 2) and row-index ``edges`` (m, 2).

        Points are scaled into the unit square when they fall outside it, and
        two points closer than ``DUPLICATE_VERTEX_DISTANCE`` are rejected as in
        ``add_vertex``. Vertex ids restart from zero and follow the row order
        of ``points``.
        """

        array = self._prepare_points_array(points)
        try:
            index_pairs = np.asarray(list(edges), dtype=np.int64)
        except (TypeError, ValueError) as exc:
            raise EngineError("Edges must be an array of shape (m, 2).") from exc
        if index_pairs.size == 0:
            index_pairs = index_pairs.reshape(0, 2)
        elif index_pairs.ndim != 2 or index_pairs.shape[1] != 2:
            raise EngineError("Edges must be an array of shape (m, 2).")

        n_points = array.shape[0]
        if n_points > 1:
            # per-axis distance, matching the add_vertex check
            gaps = np.abs(array[:, None, :] - array[None, :, :]).max(axis=-1)
            i, j = np.triu_indices(n_points, k=1)
            clash = np.flatnonzero(gaps[i, j] < DUPLICATE_VERTEX_DISTANCE)
            if clash.size:
                first = int(clash[0])
                raise EngineError(f"Points {int(i[first])} and {int(j[first])} occupy the same position.")

        if index_pairs.size and (index_pairs.min() < 0 or index_pairs.max() >= n_points):
            raise EngineError("Edge endpoints must be valid point indices.")

        vertices = {idx: (float(x), float(y)) for idx, (x, y) in enumerate(array)}
        loaded: list[Edge] = []
        for a, b in index_pairs:
            edge = Edge.of(int(a), int(b))
            if edge.is_loop() or edge in loaded:
                continue
            loaded.append(edge)

        self._vertices = vertices
        self._edges = loaded
        self._next_id = n_points
        self._invalidate_matchings()
        self._emit_status(f"Graph loaded: {n_points} vertices, {len(loaded)} edges.")
        self.refresh()

    # ------------------------------------------------------------------
    # Queries
    def vertex_ids(self) -> list[int]:
        """Return vertex ids in insertion order."""

        return list(self._vertices)

    def edges(self) -> list[Edge]:
        return list(self._edges)

    def get_points(self) -> np.ndarray:
        """Return normalized coordinates in ``vertex_ids()`` order."""

        if not self._vertices:
            return np.empty((0, 2), dtype=np.float64)
        return np.array(list(self._vertices.values()), dtype=np.float64)

    def vertex_position(self, vertex_id: int) -> tuple[float, float]:
        self._require_vertex(vertex_id)
        return self._vertices[vertex_id]

    def get_counts(self) -> tuple[int, int]:
        """Return vertex and edge counts."""

        return len(self._vertices), len(self._edges)

    def matchings(self) -> list[Matching]:
        return list(self._matchings)

    def matching_count(self) -> int:
        return len(self._matchings)

    def is_truncated(self) -> bool:
        """Return True if the last computation stopped at the matching limit."""

        return self._truncated

    def has_matchings(self) -> bool:
        return bool(self._matchings)

    def get_matching_segments(self, index: int) -> list[Segment]:
        """Return the edges of matching ``index`` as coordinate segments."""

        if not 0 <= index < len(self._matchings):
            raise EngineError(f"Matching index {index} is out of range.")
        return [self._edge_segment(edge) for edge in self._matchings[index]]

    def get_graph_for_drawing(self) -> dict[str, object]:
        """Provide a UI-friendly snapshot of vertices and edges."""

        return {
            "vertices": dict(self._vertices),
            "segments": [self._edge_segment(edge) for edge in self._edges],
            "matchings": len(self._matchings),
        }

    # ------------------------------------------------------------------
    # Matching
    def compute_perfect_matchings(self, limit: int | None = DEFAULT_MATCHING_LIMIT) -> int:
        """Enumerate perfect matchings of the current graph and store them.

        At most ``limit`` matchings are kept (``None`` disables the bound);
        ``is_truncated`` reports whether more were available. Returns the
        number of stored matchings. An empty result is not an error.
        """

        if limit is not None and limit <= 0:
            raise EngineError("Matching limit must be a positive integer.")

        vertex_ids = self.vertex_ids()
        probe = None if limit is None else limit + 1
        start_time = perf_counter()
        try:
            found = enumerate_perfect_matchings(vertex_ids, self._edges, limit=probe)
        except InvalidGraphError as exc:
            raise EngineError(f"Failed to compute perfect matchings: {exc}") from exc
        duration = perf_counter() - start_time

        self._truncated = limit is not None and len(found) > limit
        self._matchings = found[:limit] if self._truncated else found
        logger.info(
            "Computed %d perfect matchings for %d vertices in %.4fs (truncated=%s).",
            len(self._matchings),
            len(vertex_ids),
            duration,
            self._truncated,
        )

        if not self._matchings:
            self._emit_status("The graph has no perfect matching.")
        elif self._truncated:
            self._emit_status(f"Showing the first {len(self._matchings)} perfect matchings.")
        else:
            self._emit_status(f"Found {len(self._matchings)} perfect matchings.")
        self.refresh()
        return len(self._matchings)

    # ------------------------------------------------------------------
    # Internal helpers
    def _emit_status(self, message: str) -> None:
        for callback in list(self._status_listeners):
            callback(message)

    def _invalidate_matchings(self) -> None:
        self._matchings = []
        self._truncated = False

    def _require_vertex(self, vertex_id: int) -> None:
        if vertex_id not in self._vertices:
            raise EngineError(f"Unknown vertex {vertex_id}.")

    def _edge_segment(self, edge: Edge) -> Segment:
        return self._vertices[edge.v1], self._vertices[edge.v2]

    @staticmethod
    def _check_coordinates(x: float, y: float) -> None:
        if not (np.isfinite(x) and np.isfinite(y)):
            raise EngineError("Coordinates must be finite numbers.")
        if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
            raise EngineError("Coordinates must lie inside [0, 1].")

    @staticmethod
    def _prepare_points_array(points: Iterable[Iterable[float]]) -> np.ndarray:
        try:
            array = np.asarray(points, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise EngineError("Unable to convert input data into an array of points.") from exc

        if array.size == 0:
            return np.empty((0, 2), dtype=np.float64)
        if array.ndim != 2 or array.shape[1] != 2:
            raise EngineError("Points must be an array of shape (n, 2).")
        if not np.isfinite(array).all():
            raise EngineError("Points must have finite coordinates.")

        lo = array.min(axis=0)
        hi = array.max(axis=0)
        if (lo >= 0.0).all() and (hi <= 1.0).all():
            return array.copy()

        span = float(max((hi - lo).max(), 1e-12))
        return (array - lo) / span
