"""Perfect matching enumeration for undirected simple graphs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import islice
from typing import Any, Hashable, Iterable, Iterator, Sequence, Tuple

logger = logging.getLogger(__name__)


class InvalidGraphError(ValueError):
    """Raised when the vertex/edge input violates the enumerator contract."""


# ---------------------------------------------------------------------------
# Value types
@dataclass(frozen=True, order=True)
class Edge:
    """Unordered vertex pair stored in canonical form (``v1 <= v2``)."""

    v1: Any
    v2: Any

    def __post_init__(self) -> None:
        try:
            swap = self.v2 < self.v1
        except TypeError as exc:
            raise InvalidGraphError(
                f"Vertices {self.v1!r} and {self.v2!r} are not comparable."
            ) from exc
        if swap:
            v1, v2 = self.v2, self.v1
            object.__setattr__(self, "v1", v1)
            object.__setattr__(self, "v2", v2)

    @classmethod
    def of(cls, a: Hashable, b: Hashable) -> "Edge":
        """Build the canonical edge for the unordered pair ``{a, b}``."""

        return cls(a, b)

    def touches(self, vertex: Hashable) -> bool:
        return self.v1 == vertex or self.v2 == vertex

    def other(self, vertex: Hashable) -> Any:
        """Return the endpoint opposite to ``vertex``."""

        if self.v1 == vertex:
            return self.v2
        if self.v2 == vertex:
            return self.v1
        raise ValueError(f"Vertex {vertex!r} is not an endpoint of {self}.")

    def is_loop(self) -> bool:
        return self.v1 == self.v2

    def as_tuple(self) -> Tuple[Any, Any]:
        return self.v1, self.v2


Matching = Tuple[Edge, ...]


# ---------------------------------------------------------------------------
# Input validation
def _check_vertices(vertices: Iterable[Hashable]) -> Tuple[Any, ...]:
    ordered = tuple(vertices)
    seen: set = set()
    for vertex in ordered:
        try:
            duplicate = vertex in seen
        except TypeError as exc:
            raise InvalidGraphError(f"Vertex {vertex!r} is not hashable.") from exc
        if duplicate:
            raise InvalidGraphError(f"Duplicate vertex {vertex!r} in vertex list.")
        seen.add(vertex)
    try:
        sorted(ordered)
    except TypeError as exc:
        raise InvalidGraphError("Vertices must be mutually comparable.") from exc
    return ordered


def _coerce_edge(raw: Any) -> Edge:
    if isinstance(raw, Edge):
        return raw
    try:
        a, b = raw
    except (TypeError, ValueError) as exc:
        raise InvalidGraphError(f"Edge {raw!r} must be a pair of vertices.") from exc
    return Edge.of(a, b)


def normalize_edges(vertices: Sequence[Hashable], edges: Iterable[Any]) -> Tuple[Edge, ...]:
    """Validate the input graph and return its canonical edge list.

    Edges keep their first-seen order. Self-loops can never be part of a
    matching and are dropped; repeated edges between the same pair collapse
    into one, so the enumeration never reports the same matching twice.

    Raises:
        InvalidGraphError: if the vertex list has duplicates or an edge is
            malformed or references a vertex outside the vertex list.
    """

    return _canonical_edges(_check_vertices(vertices), edges)


def _canonical_edges(vertices: Tuple[Any, ...], edges: Iterable[Any]) -> Tuple[Edge, ...]:
    known = set(vertices)
    result: list[Edge] = []
    seen: set[Edge] = set()
    for raw in edges:
        edge = _coerce_edge(raw)
        for endpoint in edge.as_tuple():
            try:
                missing = endpoint not in known
            except TypeError as exc:
                raise InvalidGraphError(f"Edge {raw!r} has an unhashable endpoint.") from exc
            if missing:
                raise InvalidGraphError(f"Edge {raw!r} references unknown vertex {endpoint!r}.")
        if edge.is_loop() or edge in seen:
            continue
        seen.add(edge)
        result.append(edge)
    return tuple(result)


# ---------------------------------------------------------------------------
# Enumeration
def _split_joined(edges: Sequence[Edge], vertex: Any) -> tuple[list[Edge], list[Edge]]:
    """Split edges into those incident to ``vertex`` and all the others."""

    joined: list[Edge] = []
    rest: list[Edge] = []
    for edge in edges:
        if edge.touches(vertex):
            joined.append(edge)
        else:
            rest.append(edge)
    return joined, rest


def _search(vertices: Tuple[Any, ...], edges: Tuple[Edge, ...]) -> Iterator[Tuple[Edge, ...]]:
    """Yield perfect matchings of a validated, even-sized, non-empty graph."""

    if len(vertices) == 2:
        pair = Edge.of(vertices[0], vertices[1])
        if pair in edges:
            yield (pair,)
        return

    pivot = vertices[0]
    joined, rest = _split_joined(edges, pivot)
    for edge in joined:
        partner = edge.other(pivot)
        removed = (pivot, partner)
        sub_vertices = tuple(v for v in vertices if v not in removed)
        sub_edges = tuple(e for e in rest if not e.touches(partner))
        for sub_matching in _search(sub_vertices, sub_edges):
            yield sub_matching + (edge,)


def iter_perfect_matchings(
    vertices: Iterable[Hashable], edges: Iterable[Any]
) -> Iterator[Matching]:
    """Lazily yield every perfect matching of the graph.

    The first vertex of ``vertices`` is always branched on first, so identical
    input order gives an identical output sequence. Each matching is a tuple
    of canonical edges sorted in ascending order. A graph with no vertices has
    no matching to report and yields nothing.

    Validation happens eagerly, before the first matching is requested.
    """

    ordered = _check_vertices(vertices)
    return _iter_validated(ordered, _canonical_edges(ordered, edges))


def _iter_validated(vertices: Tuple[Any, ...], edges: Tuple[Edge, ...]) -> Iterator[Matching]:
    if not vertices or len(vertices) % 2 == 1:
        return
    for matching in _search(vertices, edges):
        yield tuple(sorted(matching))


def enumerate_perfect_matchings(
    vertices: Iterable[Hashable],
    edges: Iterable[Any],
    *,
    limit: int | None = None,
) -> list[Matching]:
    """Return all perfect matchings, or the first ``limit`` of them.

    Args:
        vertices: Distinct, mutually comparable vertex identifiers.
        edges: ``Edge`` instances or two-element pairs of vertex identifiers.
        limit: Optional upper bound on the number of matchings collected.

    Returns:
        A list of matchings with no duplicates. An empty list means the graph
        has no perfect matching.
    """

    if limit is not None and limit <= 0:
        raise InvalidGraphError("Matching limit must be a positive integer.")

    ordered = _check_vertices(vertices)
    iterator = _iter_validated(ordered, _canonical_edges(ordered, edges))
    matchings = list(iterator if limit is None else islice(iterator, limit))
    logger.debug(
        "Enumerated %d perfect matchings for %d vertices (limit=%s).",
        len(matchings),
        len(ordered),
        limit,
    )
    return matchings


def count_perfect_matchings(vertices: Iterable[Hashable], edges: Iterable[Any]) -> int:
    """Return the number of perfect matchings without storing them."""

    return sum(1 for _ in iter_perfect_matchings(vertices, edges))


def is_perfect_matching(vertices: Sequence[Hashable], matching: Iterable[Any]) -> bool:
    """Check that ``matching`` covers every vertex exactly once.

    Loops, edges that share an endpoint and edges touching vertices outside
    ``vertices`` all make the check fail.
    """

    expected = set(_check_vertices(vertices))
    covered: set = set()
    for raw in matching:
        edge = _coerce_edge(raw)
        if edge.is_loop():
            return False
        for endpoint in edge.as_tuple():
            if endpoint not in expected or endpoint in covered:
                return False
            covered.add(endpoint)
    return covered == expected
