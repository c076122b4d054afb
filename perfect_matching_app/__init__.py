"""Perfect matching explorer: enumeration core and graph engine."""

from .backend import (
    Edge,
    InvalidGraphError,
    Matching,
    count_perfect_matchings,
    enumerate_perfect_matchings,
    is_perfect_matching,
    iter_perfect_matchings,
    normalize_edges,
)
from .engine import Engine, EngineError

__all__ = [
    "Edge",
    "Engine",
    "EngineError",
    "InvalidGraphError",
    "Matching",
    "count_perfect_matchings",
    "enumerate_perfect_matchings",
    "is_perfect_matching",
    "iter_perfect_matchings",
    "normalize_edges",
]
