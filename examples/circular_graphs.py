from typing import Tuple, Union
import argparse
import logging
import math

import numpy as np

from perfect_matching_app.backend import count_perfect_matchings


def _circle_points(n: int) -> np.ndarray:
    """Place n points evenly on the circle inscribed in [0,1]^2."""
    ang = np.arange(n) * 2 * math.pi / max(n, 1)
    xs = 0.5 + 0.45 * np.cos(ang)
    ys = 0.5 + 0.45 * np.sin(ang)
    return np.column_stack([xs, ys]).astype(np.float64)


def get_cycle_graph(n: int = 6) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate the cycle C_n drawn on a circle.

    An even cycle with n >= 4 has exactly two perfect matchings.
    """
    if n < 3:
        raise ValueError(f"A cycle needs at least 3 vertices, got {n}.")
    idx = np.arange(n)
    edges = np.column_stack([idx, (idx + 1) % n]).astype(np.int64)
    return _circle_points(n), edges


def get_complete_graph(n: int = 6) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate the complete graph K_n drawn on a circle.

    For even n it has (n - 1)!! perfect matchings.
    """
    if n < 1:
        raise ValueError(f"Number of vertices must be positive, got {n}.")
    i, j = np.triu_indices(n, k=1)
    edges = np.column_stack([i, j]).astype(np.int64)
    return _circle_points(n), edges


def get_random_geometric_graph(
    n_samples: int = 10,
    radius: float = 0.4,
    random_state: Union[int, None] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate a random geometric graph in the unit square.

    Parameters
    ---------
    n_samples : int
        Number of vertices.
    radius : float
        Two vertices are connected when their Euclidean distance is at most radius.
    random_state : int | None
        RNG initialization.

    Returns
    -------
    points : np.ndarray, shape (n_samples, 2)
    edges : np.ndarray, shape (m, 2)
    """
    if n_samples < 0:
        raise ValueError(f"n_samples must be non-negative, got {n_samples}.")
    if radius <= 0.0:
        raise ValueError(f"radius must be positive, got {radius}.")

    rng = np.random.default_rng(random_state)
    points = rng.random((n_samples, 2))

    # pairwise distances, upper triangle only
    diff = points[:, None, :] - points[None, :, :]
    dist = np.linalg.norm(diff, axis=-1)
    i, j = np.triu_indices(n_samples, k=1)
    close = dist[i, j] <= radius
    edges = np.column_stack([i[close], j[close]]).astype(np.int64)

    return points, edges


def main() -> None:
    parser = argparse.ArgumentParser(description="Count perfect matchings of circular example graphs.")
    parser.add_argument("kind", choices=["cycle", "complete", "random"])
    parser.add_argument("-n", type=int, default=6)
    parser.add_argument("--radius", type=float, default=0.4)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    if args.kind == "cycle":
        points, edges = get_cycle_graph(args.n)
    elif args.kind == "complete":
        points, edges = get_complete_graph(args.n)
    else:
        points, edges = get_random_geometric_graph(args.n, args.radius, args.seed)

    count = count_perfect_matchings(list(range(len(points))), edges.tolist())
    print(f"{args.kind}: {len(points)} vertices, {len(edges)} edges, {count} perfect matchings")


if __name__ == "__main__":
    main()
