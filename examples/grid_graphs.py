from typing import Tuple
import argparse
import logging

import numpy as np

from perfect_matching_app.backend import count_perfect_matchings


def _to_unit_square(X: np.ndarray) -> np.ndarray:
    """
    Uniform scaling with aspect ratio preservation into [0,1]^2.
    """
    X = np.asarray(X, dtype=np.float64)
    lo = X.min(axis=0)
    span = float(max((X.max(axis=0) - lo).max(), 1e-12))
    return (X - lo) / span


def get_grid_graph(rows: int = 2, cols: int = 3) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate a rows x cols grid graph with 4-neighbour edges.

    Parameters
    ----------
    rows : int
        Number of grid rows (>= 1).
    cols : int
        Number of grid columns (>= 1).

    Returns
    -------
    points : np.ndarray, shape (rows * cols, 2)
        Vertex coordinates in [0,1]^2, row-major order.
    edges : np.ndarray, shape (m, 2)
        Pairs of row indices into ``points``.
    """
    if rows < 1 or cols < 1:
        raise ValueError(f"Grid must have at least one row and column, got {rows}x{cols}.")

    ys, xs = np.mgrid[0:rows, 0:cols]
    points = np.column_stack([xs.ravel(), ys.ravel()]).astype(np.float64)
    if rows * cols > 1:
        points = _to_unit_square(points)

    index = np.arange(rows * cols).reshape(rows, cols)
    horizontal = np.column_stack([index[:, :-1].ravel(), index[:, 1:].ravel()])
    vertical = np.column_stack([index[:-1, :].ravel(), index[1:, :].ravel()])
    edges = np.vstack([horizontal, vertical]).astype(np.int64)

    return points, edges


def get_ladder_graph(rungs: int = 4) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate a ladder (2 x rungs grid). Its number of perfect matchings is
    the Fibonacci number F(rungs + 1) with F(1) = F(2) = 1.
    """
    return get_grid_graph(2, rungs)


def main() -> None:
    parser = argparse.ArgumentParser(description="Count perfect matchings of a grid graph.")
    parser.add_argument("--rows", type=int, default=2)
    parser.add_argument("--cols", type=int, default=4)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    points, edges = get_grid_graph(args.rows, args.cols)
    count = count_perfect_matchings(list(range(len(points))), edges.tolist())
    print(f"{args.rows}x{args.cols} grid: {len(points)} vertices, {len(edges)} edges, {count} perfect matchings")


if __name__ == "__main__":
    main()
