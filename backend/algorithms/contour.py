"""
contour.py — marching squares over a sampled scalar grid.

Every cell is classified by its four corners (value >= threshold) into a
4-bit case index TL*8 + TR*4 + BR*2 + BL*1. The table below lists, per case,
which pairs of cell edges a segment joins. The two saddle cases (5 and 10)
emit both diagonal pairs instead of being disambiguated.
"""

from __future__ import annotations
from typing import List, Tuple
import numpy as np

from .common import InvalidInput

Point = Tuple[float, float]
Segment = Tuple[Point, Point]

TOP, RIGHT, BOTTOM, LEFT = 0, 1, 2, 3

CASE_TABLE = {
    0: [],
    1: [(LEFT, BOTTOM)],
    2: [(BOTTOM, RIGHT)],
    3: [(LEFT, RIGHT)],
    4: [(TOP, RIGHT)],
    5: [(LEFT, TOP), (BOTTOM, RIGHT)],
    6: [(TOP, BOTTOM)],
    7: [(LEFT, TOP)],
    8: [(LEFT, TOP)],
    9: [(TOP, BOTTOM)],
    10: [(LEFT, BOTTOM), (TOP, RIGHT)],
    11: [(TOP, RIGHT)],
    12: [(LEFT, RIGHT)],
    13: [(BOTTOM, RIGHT)],
    14: [(LEFT, BOTTOM)],
    15: [],
}


def interpolate(threshold: float, v0: float, v1: float) -> float:
    if abs(v1 - v0) < 1e-6:
        return 0.5
    return (threshold - v0) / (v1 - v0)


def case_index(tl: float, tr: float, br: float, bl: float, threshold: float) -> int:
    return (8 * int(tl >= threshold) + 4 * int(tr >= threshold)
            + 2 * int(br >= threshold) + int(bl >= threshold))


def cell_segments(x0: float, x1: float, y0: float, y1: float,
                  tl: float, tr: float, br: float, bl: float,
                  threshold: float) -> List[Segment]:
    """Segments for one cell; (x0, y0) is the top-left corner."""
    case = case_index(tl, tr, br, bl, threshold)
    pairs = CASE_TABLE[case]
    if not pairs:
        return []

    def edge_point(edge: int) -> Point:
        if edge == TOP:
            return (x0 + interpolate(threshold, tl, tr) * (x1 - x0), y0)
        if edge == RIGHT:
            return (x1, y0 + interpolate(threshold, tr, br) * (y1 - y0))
        if edge == BOTTOM:
            return (x0 + interpolate(threshold, bl, br) * (x1 - x0), y1)
        return (x0, y0 + interpolate(threshold, tl, bl) * (y1 - y0))

    return [(edge_point(a), edge_point(b)) for a, b in pairs]


def marching_squares(values, xs, ys, threshold: float = 0.5) -> List[Segment]:
    """
    Trace the `threshold` level set of `values`, sampled at grid vertices.

    values[i, j] is the sample at (xs[j], ys[i]); row i grows downwards, so
    row i is the top of every cell between rows i and i+1.
    """
    values = np.asarray(values, dtype=float)
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    if values.ndim != 2 or values.shape != (len(ys), len(xs)):
        raise InvalidInput(f"values shape {values.shape} does not match grid ({len(ys)}, {len(xs)})")
    if values.shape[0] < 2 or values.shape[1] < 2:
        raise InvalidInput("marching squares needs at least a 2x2 grid")

    segments: List[Segment] = []
    for i in range(values.shape[0] - 1):
        for j in range(values.shape[1] - 1):
            segments.extend(cell_segments(
                xs[j], xs[j + 1], ys[i], ys[i + 1],
                values[i, j], values[i, j + 1], values[i + 1, j + 1], values[i + 1, j],
                threshold,
            ))
    return segments


def sample_grid(func, bounds: Tuple[float, float, float, float], resolution: int):
    """Evaluate func on a (resolution+1)^2 vertex grid; returns (values, xs, ys)."""
    x_min, x_max, y_min, y_max = bounds
    xs = np.linspace(x_min, x_max, int(resolution) + 1)
    ys = np.linspace(y_min, y_max, int(resolution) + 1)
    gx, gy = np.meshgrid(xs, ys)
    grid = np.column_stack([gx.ravel(), gy.ravel()])
    values = np.asarray(func(grid), dtype=float).reshape(len(ys), len(xs))
    return values, xs, ys
