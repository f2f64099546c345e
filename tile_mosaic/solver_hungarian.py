"""Minimum-total-distance fit under the repeat cap (scipy)."""

from __future__ import annotations

import logging
import time

import numpy as np
from scipy.optimize import linear_sum_assignment

from tile_mosaic.errors import RepeatBudgetExhausted
from tile_mosaic.solver_greedy import FitState

logger = logging.getLogger(__name__)


def solve_hungarian(
    distances: np.ndarray,
    rows: int,
    cols: int,
    repeat_cap: int,
) -> FitState:
    """Optimal cell → candidate assignment with at most *repeat_cap* uses each.

    Every candidate is offered as ``min(repeat_cap, cells)`` identical
    slots and the cells are matched to slots with the Hungarian algorithm.
    The exclusion radius is not considered.

    Args:
        distances:  (rows*cols, K) matrix from ``compute_distance_matrix``.
        rows, cols: Grid shape.
        repeat_cap: Max placements per candidate.

    Returns:
        A completed :class:`FitState`.

    Raises:
        RepeatBudgetExhausted: ``K * repeat_cap`` slots cannot cover all cells.
    """
    n_cells, n_cand = distances.shape
    if n_cells != rows * cols:
        msg = f"Distance matrix has {n_cells} rows for a {rows}x{cols} grid"
        raise ValueError(msg)

    slots = min(repeat_cap, n_cells)
    if n_cand * slots < n_cells:
        # the first cell past the available slots is the one left empty
        row, col = divmod(n_cand * slots, cols)
        raise RepeatBudgetExhausted(n_cand * slots, row, col)

    logger.info(
        "Building %dx%d slot cost matrix (cap %d) …", n_cells, n_cand * slots, slots,
    )
    cost = np.repeat(distances, slots, axis=1)

    logger.info("Running linear_sum_assignment …")
    t0 = time.perf_counter()
    cell_idx, slot_idx = linear_sum_assignment(cost)
    logger.info("Assignment solved  (%.1f s)", time.perf_counter() - t0)

    state = FitState(rows, cols, n_cand, repeat_cap)
    for ci, si in zip(cell_idx, slot_idx, strict=False):
        row, col = divmod(int(ci), cols)
        state.commit(row, col, int(si) // slots)
    return state
