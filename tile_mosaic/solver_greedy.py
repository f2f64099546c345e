"""Greedy, order-dependent tile fitting under a repeat cap and exclusion radius."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import numpy as np

from tile_mosaic.config import FALLBACK_POLICIES
from tile_mosaic.errors import RepeatBudgetExhausted

logger = logging.getLogger(__name__)


@dataclass
class FitState:
    """Usage counters and the assignment grid shared by every cell's fit.

    ``usage[k]`` counts placements of candidate *k* and only ever grows.
    ``assignment[row, col]`` is the committed candidate, ``-1`` if none yet.
    """

    rows: int
    cols: int
    num_candidates: int
    repeat_cap: int
    usage: np.ndarray = field(init=False)
    assignment: np.ndarray = field(init=False)
    fallbacks: int = 0

    def __post_init__(self) -> None:
        self.usage = np.zeros(self.num_candidates, dtype=np.int64)
        self.assignment = np.full((self.rows, self.cols), -1, dtype=np.int64)

    @property
    def complete(self) -> bool:
        return bool(np.all(self.assignment >= 0))

    def conflicts(self, row: int, col: int, candidate: int, radius: int) -> bool:
        """True if *candidate* sits within Chebyshev *radius* of (row, col)."""
        if radius <= 0:
            return False
        window = self.assignment[
            max(row - radius, 0):row + radius + 1,
            max(col - radius, 0):col + radius + 1,
        ]
        return bool(np.any(window == candidate))

    def commit(self, row: int, col: int, candidate: int) -> None:
        if self.assignment[row, col] >= 0:
            msg = f"Cell ({row}, {col}) is already assigned"
            raise ValueError(msg)
        self.assignment[row, col] = candidate
        self.usage[candidate] += 1


def fit_cell(
    order: np.ndarray,
    state: FitState,
    row: int,
    col: int,
    exclusion_radius: int = 0,
    fallback: str = "relax-all",
) -> int:
    """Commit the first acceptable candidate in *order* to (row, col).

    A candidate is acceptable when it is below the repeat cap and, for a
    positive *exclusion_radius*, not already placed within that radius.
    When nothing is acceptable, *fallback* decides:

    - ``"raise"``: raise :class:`RepeatBudgetExhausted`.
    - ``"relax-spatial"``: drop the radius, keep the cap, else raise.
    - ``"relax-all"``: drop the radius, then the cap (least-used
      candidate, best rank on ties).

    Nothing is committed when an exception is raised.

    Returns:
        The committed candidate index.
    """
    under_cap = order[state.usage[order] < state.repeat_cap]
    for idx in under_cap:
        if not state.conflicts(row, col, idx, exclusion_radius):
            state.commit(row, col, int(idx))
            return int(idx)

    cell_index = row * state.cols + col
    if fallback == "raise" or order.size == 0:
        raise RepeatBudgetExhausted(cell_index, row, col)

    if exclusion_radius > 0 and under_cap.size:
        idx = int(under_cap[0])
        logger.warning(
            "Cell %d: every tile under the cap repeats within radius %d; "
            "placing %d anyway", cell_index, exclusion_radius, idx,
        )
    elif fallback == "relax-spatial":
        raise RepeatBudgetExhausted(cell_index, row, col)
    else:
        idx = int(order[np.argmin(state.usage[order])])
        logger.warning(
            "Cell %d: every tile reached the repeat cap %d; placing "
            "least-used %d", cell_index, state.repeat_cap, idx,
        )

    state.fallbacks += 1
    state.commit(row, col, idx)
    return idx


def solve_greedy(
    order: np.ndarray,
    rows: int,
    cols: int,
    repeat_cap: int,
    exclusion_radius: int = 0,
    fallback: str = "relax-all",
    state: FitState | None = None,
) -> FitState:
    """Fit every cell in row-major order.

    Earlier cells deplete the repeat budget first, so the visiting order
    is part of the result. ``exclusion_radius=0`` is the plain best-pick
    fit; a positive radius gives the sparse fit.

    Args:
        order:      (rows*cols, K) ranking from :func:`rank_candidates`.
        rows, cols: Grid shape.
        repeat_cap: Max placements per candidate.
        exclusion_radius: Chebyshev radius without repeats (0 = off).
        fallback:   Policy when a cell's whole list is rejected.
        state:      Existing state to continue; already-assigned cells
                    are skipped.

    Returns:
        The :class:`FitState` holding usage counters and assignments.
    """
    if fallback not in FALLBACK_POLICIES:
        msg = f"Unknown fallback '{fallback}'. Available: {', '.join(FALLBACK_POLICIES)}"
        raise ValueError(msg)
    if order.shape[0] != rows * cols:
        msg = f"Ranking has {order.shape[0]} rows for a {rows}x{cols} grid"
        raise ValueError(msg)

    if state is None:
        state = FitState(rows, cols, order.shape[1], repeat_cap)
    elif (state.rows, state.cols, state.num_candidates, state.repeat_cap) != (
        rows, cols, order.shape[1], repeat_cap,
    ):
        msg = (
            f"State for a {state.rows}x{state.cols} grid of "
            f"{state.num_candidates} tiles (cap {state.repeat_cap}) does not "
            f"match {rows}x{cols}, {order.shape[1]} tiles, cap {repeat_cap}"
        )
        raise ValueError(msg)

    logger.info(
        "Fitting %d cells  |  cap=%d  radius=%d  fallback=%s",
        rows * cols, repeat_cap, exclusion_radius, fallback,
    )
    t0 = time.perf_counter()

    for index in range(rows * cols):
        row, col = divmod(index, cols)
        if state.assignment[row, col] >= 0:
            continue
        idx = fit_cell(order[index], state, row, col, exclusion_radius, fallback)
        logger.debug("Cell %d ← tile %d", index, idx)

    logger.info(
        "Fitting done  |  %d unique tiles  fallbacks=%d  (%.1f s)",
        int(np.count_nonzero(state.usage)), state.fallbacks,
        time.perf_counter() - t0,
    )
    return state
