"""End-to-end tile assignment: plan, score, rank, fit, composite."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from tile_mosaic.color_utils import signatures_for
from tile_mosaic.compositor import compose_mosaic
from tile_mosaic.config import MosaicConfig
from tile_mosaic.grid import Cell, GridPlan, build_cells, plan_grid, target_table
from tile_mosaic.ranking import rank_all
from tile_mosaic.solver_greedy import FitState, solve_greedy
from tile_mosaic.solver_hungarian import solve_hungarian

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateImage:
    index: int
    handle: str
    width: int
    height: int
    signature: np.ndarray


@dataclass
class MosaicResult:
    plan: GridPlan
    cells: list[Cell]
    candidates: list[CandidateImage]
    state: FitState
    image: np.ndarray

    @property
    def targets(self) -> np.ndarray:
        return target_table(self.cells)

    @property
    def mean_error(self) -> float:
        """Mean RGB distance between cell targets and the placed tiles' signatures."""
        sig = np.stack([self.candidates[c.candidate].signature for c in self.cells])
        return float(np.mean(np.sqrt(np.sum((self.targets - sig) ** 2, axis=1))))


def build_mosaic(
    reference: np.ndarray,
    candidates: Sequence[np.ndarray],
    cfg: MosaicConfig,
    handles: Sequence[str] | None = None,
) -> MosaicResult:
    """Assemble a mosaic of *reference* from *candidates*.

    Args:
        reference:  (H, W, 3) uint8 reference pixels.
        candidates: Candidate (h, w, 3) uint8 pixel arrays; their position
            is the candidate index used throughout.
        cfg:        Run configuration.
        handles:    Optional label (usually the path) per candidate.

    Returns:
        :class:`MosaicResult` with plan, assigned cells and composite.
    """
    cfg.validate()
    if not candidates:
        msg = "At least one candidate image is required"
        raise ValueError(msg)
    if handles is None:
        handles = [f"candidate-{i}" for i in range(len(candidates))]
    elif len(handles) != len(candidates):
        msg = f"{len(handles)} handles given for {len(candidates)} candidates"
        raise ValueError(msg)

    t_total = time.perf_counter()
    ref_h, ref_w = reference.shape[:2]
    min_w = min(c.shape[1] for c in candidates)
    min_h = min(c.shape[0] for c in candidates)
    logger.info(
        "Reference %dx%d  |  %d candidates  |  smallest %dx%d",
        ref_w, ref_h, len(candidates), min_w, min_h,
    )

    plan = plan_grid(
        ref_w, ref_h, min_w, min_h,
        cfg.grid_size, cfg.aspect_tolerance, cfg.min_tile_side,
    )

    t0 = time.perf_counter()
    cells = build_cells(reference, plan, cfg.sample_window)
    logger.info("Scored %d cells  (%.1f s)", len(cells), time.perf_counter() - t0)

    # Signatures cover only the cropped block that will be stamped.
    t0 = time.perf_counter()
    tiles = [c[:plan.tile_height, :plan.tile_width, :3] for c in candidates]
    signatures = signatures_for(tiles)
    pool = [
        CandidateImage(i, str(handles[i]), c.shape[1], c.shape[0], signatures[i])
        for i, c in enumerate(candidates)
    ]
    logger.info("Weighed %d candidates  (%.1f s)", len(pool), time.perf_counter() - t0)

    distances, order = rank_all(signatures, target_table(cells), cfg.metric)

    if cfg.fit_mode == "optimal":
        state = solve_hungarian(distances, plan.rows, plan.cols, cfg.repeat_cap)
    else:
        state = solve_greedy(
            order, plan.rows, plan.cols, cfg.repeat_cap,
            exclusion_radius=cfg.effective_radius,
            fallback=cfg.fallback,
        )

    for cell in cells:
        cell.candidate = int(state.assignment[cell.row, cell.col])

    image = compose_mosaic(
        cells, tiles, plan,
        color_filter=cfg.color_filter,
        filter_strength=cfg.filter_strength,
    )
    logger.info("Mosaic finished  (%.1f s)", time.perf_counter() - t_total)

    return MosaicResult(plan, cells, pool, state, image)
