"""
Tile Mosaic Generator
=====================

Partition a reference image into a square grid and fill every cell with
the tile image whose average colour best matches it, without letting any
tile repeat too often or too close to itself.
Ships two fitters:

- **Greedy** (row-major, repeat cap plus optional exclusion radius)
- **Hungarian** (minimum total distance under the repeat cap)
"""

__version__ = "1.0.0"

from tile_mosaic.color_utils import compute_distance_matrix, rms_signature
from tile_mosaic.compositor import apply_color_filter, compose_mosaic
from tile_mosaic.config import MosaicConfig
from tile_mosaic.engine import CandidateImage, MosaicResult, build_mosaic
from tile_mosaic.errors import (
    AspectRatioUnreachable,
    EmptyRegion,
    InvalidReferenceImage,
    InvalidRegion,
    MosaicError,
    RepeatBudgetExhausted,
)
from tile_mosaic.grid import Cell, GridPlan, build_cells, plan_grid, plan_tile_size
from tile_mosaic.ranking import RankedCandidate, rank_all, rank_candidates, rank_cell
from tile_mosaic.solver_greedy import FitState, fit_cell, solve_greedy
from tile_mosaic.solver_hungarian import solve_hungarian

__all__ = [
    "AspectRatioUnreachable",
    "CandidateImage",
    "Cell",
    "EmptyRegion",
    "FitState",
    "GridPlan",
    "InvalidReferenceImage",
    "InvalidRegion",
    "MosaicConfig",
    "MosaicError",
    "MosaicResult",
    "RankedCandidate",
    "RepeatBudgetExhausted",
    "apply_color_filter",
    "build_cells",
    "build_mosaic",
    "compose_mosaic",
    "compute_distance_matrix",
    "fit_cell",
    "plan_grid",
    "plan_tile_size",
    "rank_all",
    "rank_candidates",
    "rank_cell",
    "rms_signature",
    "solve_greedy",
    "solve_hungarian",
]
