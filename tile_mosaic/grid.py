"""Grid planning: cropped tile size, mosaic dimensions and per-cell targets."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from tile_mosaic.color_utils import rms_signature
from tile_mosaic.errors import AspectRatioUnreachable, InvalidReferenceImage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridPlan:
    """Tile size, grid shape and the reference strides that feed scoring."""

    tile_width: int
    tile_height: int
    rows: int
    cols: int
    stride_x: int
    stride_y: int

    @property
    def width(self) -> int:
        return self.tile_width * self.cols

    @property
    def height(self) -> int:
        return self.tile_height * self.rows

    @property
    def total(self) -> int:
        return self.rows * self.cols

    @property
    def scored_width(self) -> int:
        """Reference pixels actually scored horizontally (remainder dropped)."""
        return self.stride_x * self.cols

    @property
    def scored_height(self) -> int:
        return self.stride_y * self.rows


@dataclass
class Cell:
    """One grid position: where it lands, what it should look like, what fills it."""

    row: int
    col: int
    index: int
    x: int
    y: int
    src_x: int
    src_y: int
    target: np.ndarray
    candidate: int | None = None


def plan_tile_size(
    ref_width: int,
    ref_height: int,
    min_width: int,
    min_height: int,
    tolerance: float,
    min_side: int = 20,
) -> tuple[int, int]:
    """Crop the smallest candidate size until its aspect matches the reference.

    A tile narrower than the reference keeps ``min_width`` and has its
    height reduced one pixel at a time; otherwise ``min_height`` is kept and
    the width is reduced. The first size whose aspect error is within
    *tolerance* wins. Scanning stops after the first size at or below
    *min_side*.

    Returns:
        ``(tile_width, tile_height)``.

    Raises:
        AspectRatioUnreachable: No scanned size is within *tolerance*; the
            error carries the closest miss and the side the scan stopped at.
    """
    for name, value in (
        ("ref_width", ref_width), ("ref_height", ref_height),
        ("min_width", min_width), ("min_height", min_height),
    ):
        if value <= 0:
            msg = f"{name} must be positive, got {value}"
            raise ValueError(msg)

    # single precision: sizes right on the tolerance edge depend on it
    f32 = np.float32
    ref_aspect = f32(ref_width) / f32(ref_height)
    crop_height = f32(min_width) / f32(min_height) < ref_aspect
    start = min_height if crop_height else min_width
    stop = max(min(min_side, start), 1)
    sizes = np.arange(start, stop - 1, -1)

    if crop_height:
        logger.info("Cropping tile height (reference aspect %.4f)", ref_aspect)
        errors = np.abs(ref_aspect - f32(min_width) / sizes.astype(f32))
    else:
        logger.info("Cropping tile width (reference aspect %.4f)", ref_aspect)
        errors = np.abs(ref_aspect - sizes.astype(f32) / f32(min_height))

    hits = np.flatnonzero(errors <= f32(tolerance))
    if hits.size == 0:
        raise AspectRatioUnreachable(tolerance, float(errors.min()), int(sizes[-1]))

    size = int(sizes[hits[0]])
    if crop_height:
        return min_width, size
    return size, min_height


def plan_grid(
    ref_width: int,
    ref_height: int,
    min_width: int,
    min_height: int,
    grid_size: int,
    tolerance: float,
    min_side: int = 20,
) -> GridPlan:
    """Build the :class:`GridPlan` for a square ``grid_size`` × ``grid_size`` mosaic."""
    if grid_size < 1:
        msg = f"grid_size must be >= 1, got {grid_size}"
        raise ValueError(msg)

    tile_width, tile_height = plan_tile_size(
        ref_width, ref_height, min_width, min_height, tolerance, min_side,
    )

    stride_x = ref_width // grid_size
    stride_y = ref_height // grid_size
    if stride_x == 0 or stride_y == 0:
        msg = (
            f"Reference {ref_width}x{ref_height} is smaller than a "
            f"{grid_size}x{grid_size} grid"
        )
        raise InvalidReferenceImage(msg)

    plan = GridPlan(
        tile_width=tile_width,
        tile_height=tile_height,
        rows=grid_size,
        cols=grid_size,
        stride_x=stride_x,
        stride_y=stride_y,
    )
    logger.info(
        "Grid %dx%d  |  tile %dx%d  |  mosaic %dx%d",
        plan.rows, plan.cols, tile_width, tile_height, plan.width, plan.height,
    )
    return plan


def build_cells(
    reference: np.ndarray,
    plan: GridPlan,
    sample_window: str = "cell",
) -> list[Cell]:
    """Score every cell of *reference* and return the cells in row-major order.

    Only the top-left ``scored_width`` × ``scored_height`` pixels are
    scored; remainder columns and rows at the far edges are ignored.

    Args:
        reference:     (H, W, 3) reference pixels.
        plan:          Output of :func:`plan_grid` for this reference.
        sample_window: ``"cell"`` scores the stride block of each cell;
            ``"tile"`` scores a tile-sized window at the same origin,
            clipped to the scored area.
    """
    if sample_window not in ("cell", "tile"):
        msg = f"Unknown sample_window '{sample_window}'. Available: cell, tile"
        raise ValueError(msg)

    h, w = reference.shape[:2]
    if w < plan.scored_width or h < plan.scored_height:
        msg = (
            f"Reference {w}x{h} does not cover the planned "
            f"{plan.scored_width}x{plan.scored_height} scoring area"
        )
        raise ValueError(msg)

    cells: list[Cell] = []
    for row in range(plan.rows):
        for col in range(plan.cols):
            src_x = col * plan.stride_x
            src_y = row * plan.stride_y
            if sample_window == "cell":
                win_w, win_h = plan.stride_x, plan.stride_y
            else:
                win_w = min(plan.tile_width, plan.scored_width - src_x)
                win_h = min(plan.tile_height, plan.scored_height - src_y)

            cells.append(Cell(
                row=row,
                col=col,
                index=row * plan.cols + col,
                x=col * plan.tile_width,
                y=row * plan.tile_height,
                src_x=src_x,
                src_y=src_y,
                target=rms_signature(reference, src_x, src_y, win_w, win_h),
            ))
            logger.debug("Scored cell %d", cells[-1].index)

    return cells


def target_table(cells: list[Cell]) -> np.ndarray:
    """(C, 3) array of cell targets, row-major."""
    return np.stack([cell.target for cell in cells])
