"""Stamping chosen tiles into the composite, with the dominant-channel tint.

The colour filter is a partial correction: only the channel that
dominates the cell's target is pulled toward the target, the other two
are left as the tile has them. This gives the mosaic its tint toward the
reference's local hue without repainting the tiles.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

import numpy as np

from tile_mosaic.grid import Cell, GridPlan

logger = logging.getLogger(__name__)


def dominant_channel(target: np.ndarray) -> int | None:
    """Index of the strictly largest channel, ``None`` when the top is tied."""
    t = np.asarray(target, dtype=np.float64)
    ch = int(np.argmax(t))
    if np.count_nonzero(t == t[ch]) > 1:
        return None
    return ch


def apply_color_filter(
    block: np.ndarray,
    target: np.ndarray,
    strength: float,
) -> np.ndarray:
    """Blend the target's dominant channel into every pixel of *block*.

    ``channel + strength * (target[ch] - channel)``, truncated to uint8.

    Args:
        block:    (h, w, 3) uint8 tile pixels.
        target:   (3,) cell target signature.
        strength: Blend factor in [0, 1].

    Returns:
        (h, w, 3) uint8 filtered copy.
    """
    if not 0.0 <= strength <= 1.0:
        msg = f"strength must be in [0, 1], got {strength}"
        raise ValueError(msg)

    ch = dominant_channel(target)
    if ch is None or strength == 0.0:
        return block.copy()

    out = block.astype(np.float64)
    out[..., ch] += strength * (float(target[ch]) - out[..., ch])
    return np.clip(out, 0, 255).astype(np.uint8)


def compose_mosaic(
    cells: Sequence[Cell],
    tiles: Sequence[np.ndarray],
    plan: GridPlan,
    color_filter: bool = False,
    filter_strength: float = 0.5,
    canvas: np.ndarray | None = None,
) -> np.ndarray:
    """Write each cell's tile into the composite at the cell's offset.

    Tiles are cropped from their top-left corner to the planned tile size.
    Cells write disjoint regions, so the order of *cells* does not matter.

    Args:
        cells:   Assigned cells from the fit.
        tiles:   Candidate pixel blocks indexed by candidate number.
        plan:    Grid plan giving tile and mosaic size.
        color_filter:    Apply :func:`apply_color_filter` before stamping.
        filter_strength: Blend factor for the filter.
        canvas:  Optional (plan.height, plan.width, 3) uint8 target buffer;
                 a black one is created when omitted.

    Returns:
        The composite (plan.height, plan.width, 3) uint8 array.
    """
    if canvas is None:
        canvas = np.zeros((plan.height, plan.width, 3), dtype=np.uint8)
    elif canvas.shape[:2] != (plan.height, plan.width):
        msg = (
            f"Canvas {canvas.shape[1]}x{canvas.shape[0]} does not match "
            f"mosaic {plan.width}x{plan.height}"
        )
        raise ValueError(msg)

    logger.info(
        "Writing %d tiles (filter=%s) …", len(cells),
        f"{filter_strength:.2f}" if color_filter else "off",
    )
    t0 = time.perf_counter()

    for cell in cells:
        if cell.candidate is None:
            msg = f"Cell {cell.index} has no assigned tile"
            raise ValueError(msg)

        block = tiles[cell.candidate][:plan.tile_height, :plan.tile_width, :3]
        if color_filter:
            block = apply_color_filter(block, cell.target, filter_strength)

        h, w = block.shape[:2]
        canvas[cell.y:cell.y + h, cell.x:cell.x + w] = block
        logger.debug("Placed tile %d at cell %d", cell.candidate, cell.index)

    logger.info("Mosaic written  (%.1f s)", time.perf_counter() - t0)
    return canvas
