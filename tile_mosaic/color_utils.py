"""Colour signatures, colour-space conversion and distance matrices."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from skimage.color import rgb2lab

from tile_mosaic.errors import EmptyRegion, InvalidRegion


def rms_signature(
    pixels: np.ndarray,
    x: int,
    y: int,
    width: int,
    height: int,
) -> np.ndarray:
    """Root-mean-square (R, G, B) over a rectangular region.

    Squaring before averaging weights bright pixels more, so the result
    does not drift darker the way a plain mean does.

    The region is clipped to the bounds of *pixels*; only a region that
    lies entirely outside them is rejected.

    Args:
        pixels: (H, W, 3) array.
        x, y:   Region origin.
        width, height: Region size in pixels.

    Returns:
        (3,) float64 signature.

    Raises:
        EmptyRegion: *width* or *height* is not positive.
        InvalidRegion: The region does not overlap *pixels*.
    """
    if width <= 0 or height <= 0:
        msg = f"Region {width}x{height} at ({x}, {y}) has no area"
        raise EmptyRegion(msg)

    h, w = pixels.shape[:2]
    x0, y0 = max(x, 0), max(y, 0)
    x1, y1 = min(x + width, w), min(y + height, h)
    if x0 >= x1 or y0 >= y1:
        msg = f"Region {width}x{height} at ({x}, {y}) lies outside {w}x{h} source"
        raise InvalidRegion(msg)

    region = pixels[y0:y1, x0:x1, :3].astype(np.float64).reshape(-1, 3)
    return np.sqrt(np.mean(region ** 2, axis=0))


def signatures_for(blocks: Sequence[np.ndarray]) -> np.ndarray:
    """Stack the full-area signature of every block into a (K, 3) table."""
    table = np.empty((len(blocks), 3), dtype=np.float64)
    for i, block in enumerate(blocks):
        h, w = block.shape[:2]
        table[i] = rms_signature(block, 0, 0, w, h)
    return table


def rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert flat (N, 3) RGB in 0..255 → (N, 3) float64 CIELAB."""
    return rgb2lab(rgb.astype(np.float64).reshape(1, -1, 3) / 255.0).reshape(-1, 3)


def compute_distance_matrix(
    signatures: np.ndarray,
    targets: np.ndarray,
    metric: str = "signed-sum",
    chunk_size: int = 512,
) -> np.ndarray:
    """Distance from every cell target to every candidate signature.

    ``"signed-sum"`` is ``|(Ri-Rt) + (Gi-Gt) + (Bi-Bt)|``: per-channel
    differences are summed *before* taking the absolute value, so opposite
    deviations cancel. ``"euclidean"`` (RGB) and ``"lab"`` (CIELAB) are
    opt-in alternatives.

    Args:
        signatures: (K, 3) candidate signatures.
        targets:    (C, 3) cell target signatures.
        metric:     ``"signed-sum"``, ``"euclidean"`` or ``"lab"``.
        chunk_size: Target rows computed per batch (controls peak RAM).

    Returns:
        (C, K) float64 distance matrix.
    """
    if metric == "lab":
        s = rgb_to_lab(np.asarray(signatures))
        t = rgb_to_lab(np.asarray(targets))
    elif metric in ("signed-sum", "euclidean"):
        s = np.asarray(signatures, dtype=np.float64)
        t = np.asarray(targets, dtype=np.float64)
    else:
        msg = f"Unknown metric '{metric}'. Available: signed-sum, euclidean, lab"
        raise ValueError(msg)

    c = len(t)
    dist = np.empty((c, len(s)), dtype=np.float64)
    for i in range(0, c, chunk_size):
        j = min(i + chunk_size, c)
        diff = s[np.newaxis, :, :] - t[i:j, np.newaxis, :]
        if metric == "signed-sum":
            dist[i:j] = np.abs(np.sum(diff, axis=2))
        else:
            dist[i:j] = np.sqrt(np.sum(diff ** 2, axis=2))
    return dist
