"""Per-cell ordering of candidate tiles by colour distance."""

from __future__ import annotations

import logging
import time
from typing import NamedTuple

import numpy as np

from tile_mosaic.color_utils import compute_distance_matrix

logger = logging.getLogger(__name__)


class RankedCandidate(NamedTuple):
    index: int
    distance: float


def rank_candidates(distances: np.ndarray) -> np.ndarray:
    """Order candidates per cell, closest first.

    The sort is stable: candidates at equal distance keep their original
    order, so identical inputs always rank identically.

    Args:
        distances: (C, K) matrix from :func:`compute_distance_matrix`.

    Returns:
        (C, K) int array; row *c* lists candidate indices for cell *c*.
    """
    return np.argsort(distances, axis=1, kind="stable")


def rank_all(
    signatures: np.ndarray,
    targets: np.ndarray,
    metric: str = "signed-sum",
) -> tuple[np.ndarray, np.ndarray]:
    """Distance matrix and ranking for every cell.

    Each row depends only on its own target and the fixed signature table.

    Returns:
        ``(distances, order)``, both shaped (C, K).
    """
    logger.info(
        "Ranking %d candidates for %d cells (%s) …",
        len(signatures), len(targets), metric,
    )
    t0 = time.perf_counter()
    distances = compute_distance_matrix(signatures, targets, metric)
    order = rank_candidates(distances)
    logger.info("Ranking done  (%.1f s)", time.perf_counter() - t0)
    return distances, order


def rank_cell(
    target: np.ndarray,
    signatures: np.ndarray,
    metric: str = "signed-sum",
) -> list[RankedCandidate]:
    """Ranked ``(index, distance)`` pairs for a single cell target."""
    distances = compute_distance_matrix(
        signatures, np.asarray(target, dtype=np.float64).reshape(1, 3), metric,
    )[0]
    order = rank_candidates(distances[np.newaxis, :])[0]
    return [RankedCandidate(int(i), float(distances[i])) for i in order]
