"""Exception hierarchy for the tile-assignment engine."""

from __future__ import annotations


class MosaicError(Exception):
    """Base class for every error raised by :mod:`tile_mosaic`."""


class InvalidReferenceImage(MosaicError, ValueError):
    """The reference image cannot be read or is too small for the grid."""


class AspectRatioUnreachable(MosaicError, ValueError):
    """No cropped tile size brings the aspect ratio within tolerance.

    ``floor`` is the last (smallest) tile side the scan tried.
    """

    def __init__(self, tolerance: float, best_error: float, floor: int) -> None:
        self.tolerance = tolerance
        self.best_error = best_error
        self.floor = floor
        super().__init__(
            f"No tile size within aspect tolerance {tolerance:g} down to "
            f"{floor} px (closest error {best_error:.4f}); raise the tolerance "
            "or use a different reference image",
        )


class EmptyRegion(MosaicError, ValueError):
    """A signature was requested over a region of zero area."""


class InvalidRegion(MosaicError, ValueError):
    """A signature was requested over a region outside the pixel source."""


class RepeatBudgetExhausted(MosaicError, RuntimeError):
    """Every ranked candidate was rejected for a cell."""

    def __init__(self, cell_index: int, row: int, col: int) -> None:
        self.cell_index = cell_index
        self.row = row
        self.col = col
        super().__init__(
            f"No acceptable candidate for cell {cell_index} "
            f"(row {row}, col {col}); raise the repeat cap, lower the "
            "exclusion radius or add more tile images",
        )
