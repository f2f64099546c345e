"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

FIT_MODES = ("best", "sparse", "optimal")
FALLBACK_POLICIES = ("raise", "relax-spatial", "relax-all")
METRICS = ("signed-sum", "euclidean", "lab")
SAMPLE_WINDOWS = ("cell", "tile")


@dataclass(frozen=True)
class MosaicConfig:
    """All tuneable parameters for a mosaic run.

    Attributes:
        grid_size:        Tiles per row and per column (the grid is square).
        aspect_tolerance: Allowed |reference aspect - tile aspect| when cropping.
        min_tile_side:    Smallest tile side the aspect scan may reach.
        repeat_cap:       Max placements of any single tile image.
        exclusion_radius: Chebyshev grid distance between equal tiles (sparse).
        fit_mode:         "best" (cap only), "sparse" (cap + radius) or
                          "optimal" (min-cost assignment under the cap).
        fallback:         What to do when every ranked tile is rejected.
        metric:           Tile-to-cell distance - "signed-sum", "euclidean", "lab".
        sample_window:    Region scored per cell - the "cell" stride block or
                          a "tile"-sized window at the cell origin.
        color_filter:     Tint each tile toward its cell's dominant channel.
        filter_strength:  Blend factor for the colour filter, 0..1.
        output_format:    Image format for saved files.
        save_targets:     Persist the per-cell target colours as an image.
        save_comparison:  Generate a side-by-side comparison grid.
        reference:        Reference image for single runs.
        tile_dir:         Folder of candidate tile images.
        input_dir:        Folder of reference images for batch runs.
        output_dir:       Folder for results.
    """

    # Grid
    grid_size: int = 40
    aspect_tolerance: float = 0.01  # raise toward 0.05 for awkward reference shapes
    min_tile_side: int = 20
    sample_window: str = "cell"

    # Fitting
    repeat_cap: int = 5
    exclusion_radius: int = 10  # large values are slow
    fit_mode: str = "sparse"
    fallback: str = "relax-all"
    metric: str = "signed-sum"

    # Colour filter
    color_filter: bool = True
    filter_strength: float = 0.5

    # Output
    output_format: str = "png"
    save_targets: bool = True
    save_comparison: bool = True

    # Paths
    reference: Path | None = None
    tile_dir: Path = field(default_factory=lambda: Path("tiles"))
    input_dir: Path = field(default_factory=lambda: Path("images"))
    output_dir: Path = field(default_factory=lambda: Path("output"))

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".jfif"}
    )

    @property
    def effective_radius(self) -> int:
        """Exclusion radius actually enforced by the chosen fit mode."""
        return self.exclusion_radius if self.fit_mode == "sparse" else 0

    def validate(self) -> MosaicConfig:
        """Raise ``ValueError`` on unknown modes or out-of-range numbers."""
        choices = {
            "fit_mode": (self.fit_mode, FIT_MODES),
            "fallback": (self.fallback, FALLBACK_POLICIES),
            "metric": (self.metric, METRICS),
            "sample_window": (self.sample_window, SAMPLE_WINDOWS),
        }
        for name, (value, allowed) in choices.items():
            if value not in allowed:
                msg = f"Unknown {name} '{value}'. Available: {', '.join(allowed)}"
                raise ValueError(msg)

        if self.grid_size < 1:
            msg = f"grid_size must be >= 1, got {self.grid_size}"
            raise ValueError(msg)
        if self.repeat_cap < 1:
            msg = f"repeat_cap must be >= 1, got {self.repeat_cap}"
            raise ValueError(msg)
        if self.exclusion_radius < 0:
            msg = f"exclusion_radius must be >= 0, got {self.exclusion_radius}"
            raise ValueError(msg)
        if self.aspect_tolerance < 0:
            msg = f"aspect_tolerance must be >= 0, got {self.aspect_tolerance}"
            raise ValueError(msg)
        if self.min_tile_side < 1:
            msg = f"min_tile_side must be >= 1, got {self.min_tile_side}"
            raise ValueError(msg)
        if not 0.0 <= self.filter_strength <= 1.0:
            msg = f"filter_strength must be in [0, 1], got {self.filter_strength}"
            raise ValueError(msg)
        return self
