"""Image loading, saving, target rendering and comparison-grid generation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from tile_mosaic.errors import InvalidReferenceImage
from tile_mosaic.grid import Cell, GridPlan

logger = logging.getLogger(__name__)

# allow large reference images without disabling the decompression-bomb guard
Image.MAX_IMAGE_PIXELS = max(int(getattr(Image, "MAX_IMAGE_PIXELS", 0) or 0), 250_000_000)


def collect_images(folder: Path, extensions: Iterable[str]) -> list[Path]:
    """Image files directly inside *folder*, sorted by name."""
    if not folder.exists():
        return []
    exts = {e.lower() for e in extensions}
    return sorted(
        f for f in folder.iterdir()
        if f.is_file() and f.suffix.lower() in exts
    )


def load_reference(path: str | Path) -> np.ndarray:
    """Load the reference image as (H, W, 3) uint8.

    Raises:
        InvalidReferenceImage: The file is missing or cannot be decoded.
    """
    try:
        with Image.open(path) as img:
            return np.array(img.convert("RGB"), dtype=np.uint8)
    except (OSError, UnidentifiedImageError) as exc:
        msg = f"Cannot read reference image {path}: {exc}"
        raise InvalidReferenceImage(msg) from exc


def load_candidates(paths: Sequence[Path]) -> tuple[list[np.ndarray], list[Path]]:
    """Load candidate tiles as (h, w, 3) uint8 arrays.

    Unreadable files are skipped with a warning.

    Returns:
        ``(arrays, paths)`` for the files that loaded, in input order.
    """
    arrays: list[np.ndarray] = []
    loaded: list[Path] = []
    for p in paths:
        try:
            with Image.open(p) as img:
                arrays.append(np.array(img.convert("RGB"), dtype=np.uint8))
        except (OSError, UnidentifiedImageError) as exc:
            logger.warning("Skipping unreadable tile %s: %s", p, exc)
            continue
        loaded.append(p)
        logger.debug("Loaded tile %s", p)
    logger.info("Loaded %d of %d tile images", len(loaded), len(paths))
    return arrays, loaded


def read_sizes(paths: Sequence[Path]) -> tuple[list[tuple[int, int]], list[Path]]:
    """(width, height) of each image, read from the header only.

    Unreadable files are skipped with a warning, as in :func:`load_candidates`.
    """
    sizes: list[tuple[int, int]] = []
    loaded: list[Path] = []
    for p in paths:
        try:
            with Image.open(p) as img:
                sizes.append(img.size)
        except (OSError, UnidentifiedImageError) as exc:
            logger.warning("Skipping unreadable tile %s: %s", p, exc)
            continue
        loaded.append(p)
    return sizes, loaded


def save_image(array: np.ndarray, path: str | Path) -> None:
    Image.fromarray(array.astype(np.uint8)).save(path)


def render_targets(cells: Sequence[Cell], plan: GridPlan) -> np.ndarray:
    """Paint every cell's target signature as a flat tile-sized block.

    Useful for checking the scoring without any tiles in the way.
    """
    canvas = np.zeros((plan.height, plan.width, 3), dtype=np.uint8)
    for cell in cells:
        canvas[
            cell.y:cell.y + plan.tile_height,
            cell.x:cell.x + plan.tile_width,
        ] = np.clip(np.asarray(cell.target), 0, 255).astype(np.uint8)
    return canvas


def make_comparison_grid(
    reference_path: str | Path,
    targets: np.ndarray,
    mosaic: np.ndarray,
    output_path: str | Path,
    panel_height: int = 480,
) -> None:
    """Create a 3-panel comparison: Reference | Targets | Mosaic.

    All panels are scaled to *panel_height*, keeping the mosaic's aspect.
    """
    mh, mw = mosaic.shape[:2]
    panel_w = max(1, round(mw * panel_height / mh))
    label_height = 36

    reference = (
        Image.open(reference_path)
        .convert("RGB")
        .resize((panel_w, panel_height), Image.LANCZOS)
    )
    target_img = Image.fromarray(targets).resize((panel_w, panel_height), Image.NEAREST)
    mosaic_img = Image.fromarray(mosaic).resize((panel_w, panel_height), Image.LANCZOS)

    panels = [reference, target_img, mosaic_img]
    labels = ["Reference", "Targets", f"Mosaic {mw}x{mh}"]

    gap = 8
    total_w = len(panels) * panel_w + (len(panels) - 1) * gap
    total_h = panel_height + label_height

    canvas = Image.new("RGB", (total_w, total_h), (30, 30, 30))
    draw = ImageDraw.Draw(canvas)

    try:
        font = ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", 18,
        )
    except OSError:
        font = ImageFont.load_default()

    for i, (panel, label) in enumerate(zip(panels, labels, strict=False)):
        x = i * (panel_w + gap)
        canvas.paste(panel, (x, label_height))

        bbox = draw.textbbox((0, 0), label, font=font)
        text_w = bbox[2] - bbox[0]
        tx = x + (panel_w - text_w) // 2
        draw.text((tx, 6), label, fill=(220, 220, 220), font=font)

    canvas.save(output_path)
