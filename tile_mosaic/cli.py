"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import numpy as np
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from tile_mosaic.config import MosaicConfig
from tile_mosaic.engine import MosaicResult, build_mosaic
from tile_mosaic.errors import MosaicError
from tile_mosaic.grid import plan_grid
from tile_mosaic.image_io import (
    collect_images,
    load_candidates,
    load_reference,
    make_comparison_grid,
    read_sizes,
    render_targets,
    save_image,
)

app = typer.Typer(
    name="tile-mosaic",
    help="Assemble photo mosaics from a folder of tile images.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _load_tiles(
    tile_dir: Path, cfg: MosaicConfig,
) -> tuple[list[np.ndarray], list[Path]]:
    paths = collect_images(tile_dir, cfg.SUPPORTED_EXTENSIONS)
    if not paths:
        console.print(f"\n[yellow]No tile images found in {tile_dir}/[/yellow]\n")
        raise typer.Exit(1)
    tiles, loaded = load_candidates(paths)
    if not tiles:
        console.print(f"\n[yellow]No readable tile images in {tile_dir}/[/yellow]\n")
        raise typer.Exit(1)
    return tiles, loaded


def _summary(result: MosaicResult, elapsed: float) -> str:
    usage = result.state.usage
    return (
        f"[dim]{result.plan.width}x{result.plan.height} px  "
        f"tiles used={np.count_nonzero(usage)}  max repeat={usage.max()}  "
        f"fallbacks={result.state.fallbacks}  error={result.mean_error:.1f}  "
        f"time={elapsed:.1f}s[/dim]"
    )


def _build_one(
    reference_path: Path,
    tiles: list[np.ndarray],
    tile_paths: list[Path],
    cfg: MosaicConfig,
    output: Path,
) -> MosaicResult:
    t_total = time.perf_counter()
    reference = load_reference(reference_path)
    result = build_mosaic(
        reference, tiles, cfg, handles=[str(p) for p in tile_paths],
    )
    save_image(result.image, output)

    stem = output.stem
    suffix = f".{cfg.output_format}"
    if cfg.save_targets or cfg.save_comparison:
        targets = render_targets(result.cells, result.plan)
        if cfg.save_targets:
            save_image(targets, output.with_name(f"{stem}_targets{suffix}"))
        if cfg.save_comparison:
            make_comparison_grid(
                reference_path, targets, result.image,
                output.with_name(f"{stem}_comparison{suffix}"),
            )

    console.print(
        f"  [green]✓[/green] {output.name}  "
        + _summary(result, time.perf_counter() - t_total)
    )
    return result


# Defaults come from MosaicConfig - single source of truth
_DEFAULTS = MosaicConfig()

_TILES_OPT = typer.Option(
    _DEFAULTS.tile_dir, "--tiles", "-t", help="Folder with tile images",
)
_GRID_OPT = typer.Option(
    _DEFAULTS.grid_size, "--grid", "-g", help="Tiles per row and column",
)
_TOL_OPT = typer.Option(
    _DEFAULTS.aspect_tolerance, "--tolerance", help="Aspect ratio tolerance",
)
_MIN_SIDE_OPT = typer.Option(
    _DEFAULTS.min_tile_side, "--min-side", help="Smallest cropped tile side",
)
_WINDOW_OPT = typer.Option(
    _DEFAULTS.sample_window, "--window", help="'cell' or 'tile' scoring window",
)
_CAP_OPT = typer.Option(
    _DEFAULTS.repeat_cap, "--repeat", "-r", help="Max uses of any tile",
)
_RADIUS_OPT = typer.Option(
    _DEFAULTS.exclusion_radius, "--radius", "-d",
    help="Min grid distance between equal tiles (sparse mode)",
)
_MODE_OPT = typer.Option(
    _DEFAULTS.fit_mode, "--mode", help="'best', 'sparse' or 'optimal'",
)
_FALLBACK_OPT = typer.Option(
    _DEFAULTS.fallback, "--fallback",
    help="'raise', 'relax-spatial' or 'relax-all' when no tile fits",
)
_METRIC_OPT = typer.Option(
    _DEFAULTS.metric, "--metric", help="'signed-sum', 'euclidean' or 'lab'",
)
_FILTER_OPT = typer.Option(
    _DEFAULTS.color_filter, "--filter/--no-filter", help="Dominant-channel tint",
)
_STRENGTH_OPT = typer.Option(
    _DEFAULTS.filter_strength, "--strength", "-f", help="Filter blend factor 0..1",
)
_TARGETS_OPT = typer.Option(
    _DEFAULTS.save_targets, "--targets/--no-targets", help="Save target colours",
)
_COMPARE_OPT = typer.Option(
    _DEFAULTS.save_comparison, "--compare/--no-compare", help="Save comparison grid",
)
_VERBOSE_OPT = typer.Option(False, "--verbose", "-v", help="Debug logging")


# -- build command -----------------------------------------------------

@app.command()
def build(
    reference: Path = typer.Argument(..., help="Path to the reference image"),
    output: Path = typer.Option(Path("output/mosaic.png"), "--output", "-o"),
    tile_dir: Path = _TILES_OPT,
    grid_size: int = _GRID_OPT,
    tolerance: float = _TOL_OPT,
    min_side: int = _MIN_SIDE_OPT,
    window: str = _WINDOW_OPT,
    repeat_cap: int = _CAP_OPT,
    radius: int = _RADIUS_OPT,
    mode: str = _MODE_OPT,
    fallback: str = _FALLBACK_OPT,
    metric: str = _METRIC_OPT,
    color_filter: bool = _FILTER_OPT,
    strength: float = _STRENGTH_OPT,
    save_targets: bool = _TARGETS_OPT,
    save_comparison: bool = _COMPARE_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Build one mosaic of REFERENCE from the images in --tiles."""
    _setup_logging(verbose)

    try:
        cfg = MosaicConfig(
            grid_size=grid_size,
            aspect_tolerance=tolerance,
            min_tile_side=min_side,
            sample_window=window,
            repeat_cap=repeat_cap,
            exclusion_radius=radius,
            fit_mode=mode,
            fallback=fallback,
            metric=metric,
            color_filter=color_filter,
            filter_strength=strength,
            output_format=output.suffix.lstrip(".") or _DEFAULTS.output_format,
            save_targets=save_targets,
            save_comparison=save_comparison,
            reference=reference,
            tile_dir=tile_dir,
        ).validate()
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(2) from exc

    output.parent.mkdir(parents=True, exist_ok=True)
    tiles, tile_paths = _load_tiles(tile_dir, cfg)

    try:
        _build_one(reference, tiles, tile_paths, cfg, output)
    except MosaicError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc


# -- batch command -----------------------------------------------------

@app.command()
def batch(
    input_dir: Path = typer.Option(
        _DEFAULTS.input_dir, "--input", "-i", help="Folder with reference images",
    ),
    output_dir: Path = typer.Option(
        _DEFAULTS.output_dir, "--output", "-o", help="Results folder",
    ),
    tile_dir: Path = _TILES_OPT,
    grid_size: int = _GRID_OPT,
    tolerance: float = _TOL_OPT,
    min_side: int = _MIN_SIDE_OPT,
    window: str = _WINDOW_OPT,
    repeat_cap: int = _CAP_OPT,
    radius: int = _RADIUS_OPT,
    mode: str = _MODE_OPT,
    fallback: str = _FALLBACK_OPT,
    metric: str = _METRIC_OPT,
    color_filter: bool = _FILTER_OPT,
    strength: float = _STRENGTH_OPT,
    save_targets: bool = _TARGETS_OPT,
    save_comparison: bool = _COMPARE_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Build a mosaic for every reference image in INPUT_DIR."""
    _setup_logging(verbose)
    logger = logging.getLogger("tile_mosaic")

    try:
        cfg = MosaicConfig(
            grid_size=grid_size,
            aspect_tolerance=tolerance,
            min_tile_side=min_side,
            sample_window=window,
            repeat_cap=repeat_cap,
            exclusion_radius=radius,
            fit_mode=mode,
            fallback=fallback,
            metric=metric,
            color_filter=color_filter,
            filter_strength=strength,
            save_targets=save_targets,
            save_comparison=save_comparison,
            tile_dir=tile_dir,
            input_dir=input_dir,
            output_dir=output_dir,
        ).validate()
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(2) from exc

    input_dir.mkdir(exist_ok=True)
    output_dir.mkdir(exist_ok=True)

    references = collect_images(input_dir, cfg.SUPPORTED_EXTENSIONS)
    if not references:
        console.print(f"\n[yellow]No images found in {input_dir}/[/yellow]")
        console.print("Place .jpg / .png / ... files there and re-run.\n")
        raise typer.Exit(0)

    tiles, tile_paths = _load_tiles(tile_dir, cfg)

    console.print(Panel.fit(
        f"[bold]TILE MOSAIC[/bold]\n"
        f"Grid: {cfg.grid_size}x{cfg.grid_size}  |  Tiles: {len(tiles)}\n"
        f"Mode: {cfg.fit_mode}  |  Cap: {cfg.repeat_cap}  |  "
        f"Radius: {cfg.effective_radius}\n"
        f"Metric: {cfg.metric}  |  Filter: "
        f"{cfg.filter_strength if cfg.color_filter else 'off'}  |  "
        f"References: {len(references)}",
        border_style="cyan",
    ))

    failed = 0
    for idx, ref_path in enumerate(references, 1):
        console.rule(
            f"[bold cyan][{idx}/{len(references)}] {ref_path.name}[/bold cyan]"
        )
        output = output_dir / f"{ref_path.stem}_mosaic.{cfg.output_format}"
        try:
            _build_one(ref_path, tiles, tile_paths, cfg, output)
        except MosaicError as exc:
            failed += 1
            logger.error("%s: %s", ref_path.name, exc)

    style = "green" if not failed else "yellow"
    console.print(Panel.fit(
        f"[bold {style}]ALL DONE[/bold {style}] - results in "
        f"[bold]{output_dir}/[/bold]"
        + (f"\n{failed} of {len(references)} failed" if failed else ""),
        border_style=style,
    ))


# -- plan command ------------------------------------------------------

@app.command()
def plan(
    reference: Path = typer.Argument(..., help="Path to the reference image"),
    tile_dir: Path = _TILES_OPT,
    grid_size: int = _GRID_OPT,
    tolerance: float = _TOL_OPT,
    min_side: int = _MIN_SIDE_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Show the grid plan for REFERENCE without fitting any tiles."""
    _setup_logging(verbose)

    try:
        cfg = MosaicConfig(
            grid_size=grid_size,
            aspect_tolerance=tolerance,
            min_tile_side=min_side,
            reference=reference,
            tile_dir=tile_dir,
        ).validate()
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(2) from exc

    paths = collect_images(tile_dir, cfg.SUPPORTED_EXTENSIONS)
    if not paths:
        console.print(f"\n[yellow]No tile images found in {tile_dir}/[/yellow]\n")
        raise typer.Exit(1)
    sizes, paths = read_sizes(paths)
    if not sizes:
        console.print(f"\n[yellow]No readable tile images in {tile_dir}/[/yellow]\n")
        raise typer.Exit(1)
    min_w = min(w for w, _ in sizes)
    min_h = min(h for _, h in sizes)

    try:
        ref = load_reference(reference)
        ref_h, ref_w = ref.shape[:2]
        grid = plan_grid(
            ref_w, ref_h, min_w, min_h,
            cfg.grid_size, cfg.aspect_tolerance, cfg.min_tile_side,
        )
    except MosaicError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    table = Table(title=f"Grid plan for {reference.name}", show_header=False)
    table.add_row("Reference", f"{ref_w} x {ref_h}")
    table.add_row("Scored area", f"{grid.scored_width} x {grid.scored_height}")
    table.add_row("Tile images", f"{len(paths)} (smallest {min_w} x {min_h})")
    table.add_row("Tile size", f"{grid.tile_width} x {grid.tile_height}")
    table.add_row("Rows, cols", f"{grid.rows}, {grid.cols}")
    table.add_row("Mosaic", f"{grid.width} x {grid.height}")
    console.print(table)


if __name__ == "__main__":
    app()
