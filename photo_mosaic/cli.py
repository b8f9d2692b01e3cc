"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from photo_mosaic.config import MosaicConfig
from photo_mosaic.errors import MosaicError
from photo_mosaic.image_io import save_image
from photo_mosaic.pipeline import preview_targets, run

app = typer.Typer(
    name="photo-mosaic",
    help="Rebuild a reference image out of a folder of tile images.",
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
        force=True,
    )


def _fail(exc: MosaicError) -> NoReturn:
    stage = exc.stage or "pipeline"
    console.print(f"[red]✗ {stage} failed:[/red] {exc}")
    raise typer.Exit(1)


# Defaults come from MosaicConfig - single source of truth
_DEFAULTS = MosaicConfig()


# -- build command -----------------------------------------------------

@app.command()
def build(
    reference: Path = typer.Argument(..., help="Image the mosaic reconstructs"),
    candidate_dir: Path = typer.Argument(..., help="Folder with tile images"),
    output: Path = typer.Option(
        _DEFAULTS.output_path, "--output", "-o", help="Mosaic output path",
    ),
    grid_side: int = typer.Option(
        _DEFAULTS.grid_side, "--grid", "-g", help="Cells per row and column",
    ),
    repeat_cap: int = typer.Option(
        _DEFAULTS.repeat_cap, "--repeat", "-r", help="Max uses of one tile",
    ),
    spacing: int = typer.Option(
        _DEFAULTS.spacing, "--spacing", "-s",
        help="Min cell distance between two uses of the same tile",
    ),
    tolerance: float = typer.Option(
        _DEFAULTS.aspect_tolerance, "--tolerance", "-t",
        help="Allowed aspect ratio deviation from the reference",
    ),
    min_cell_side: int = typer.Option(
        _DEFAULTS.min_cell_side, "--min-cell", help="Smallest cell side to try",
    ),
    color_filter: bool = typer.Option(
        _DEFAULTS.color_filter, "--filter/--no-filter",
        help="Blend tiles toward their cell colour",
    ),
    filter_percent: float = typer.Option(
        _DEFAULTS.filter_percent, "--filter-strength", "-f", help="Blend fraction 0..1",
    ),
    skip_unreadable: bool = typer.Option(
        _DEFAULTS.skip_unreadable, "--skip-unreadable/--strict",
        help="Skip tiles that cannot be read instead of aborting",
    ),
    workers: int | None = typer.Option(
        _DEFAULTS.workers, "--workers", "-w", help="Worker threads",
    ),
    comparison: bool = typer.Option(
        _DEFAULTS.save_comparison, "--comparison/--no-comparison",
        help="Save a Reference | Targets | Mosaic comparison image",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Build a mosaic of REFERENCE from the tiles in CANDIDATE_DIR."""
    _setup_logging(verbose)

    try:
        cfg = MosaicConfig(
            reference_path=reference,
            output_path=output,
            candidate_dir=candidate_dir,
            grid_side=grid_side,
            repeat_cap=repeat_cap,
            spacing=spacing,
            aspect_tolerance=tolerance,
            min_cell_side=min_cell_side,
            color_filter=color_filter,
            filter_percent=filter_percent,
            skip_unreadable=skip_unreadable,
            workers=workers,
            save_comparison=comparison,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    console.print(Panel.fit(
        f"[bold]PHOTO MOSAIC[/bold]\n"
        f"Reference: {reference}  |  Tiles: {candidate_dir}\n"
        f"Grid: {grid_side}x{grid_side}  |  Repeat cap: {repeat_cap}"
        f"  |  Spacing: {spacing}\n"
        f"Filter: {color_filter} ({filter_percent:.2f})  |  Tolerance: {tolerance}",
        border_style="cyan",
    ))

    t_total = time.perf_counter()
    try:
        result = run(cfg)
    except MosaicError as exc:
        _fail(exc)

    grid = result.grid
    relaxed = result.fit.summary()
    timings = "  ".join(f"{s.value}={t:.1f}s" for s, t in result.timings.items())
    elapsed = time.perf_counter() - t_total

    console.print(Panel.fit(
        f"[bold green]DONE[/bold green] - {output}\n"
        f"Canvas {grid.canvas_width}x{grid.canvas_height}"
        f"  |  Cell {grid.cell_width}x{grid.cell_height}"
        f"  |  Tiles {len(result.pool)}\n"
        f"Relaxed: spacing={relaxed['spacing']}  repeat cap={relaxed['repeat_cap']}"
        f"  |  ΔE={result.delta_e():.1f}\n"
        f"[dim]{timings}  total={elapsed:.1f}s[/dim]",
        border_style="green",
    ))


# -- preview command ---------------------------------------------------

@app.command()
def preview(
    reference: Path = typer.Argument(..., help="Image the mosaic reconstructs"),
    candidate_dir: Path = typer.Argument(..., help="Folder with tile images"),
    output: Path = typer.Option(Path("output/targets.png"), "--output", "-o"),
    grid_side: int = typer.Option(_DEFAULTS.grid_side, "--grid", "-g"),
    tolerance: float = typer.Option(_DEFAULTS.aspect_tolerance, "--tolerance", "-t"),
    min_cell_side: int = typer.Option(_DEFAULTS.min_cell_side, "--min-cell"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Render only the sampled cell colours (no ranking or fitting)."""
    _setup_logging(verbose)

    try:
        cfg = MosaicConfig(
            reference_path=reference,
            candidate_dir=candidate_dir,
            grid_side=grid_side,
            aspect_tolerance=tolerance,
            min_cell_side=min_cell_side,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        grid, targets = preview_targets(cfg)
        save_image(targets, output)
    except MosaicError as exc:
        _fail(exc)

    console.print(
        f"[green]✓[/green] Saved to {output}  "
        f"[dim]{grid.canvas_width}x{grid.canvas_height}"
        f"  cell={grid.cell_width}x{grid.cell_height}[/dim]"
    )


if __name__ == "__main__":
    app()
