import typer
from medcut import quantize, legend, palette_tools, file_utils
from medcut.errors import QuantizerError
import os
from pathlib import Path
from typing import Optional, List, Dict
from enum import Enum
import sys

import rich.traceback

_MEDCUT_NO_REORDER_ENV = os.environ.get("MEDCUT_NO_REORDER", "0").lower()
DEFAULT_REORDER = _MEDCUT_NO_REORDER_ENV not in ["1", "true", "yes"]


class MedcutFile(Enum):
    QUANTIZED_IMAGE = "quantized_image"
    PALETTE_LEGEND = "palette_legend"


# Filename suffixes appended to each input's stem
MEDCUT_FILE_SUFFIXES: Dict[MedcutFile, str] = {
    MedcutFile.QUANTIZED_IMAGE: "-quantized.png",
    MedcutFile.PALETTE_LEGEND: "-palette_legend.png",
}

SHARED_PALETTE_STEM = "shared"

PRESETS: Dict[str, int] = {
    "gif": 256,
    "ega": 16,
    "cga": 4,
    "mono": 2,
}


def output_path_for(output_dir: Path, stem: str, kind: MedcutFile) -> Path:
    return output_dir / f"{stem}{MEDCUT_FILE_SUFFIXES[kind]}"


def validate_output_dir(output_dir: Path, overwrite: bool, planned: List[Path]) -> None:
    if overwrite:
        return
    clobbered_files_found = [str(p) for p in planned if p.exists()]
    if clobbered_files_found:
        typer.secho("Error: Files already exist:", fg=typer.colors.RED)
        for path_str in clobbered_files_found: typer.secho(f"  {path_str}", fg=typer.colors.RED)
        typer.secho("Use --yes (-y) to overwrite.", fg=typer.colors.YELLOW); raise typer.Exit(code=1)


def medcut_cli(
    input_paths: List[Path] = typer.Argument(
        ...,
        help="Input image file(s) (e.g., image.png).",
        metavar="INPUT_FILES...",
        exists=True, file_okay=True, dir_okay=False, readable=True, resolve_path=True,
    ),
    output_dir: Path = typer.Argument(
        ...,
        help="Directory for output files. Will be created if it doesn't exist.",
        metavar="OUTPUT_DIRECTORY",
        file_okay=False, dir_okay=True, writable=True, resolve_path=True,
    ),
    preset: Optional[str] = typer.Option(
        None, help="Preset palette size: gif (256), ega (16), cga (4), mono (2)."
    ),
    num_colors: Optional[int] = typer.Option(
        None, "--num-colors", help="Palette size to reduce to (1-256). Default: 256."
    ),
    shared_palette: bool = typer.Option(
        False, "--shared-palette/--per-image-palette",
        help="Quantize all inputs against one shared palette. Default: one palette per image."
    ),
    palette_from: Optional[Path] = typer.Option(
        None, "--palette-from", exists=True, file_okay=True, dir_okay=False, readable=True, resolve_path=True,
        help="Extract the palette from this image and map the inputs onto it."
    ),
    sort_by_frequency: bool = typer.Option(
        False, "--sort-by-frequency", help="Put the most used palette entries first."
    ),
    reorder: bool = typer.Option(
        DEFAULT_REORDER, "--reorder/--no-reorder",
        help="Re-quantize the finished palette to normalize its ordering. Default: on (MEDCUT_NO_REORDER=1 turns it off)."
    ),
    swatch_size: int = typer.Option(40, "--swatch-size", min=10, help="Legend swatch size. Default: 40px."),
    skip_legend: bool = typer.Option(False, "--skip-legend", help="Skip generating palette legend."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Overwrite existing files."),
):
    """
    Reduces images to indexed-color PNGs with a median-cut palette.
    """
    command_line_str = " ".join(sys.argv)

    effective_num_colors = num_colors
    if preset:
        if preset not in PRESETS:
            typer.secho(f"Error: Unknown preset '{preset}'. Choose from: {', '.join(PRESETS)}.", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        if effective_num_colors is None:
            effective_num_colors = PRESETS[preset]
            typer.echo(f"Applying preset '{preset}': {effective_num_colors} colors")
    if effective_num_colors is None: effective_num_colors = 256

    try:
        os.makedirs(output_dir, exist_ok=True)
        typer.echo(f"Using output directory: {output_dir}")
    except OSError as e:
        typer.secho(f"Error creating output directory {output_dir}: {e}", fg=typer.colors.RED); raise typer.Exit(code=1)

    # (stem, sources) per palette to build
    jobs = [(SHARED_PALETTE_STEM, input_paths)] if shared_palette else [(p.stem, [p]) for p in input_paths]

    planned: List[Path] = [output_path_for(output_dir, p.stem, MedcutFile.QUANTIZED_IMAGE) for p in input_paths]
    if not skip_legend:
        planned += [output_path_for(output_dir, stem, MedcutFile.PALETTE_LEGEND) for stem, _ in jobs]
    validate_output_dir(output_dir, overwrite=yes, planned=planned)

    fixed_palette = None
    if palette_from:
        try:
            fixed_palette = palette_tools.extract_palette_from_image(str(palette_from), max_colors=effective_num_colors)
            typer.echo(f"Extracted {len(fixed_palette)} colors from {palette_from}")
        except (OSError, ValueError, QuantizerError) as e:
            typer.secho(f"Error extracting palette from {palette_from}: {e}", fg=typer.colors.RED); raise typer.Exit(code=1)

    for stem, sources in jobs:
        try:
            images, palette = quantize.quantize_images(
                sources,
                num_colors=effective_num_colors,
                fixed_palette=fixed_palette,
                sort_by_frequency=sort_by_frequency,
                reorder=reorder,
            )
        except (OSError, ValueError, QuantizerError) as e:
            typer.secho(f"Error quantizing {', '.join(str(s) for s in sources)}: {e}", fg=typer.colors.RED); raise typer.Exit(code=1)

        typer.echo(f"Palette '{stem}': {len(palette)} of {effective_num_colors} requested colors")
        for source, image in zip(sources, images):
            out_path = file_utils.save_indexed_png(
                image,
                output_path_for(output_dir, source.stem, MedcutFile.QUANTIZED_IMAGE),
                command_line_invocation=command_line_str,
                additional_metadata={"Source": source.name, "Palette size": str(len(palette))},
            )
            typer.echo(f"  Wrote {out_path.name}")

        if not skip_legend:
            legend_image = legend.create_legend_image(palette, swatch_size=swatch_size)
            legend_path = file_utils.save_indexed_png(
                legend_image,
                output_path_for(output_dir, stem, MedcutFile.PALETTE_LEGEND),
                command_line_invocation=command_line_str,
            )
            typer.echo(f"  Wrote {legend_path.name}")

    typer.secho("Completed.", fg=typer.colors.GREEN)
    typer.echo(f"Outputs in: {output_dir.resolve()}")


def main():
    rich.traceback.install(show_locals=False, suppress=[typer, __name__]) # type: ignore
    typer.run(medcut_cli)


if __name__ == "__main__":
    main()
