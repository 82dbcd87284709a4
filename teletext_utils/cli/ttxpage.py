"""
ttxpage - Teletext Page File Command-Line Interface
===================================================

Inspect and convert teletext page files.

Commands
--------
- **formats**: List the supported file formats
- **info**: Show page number, subpages and level of a page file
- **convert**: Convert a page file to another format
- **triplets**: List the X/26 enhancement triplets of a subpage
- **hash**: Print the edit.tf hash string of a subpage

Usage Examples
--------------
    $ ttxpage info P100.tti
    $ ttxpage convert P100.tti P100.t42
    $ ttxpage convert --to htt --header-text P100.tti capture.bin
    $ ttxpage triplets -s 2 P100.tti
"""

import logging
from pathlib import Path
from typing import Optional

import click

from teletext_utils.cli.errors import handle_cli_exception
from teletext_utils.hash_formats import export_hash_string_packets, export_hash_string_page
from teletext_utils.models import TRIPLET_ERROR_MESSAGES, CycleType, TripletError
from teletext_utils.page_set import PageSet
from teletext_utils.PageFormats.formats.t42_format import T42Format
from teletext_utils.PageFormats.PageFormat import LoadResult, PageFormat
from teletext_utils.PageFormats.PageFormats import default_registry
from teletext_utils.x26_triplets import TRIPLETS_PER_PACKET

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

LEVEL_NAMES = ("1", "1.5", "2.5", "3.5")


# =============================================================================
# Format Parameter Type
# =============================================================================

class FormatChoice(click.ParamType):
    """
    Click parameter type for a registered format id.

    Accepts: tti, t42, ep1, htt, m29 (case-insensitive)
    """
    name = "format"

    def convert(self, value: str, param: Optional[click.Parameter],
                ctx: Optional[click.Context]) -> str:
        """Convert string to a registered format id."""
        key = value.lower()
        if key not in default_registry():
            ids = ", ".join(f.format_id for f in default_registry())
            self.fail(f"Invalid format '{value}'. Choose from: {ids}", param, ctx)
        return key


FORMAT = FormatChoice()

subpage_option = click.option(
    "-s", "--subpage",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Subpage number, counting from 1",
)


def _load(path: Path, format_id: Optional[str]) -> LoadResult:
    registry = default_registry()
    codec = registry.get(format_id) if format_id else registry.find_by_extension(str(path), for_loading=True)
    logger.debug(f"Loading {path} as {codec.description()}")
    result = codec.load(path.read_bytes())
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    return result


def _subpage_index(pages: PageSet, subpage: int) -> int:
    if subpage > len(pages):
        raise click.BadParameter(
            f"page has {len(pages)} subpage(s), got {subpage}", param_hint="'--subpage'"
        )
    return subpage - 1


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.version_option(__version__, "--version", "-V", prog_name="ttxpage")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output with debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """
    Teletext page file tool.

    Inspect and convert TTI, t42, HTT and EP1 teletext page files.

    \b
    Commands:
      formats   List supported formats
      info      Show page information
      convert   Convert between formats
      triplets  List enhancement triplets
      hash      Print edit.tf hash string
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


# =============================================================================
# Formats Command
# =============================================================================

@main.command("formats")
def cmd_formats() -> None:
    """List the supported file formats."""
    for page_format in default_registry():
        modes = "load/save" if page_format.can_load else "save"
        extensions = ", ".join(f".{e}" for e in page_format.extensions())
        click.echo(f"{page_format.format_id:<5} {page_format.description():<36} {extensions:<14} {modes}")


# =============================================================================
# Info Command
# =============================================================================

@main.command("info")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-f", "--format", "format_id", type=FORMAT, help="Input format (default: from extension)")
@click.pass_context
def cmd_info(ctx: click.Context, input_file: Path, format_id: Optional[str]) -> None:
    """Show page number, subpages and presentation level of a page file."""
    try:
        result = _load(input_file, format_id)
        pages = result.pages

        click.echo(f"{input_file}")
        click.echo(f"  Page number:   {pages.page_number:03X}")
        if pages.description:
            click.echo(f"  Description:   {pages.description}")
        click.echo(f"  Function:      {pages.page_function.name}, {pages.packet_coding.name}")
        click.echo(f"  Subpages:      {len(pages)}")
        click.echo(f"  Level:         {LEVEL_NAMES[pages.level_required()]}")

        for number, subpage in enumerate(pages, start=1):
            cycle_unit = "cycles" if subpage.cycle_type == CycleType.CYCLES else "seconds"
            click.echo(
                f"  Subpage {number}: level {LEVEL_NAMES[subpage.level_required()]}, "
                f"{len(subpage.enhancements)} triplets, cycle {subpage.cycle_value} {cycle_unit}"
            )

        if result.re_export_warning:
            click.echo("  Note: file holds more than was loaded")

    except Exception as e:
        handle_cli_exception(e, ctx.obj["verbose"], "Load")


# =============================================================================
# Convert Command
# =============================================================================

@main.command("convert")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--from", "from_format", type=FORMAT, help="Input format (default: from extension)")
@click.option("--to", "to_format", type=FORMAT, help="Output format (default: from extension)")
@click.option("-s", "--subpage", type=click.IntRange(min=1), help="Save only this subpage, counting from 1")
@click.option("--header-text", is_flag=True, help="t42/HTT: send row 0 in the X/0 header")
@click.pass_context
def cmd_convert(
    ctx: click.Context,
    input_file: Path,
    output_file: Path,
    from_format: Optional[str],
    to_format: Optional[str],
    subpage: Optional[int],
    header_text: bool,
) -> None:
    """
    Convert INPUT_FILE to OUTPUT_FILE.

    \b
    Examples:
      ttxpage convert P100.tti P100.t42
      ttxpage convert --to m29 P1FF.tti M29.tti
    """
    try:
        registry = default_registry()
        result = _load(input_file, from_format)

        codec: PageFormat = registry.get(to_format) if to_format else registry.find_by_extension(str(output_file))
        if header_text:
            if not isinstance(codec, T42Format):
                raise click.BadParameter(
                    f"only applies to t42 and HTT, not {codec.format_id}", param_hint="'--header-text'"
                )
            codec = type(codec)(header_text=True)

        subpage_index = None if subpage is None else _subpage_index(result.pages, subpage)
        saved = codec.save(result.pages, subpage_index)
        output_file.write_bytes(saved.data)

        for warning in saved.warnings:
            click.echo(f"Warning: {warning}", err=True)
        click.echo(f"Converted {input_file} to {output_file} ({codec.description()}, {len(saved.data)} bytes)")

    except Exception as e:
        handle_cli_exception(e, ctx.obj["verbose"], "Convert")


# =============================================================================
# Triplets Command
# =============================================================================

@main.command("triplets")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-f", "--format", "format_id", type=FORMAT, help="Input format (default: from extension)")
@subpage_option
@click.pass_context
def cmd_triplets(ctx: click.Context, input_file: Path, format_id: Optional[str], subpage: int) -> None:
    """List the enhancement triplets of a subpage with their decoded position."""
    try:
        result = _load(input_file, format_id)
        page = result.pages[_subpage_index(result.pages, subpage)]

        if page.enhancements.is_empty():
            click.echo("No enhancement triplets")
            return

        click.echo("  #   d/t  addr mode data  row col  notes")
        for i, triplet in enumerate(page.enhancements):
            slot = f"{i:3d} {i // TRIPLETS_PER_PACKET:2d}/{i % TRIPLETS_PER_PACKET:<2d}"
            if not triplet.is_valid():
                click.echo(f"{slot}  invalid")
                continue

            notes = []
            if triplet.error != TripletError.NO_ERROR:
                notes.append(TRIPLET_ERROR_MESSAGES[triplet.error])
            if triplet.reserved_mode:
                notes.append("reserved mode")
            if triplet.reserved_data:
                notes.append("reserved data")
            if triplet.active_position_1p5_differs:
                notes.append("Level 1.5 position differs")

            click.echo(
                f"{slot}  {triplet.address:4d}   {triplet.mode_ext:02x}   {triplet.data:02x}  "
                f"{triplet.active_position_row:3d} {triplet.active_position_column:3d}  {'; '.join(notes)}"
            )

    except Exception as e:
        handle_cli_exception(e, ctx.obj["verbose"], "Load")


# =============================================================================
# Hash Command
# =============================================================================

@main.command("hash")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-f", "--format", "format_id", type=FORMAT, help="Input format (default: from extension)")
@subpage_option
@click.pass_context
def cmd_hash(ctx: click.Context, input_file: Path, format_id: Optional[str], subpage: int) -> None:
    """Print the edit.tf / zxnet hash string of a subpage."""
    try:
        result = _load(input_file, format_id)
        page = result.pages[_subpage_index(result.pages, subpage)]
        click.echo(export_hash_string_page(page) + export_hash_string_packets(page))

    except Exception as e:
        handle_cli_exception(e, ctx.obj["verbose"], "Load")


if __name__ == "__main__":
    main()
