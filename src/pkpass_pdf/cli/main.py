"""
pkpass-pdf CLI
===============
Command-line interface for the pkpass-pdf library.

Commands:
    convert     Convert a .pkpass archive to a PDF next to it
    inspect     Show the normalized pass, archive contents and diagnostics
    version     Show version information

Usage::

    pkpass-pdf convert ticket.pkpass
    pkpass-pdf convert ticket.pkpass -o out/ticket.pdf --strict
    pkpass-pdf inspect ticket.pkpass --format json
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..errors import PassError
from ..models.pkpass import ParsedPass
from ..pdf.reader import RenderedPassReader
from ..pkpass.reader import PassArchive
from ..render.formatting import format_field_value, format_style_label
from ..render.layout import PassRenderer
from ..validator.diagnostics import PassValidator, Severity, ValidationResult

console = Console()
err_console = Console(stderr=True)

PKPASS_SUFFIX = ".pkpass"

_SEVERITY_COLORS = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}


@click.group()
@click.version_option(version=__version__, prog_name="pkpass-pdf")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """
    pkpass-pdf – Apple Wallet pass to PDF converter.

    Renders the front of a .pkpass archive on a single page, with back
    fields in place or on a second page.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(message: str) -> None:
    err_console.print(f"[red]✗ {escape(message)}[/red]")
    sys.exit(1)


def _pkpass_path(value: str) -> Path:
    """Value processor for the interactive prompt."""
    value = value.strip()
    if not value:
        raise click.BadParameter("Please enter a file path")
    if not value.endswith(PKPASS_SUFFIX):
        raise click.BadParameter(f"File must have {PKPASS_SUFFIX} extension")
    return Path(value)


# ---------------------------------------------------------------------------
# convert
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("input_path", required=False, type=click.Path(path_type=Path))
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None,
              help="Output path (default: input path with a .pdf extension)")
@click.option("--strict", is_flag=True, help="Refuse passes with diagnostic errors")
def convert(input_path: Path | None, output: Path | None, strict: bool) -> None:
    """Convert a .pkpass archive to PDF."""
    if input_path is None:
        input_path = click.prompt("Enter path to .pkpass file", value_proc=_pkpass_path)

    input_path = input_path.resolve()
    if not input_path.is_file():
        _fail(f"File not found: {input_path}")
    if input_path.suffix != PKPASS_SUFFIX:
        _fail(f"File must have {PKPASS_SUFFIX} extension")

    output_path = (output or input_path.with_suffix(".pdf")).resolve()

    console.print(f"Input:  [bold]{escape(str(input_path))}[/bold]")
    console.print(f"Output: [bold]{escape(str(output_path))}[/bold]")
    console.print()

    try:
        with PassArchive(input_path) as archive:
            pass_ = archive.parse()
        _print_parsed_summary(pass_)

        if strict:
            result = PassValidator().validate(pass_)
            if not result.passed:
                _print_issues(result)
                _fail(f"{input_path.name} has {len(result.errors)} diagnostic error(s)")

        PassRenderer().render(pass_, output_path)
    except (PassError, OSError) as exc:
        _fail(f"Error: {exc}")

    with RenderedPassReader(output_path) as reader:
        page_count = reader.page_count
    console.print(f"[green]✓[/green] PDF saved to [bold]{escape(str(output_path))}[/bold] ({page_count} page(s))")


def _print_parsed_summary(pass_: ParsedPass) -> None:
    console.print(f"  [green]✓[/green] Pass type: {format_style_label(pass_.style, pass_.transit_type)}")
    console.print(f"  [green]✓[/green] Organization: {escape(pass_.organization_name)}")
    console.print(f"  [green]✓[/green] Description: {escape(pass_.description)}")
    if pass_.barcode:
        console.print(f"  [green]✓[/green] Barcode: {escape(pass_.barcode.format)}")
    console.print(f"  [green]✓[/green] Images found: {pass_.images.count()}")
    console.print()


def _print_issues(result: ValidationResult) -> None:
    for issue in result.issues:
        color = _SEVERITY_COLORS[issue.severity]
        rule = escape(f"[{issue.rule_id}]")
        console.print(f"  [{color}]{issue.severity.value}[/{color}] {rule} {escape(issue.message)}")


# ---------------------------------------------------------------------------
# inspect
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "output_format", type=click.Choice(["rich", "json"]), default="rich")
def inspect(input_path: Path, output_format: str) -> None:
    """Inspect a .pkpass archive without rendering it."""
    try:
        with PassArchive(input_path) as archive:
            entries = archive.names()
            pass_ = archive.parse()
    except PassError as exc:
        _fail(f"Error: {exc}")

    result = PassValidator().validate(pass_)

    if output_format == "json":
        output = {
            "file": str(input_path),
            "entries": entries,
            "pass": pass_.model_dump(mode="json", exclude={"raw", "images"}, exclude_none=True),
            "images": pass_.images.present_roles(),
            "diagnostics": {
                "passed": result.passed,
                "issues": [
                    {"rule": i.rule_id, "severity": i.severity.value, "msg": i.message}
                    for i in result.issues
                ],
            },
        }
        click.echo(json.dumps(output, indent=2, ensure_ascii=False))
        return

    console.print()
    status_str = "[bold green]PASS[/bold green]" if result.passed else "[bold red]FAIL[/bold red]"
    console.print(Panel(
        f"[bold]{escape(pass_.description or input_path.name)}[/bold]\n"
        f"Type: [cyan]{format_style_label(pass_.style, pass_.transit_type)}[/cyan]  |  "
        f"Organization: [cyan]{escape(pass_.organization_name or '—')}[/cyan]  |  "
        f"Diagnostics: {status_str}",
        title="Pass Inspection",
        border_style="cyan",
    ))

    t = Table(title="Fields", box=box.ROUNDED)
    t.add_column("Section")
    t.add_column("Key")
    t.add_column("Label")
    t.add_column("Value")
    for section, fields in pass_.sections():
        for f in fields:
            t.add_row(
                section.removesuffix("_fields"),
                escape(f.key),
                escape(f.label or "—"),
                escape(format_field_value(f)[:50]),
            )
    if t.row_count:
        console.print(t)
    else:
        console.print("[yellow]No fields found on this pass.[/yellow]")

    barcode = pass_.barcode
    console.print(
        f"\nBarcode: {escape(barcode.format_label + ' – ' + barcode.message[:40]) if barcode else '—'}"
    )
    console.print(f"Images:  {', '.join(pass_.images.present_roles()) or '—'}")
    console.print(f"Entries: {escape(', '.join(entries))}")

    if result.issues:
        console.print("\n[bold]Diagnostics:[/bold]")
        _print_issues(result)
    console.print()


# ---------------------------------------------------------------------------
# version info
# ---------------------------------------------------------------------------


@cli.command("version")
def show_version() -> None:
    """Show detailed version information."""
    console.print(Panel(
        f"[bold cyan]pkpass-pdf[/bold cyan] v{__version__}\n\n"
        "Apple Wallet pass (.pkpass) to PDF converter\n"
        "Rendering: reportlab  |  Post-processing: pikepdf",
        title="pkpass-pdf",
        border_style="cyan",
    ))
