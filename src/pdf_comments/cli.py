"""CLI interface for PDF comment extraction."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.theme import Theme

from .data_model import ColumnProjection, CommentSession, Preferences
from .exporter import (
    ExportSinkError,
    copy_to_clipboard,
    display_comments,
    format_csv,
    format_text,
    format_tsv,
    save_export,
)
from .extractor import load_document
from .pdf_reader import ExtractionWarning

app = typer.Typer(
    name="pdf-comments",
    help="Extract comments from PDF documents and export them as CSV or text.",
    add_completion=False,
)

console = Console()

# Preferences location, overridable for portable installs
PREFERENCES_DIR = Path(os.environ.get("PDF_COMMENTS_HOME", Path.home() / ".pdf-comments"))

THEMES = {
    False: Theme({"accent": "blue", "muted": "dim", "count": "bold blue"}),
    True: Theme({"accent": "bright_cyan", "muted": "grey70", "count": "bold bright_cyan"}),
}

NO_COMMENTS_MESSAGE = (
    "No comments found. The PDF may have flattened annotations or no comments were added."
)


class SaveFormat(str, Enum):
    csv = "csv"
    txt = "txt"


class CopyFormat(str, Enum):
    text = "text"
    table = "table"


_active_theme: Optional[bool] = None


def apply_theme(dark_mode: bool) -> None:
    """Swap the console's colour theme, keeping one theme on the stack."""
    global _active_theme
    if _active_theme is not None:
        console.pop_theme()
    console.push_theme(THEMES[dark_mode])
    _active_theme = dark_mode


def load_preferences() -> Preferences:
    """Load preferences and apply the colour theme."""
    prefs = Preferences.load(PREFERENCES_DIR)
    apply_theme(prefs.dark_mode)
    return prefs


def parse_rows(selection: str, total: int) -> list[int]:
    """Parse '1,3-5' style row numbers (1-based) into 0-based indices."""
    indices: list[int] = []
    for part in selection.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            try:
                start, end = (int(bound) for bound in part.split("-"))
            except ValueError:
                console.print(f"[red]Invalid range: {escape(part)}[/red]")
                continue
            if start > end:
                console.print(f"[red]Invalid range: {escape(part)}[/red]")
                continue
            if start < 1 or end > total:
                console.print(
                    f"[yellow]Rows of {escape(part)} outside 1-{total} ignored[/yellow]"
                )
            indices.extend(i - 1 for i in range(max(start, 1), min(end, total) + 1))
        else:
            try:
                row = int(part)
            except ValueError:
                console.print(f"[red]Invalid row number: {escape(part)}[/red]")
                continue
            if 1 <= row <= total:
                indices.append(row - 1)
            else:
                console.print(f"[yellow]Row {row} out of range (1-{total}), ignored[/yellow]")
    return indices


def resolve_projection(columns: Optional[str], prefs: Preferences) -> ColumnProjection:
    """Projection from --columns, or the saved default."""
    if columns is None:
        return prefs.columns
    try:
        return ColumnProjection.from_names(name for name in columns.split(",") if name.strip())
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def load_session(
    pdf_path: Path,
    projection: ColumnProjection,
    rows: Optional[str] = None,
    verbose: bool = False,
) -> CommentSession:
    """Extract comments from a PDF into a fresh session."""
    session = CommentSession(projection=projection)
    ExtractionWarning.clear()

    with console.status(f"Extracting comments from {escape(pdf_path.name)}"):
        load_document(session, pdf_path)

    if verbose:
        for warning in ExtractionWarning.get_all():
            console.print(f"[muted]{escape(warning)}[/muted]")

    if session.error:
        console.print(f"[red]Error:[/red] {escape(session.error)}")
        raise typer.Exit(1)

    if session.take_advisory():
        console.print(f"[yellow]{NO_COMMENTS_MESSAGE}[/yellow]")

    if rows:
        session.select(parse_rows(rows, len(session.records)))

    return session


def _count_line(session: CommentSession) -> str:
    count = len(session.records)
    line = f"Found {count} comment{'s' if count != 1 else ''}"
    if not session.selection.is_all:
        line += f" ({len(session.selection.indices)} selected)"
    return line


@app.command()
def show(
    pdf_path: Path = typer.Argument(
        ...,
        help="Path to the PDF document",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    columns: Optional[str] = typer.Option(
        None,
        "--columns", "-c",
        help="Comma-separated columns to include (Page, Author, Modified, Comment)",
    ),
    rows: Optional[str] = typer.Option(None, "--rows", "-r", help="Rows to show, e.g. 1,3-5 (default: all)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show skipped annotations"),
) -> None:
    """List the comments of a PDF document."""
    prefs = load_preferences()
    projection = resolve_projection(columns, prefs)
    session = load_session(pdf_path, projection, rows, verbose)

    if not session.records:
        return

    console.print(f"[count]{_count_line(session)}[/count]")
    display_comments(session.records, session.projection, session.selection, out=console)


@app.command()
def save(
    pdf_path: Path = typer.Argument(
        ...,
        help="Path to the PDF document",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    fmt: SaveFormat = typer.Option(SaveFormat.csv, "--format", "-f", help="File format"),
    columns: Optional[str] = typer.Option(
        None,
        "--columns", "-c",
        help="Comma-separated columns to include (Page, Author, Modified, Comment)",
    ),
    rows: Optional[str] = typer.Option(None, "--rows", "-r", help="Rows to export, e.g. 1,3-5 (default: all)"),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir", "-o",
        help="Directory for the exported file (default: current directory)",
        file_okay=False,
    ),
) -> None:
    """Save comments to '<name>_comments.csv' or '.txt'."""
    prefs = load_preferences()
    projection = resolve_projection(columns, prefs)
    session = load_session(pdf_path, projection, rows)

    if not session.can_export:
        console.print("[yellow]No comments to export.[/yellow]")
        raise typer.Exit(0)

    if fmt == SaveFormat.csv:
        content = format_csv(session.records, session.selection, session.projection)
    else:
        content = format_text(session.records, session.selection, session.projection)

    if not content:
        console.print("[yellow]No comments to export.[/yellow]")
        raise typer.Exit(0)

    try:
        output_path = save_export(content, output_dir or Path.cwd(), session.source_file, fmt.value)
    except ExportSinkError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    exported = len(session.selected_records)
    console.print(f"[green]Exported {exported} comment{'s' if exported != 1 else ''} to:[/green] {output_path}")


@app.command()
def copy(
    pdf_path: Path = typer.Argument(
        ...,
        help="Path to the PDF document",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    fmt: CopyFormat = typer.Option(CopyFormat.text, "--format", "-f", help="Clipboard format"),
    columns: Optional[str] = typer.Option(
        None,
        "--columns", "-c",
        help="Comma-separated columns to include (Page, Author, Modified, Comment)",
    ),
    rows: Optional[str] = typer.Option(None, "--rows", "-r", help="Rows to export, e.g. 1,3-5 (default: all)"),
) -> None:
    """Copy comments to the clipboard as text or as a table."""
    prefs = load_preferences()
    projection = resolve_projection(columns, prefs)
    session = load_session(pdf_path, projection, rows)

    if not session.can_export:
        console.print("[yellow]No comments to copy.[/yellow]")
        raise typer.Exit(0)

    if fmt == CopyFormat.table:
        content = format_tsv(session.records, session.selection, session.projection)
    else:
        content = format_text(session.records, session.selection, session.projection)

    if not content:
        console.print("[yellow]No comments to copy.[/yellow]")
        raise typer.Exit(0)

    try:
        copy_to_clipboard(content)
    except ExportSinkError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        console.print(Panel(
            escape(content),
            title="Clipboard unavailable - copy manually",
            border_style="accent",
        ))
        raise typer.Exit(1)

    console.print("[green]Copied to clipboard![/green]")


@app.command()
def columns(
    enable: Optional[List[str]] = typer.Option(None, "--enable", "-e", help="Column to include by default"),
    disable: Optional[List[str]] = typer.Option(None, "--disable", "-d", help="Column to leave out by default"),
) -> None:
    """Show or change the default export columns."""
    prefs = load_preferences()
    projection = prefs.columns

    try:
        for name in enable or []:
            projection = projection.with_field(name, True)
        for name in disable or []:
            if name.strip().lower() == "comment":
                console.print("[yellow]The Comment column is always included.[/yellow]")
            projection = projection.with_field(name, False)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if enable or disable:
        prefs.columns = projection
        prefs.save(PREFERENCES_DIR)

    console.print(f"[accent]Export columns:[/accent] {', '.join(projection.enabled_fields)}")


@app.command()
def theme(
    dark: Optional[bool] = typer.Option(None, "--dark/--light", help="Use the dark or light colour theme"),
) -> None:
    """Show or set the colour theme."""
    prefs = load_preferences()

    if dark is not None:
        prefs.dark_mode = dark
        prefs.save(PREFERENCES_DIR)
        apply_theme(prefs.dark_mode)

    console.print(f"[accent]Theme:[/accent] {'dark' if prefs.dark_mode else 'light'}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
