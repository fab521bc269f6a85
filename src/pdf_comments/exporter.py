"""CSV, TSV and text export of extracted comments."""

from pathlib import Path
from typing import Optional, Sequence

import pandas as pd
import pyperclip
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .data_model import (
    COLUMN_FIELDS,
    ColumnProjection,
    CommentRecord,
    RowSelection,
)

console = Console()

EXPORT_EXTENSIONS = ("csv", "txt")

# Characters that force quoting of a non-comment CSV field
_CSV_SPECIAL = (",", '"', "\n", "\r")


class ExportSinkError(Exception):
    """The clipboard or file system rejected an export."""


def select_records(
    records: Sequence[CommentRecord], selection: Optional[RowSelection] = None
) -> list[CommentRecord]:
    """Return the records an export applies to, in original order."""
    return (selection or RowSelection()).apply(records)


def _ordered_fields(fields: Sequence[str]) -> list[str]:
    return [column for column in COLUMN_FIELDS if column in fields]


def _to_frame(records: Sequence[CommentRecord], fields: Sequence[str]) -> pd.DataFrame:
    """Project records onto the given columns as strings."""
    data = []
    for record in records:
        record_dict = record.to_dict()
        data.append({col: record_dict.get(col, '') for col in fields})

    df = pd.DataFrame(data, columns=list(fields))
    return df.fillna('').astype(str)


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _escape_csv_field(value: str, column: str) -> str:
    if not value:
        return ''
    # Comments are free-form text and always quoted
    if column == "Comment" or any(ch in value for ch in _CSV_SPECIAL):
        return _quote(value)
    return value


def render_csv(records: Sequence[CommentRecord], fields: Sequence[str]) -> str:
    """Render records as CSV with a header row."""
    fields = _ordered_fields(fields)
    if not records or not fields:
        return ""

    df = _to_frame(records, fields)
    rows = [",".join(fields)]
    for row in df.itertuples(index=False):
        rows.append(",".join(_escape_csv_field(value, col) for col, value in zip(fields, row)))
    return "\n".join(rows)


def render_tsv(records: Sequence[CommentRecord], fields: Sequence[str]) -> str:
    """Render records as tab-separated values for pasting into spreadsheets.

    Every field is quoted so embedded newlines survive the paste.
    """
    fields = _ordered_fields(fields)
    if not records or not fields:
        return ""

    df = _to_frame(records, fields)
    rows = ["\t".join(_quote(col) for col in fields)]
    for row in df.itertuples(index=False):
        rows.append("\t".join(_quote(value) for value in row))
    return "\n".join(rows)


def render_text(records: Sequence[CommentRecord], fields: Sequence[str]) -> str:
    """Render records as readable lines, e.g. 'P3, Alice - Looks good'."""
    fields = _ordered_fields(fields)
    if not records or not fields:
        return ""

    lines = []
    for record in records:
        parts = []
        if "Page" in fields:
            parts.append(f"P{record.page}")
        if "Author" in fields and record.author:
            parts.append(record.author)
        if "Modified" in fields and record.modified:
            parts.append(record.modified)
        prefix = ", ".join(parts)

        if "Comment" in fields:
            lines.append(f"{prefix} - {record.comment}" if prefix else record.comment)
        else:
            lines.append(prefix)

    return "\n\n".join(lines)


def format_csv(
    records: Sequence[CommentRecord],
    selection: Optional[RowSelection],
    projection: ColumnProjection,
) -> str:
    return render_csv(select_records(records, selection), projection.enabled_fields)


def format_tsv(
    records: Sequence[CommentRecord],
    selection: Optional[RowSelection],
    projection: ColumnProjection,
) -> str:
    return render_tsv(select_records(records, selection), projection.enabled_fields)


def format_text(
    records: Sequence[CommentRecord],
    selection: Optional[RowSelection],
    projection: ColumnProjection,
) -> str:
    return render_text(select_records(records, selection), projection.enabled_fields)


def export_filename(source_name: Optional[str], ext: str) -> str:
    """Name of the exported file: '<stem>_comments.<ext>'."""
    if ext not in EXPORT_EXTENSIONS:
        raise ValueError(f"Unsupported export extension '{ext}'")
    stem = Path(source_name).stem if source_name else ""
    return f"{stem or 'file'}_comments.{ext}"


def save_export(content: str, output_dir: Path, source_name: Optional[str], ext: str) -> Path:
    """Write exported content next to other exports and return its path.

    Raises:
        ValueError: If there is nothing to write.
        ExportSinkError: If the file can't be written.
    """
    if not content:
        raise ValueError("Nothing to export")

    output_path = Path(output_dir) / export_filename(source_name, ext)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ExportSinkError(f"Could not save {output_path}: {e}") from e

    return output_path


def copy_to_clipboard(text: str) -> None:
    """Put text on the system clipboard.

    Raises:
        ExportSinkError: If no clipboard is available or access is denied.
    """
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        raise ExportSinkError(f"Failed to copy to clipboard: {e}") from e


def display_comments(
    records: Sequence[CommentRecord],
    projection: ColumnProjection,
    selection: Optional[RowSelection] = None,
    out: Optional[Console] = None,
) -> None:
    """Display comments in a table with 1-based row numbers."""
    out = out or console
    selection = selection or RowSelection()

    table = Table(border_style="blue")
    table.add_column("#", style="dim", justify="right")
    if not selection.is_all:
        table.add_column("Sel", justify="center")
    for column in projection.enabled_fields:
        table.add_column(column, overflow="fold")

    for i, record in enumerate(records):
        row = [str(i + 1)]
        if not selection.is_all:
            row.append("[green]x[/green]" if i in selection.indices else "")
        row.extend(escape(record.value(column)) for column in projection.enabled_fields)
        table.add_row(*row)

    out.print(table)
