"""PDF Comments - Extract comment annotations from PDF documents."""

from .data_model import (
    CommentRecord,
    ColumnProjection,
    RowSelection,
    CommentSession,
    ExtractionResult,
    Preferences,
)
from .pdf_reader import PDFReader, Annotation, PDFParseError
from .extractor import extract, extract_comments, load_document, normalize_pdf_date
from .exporter import (
    ExportSinkError,
    format_csv,
    format_tsv,
    format_text,
    export_filename,
    save_export,
    copy_to_clipboard,
)

__version__ = "0.1.0"

__all__ = [
    "CommentRecord",
    "ColumnProjection",
    "RowSelection",
    "CommentSession",
    "ExtractionResult",
    "Preferences",
    "PDFReader",
    "Annotation",
    "PDFParseError",
    "extract",
    "extract_comments",
    "load_document",
    "normalize_pdf_date",
    "ExportSinkError",
    "format_csv",
    "format_tsv",
    "format_text",
    "export_filename",
    "save_export",
    "copy_to_clipboard",
]
