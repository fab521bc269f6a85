"""Extraction of text comments from PDF annotations."""

from datetime import datetime, timezone
import json
import re
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

import pandas as pd

from .data_model import CommentRecord, CommentSession, ExtractionResult
from .pdf_reader import Annotation, PDFParseError, PDFReader

# /Subtype of sticky-note comments
TEXT_SUBTYPE = "Text"

# D:YYYY[MM[DD[HH[mm[SS]]]]], timezone suffix ignored
PDF_DATE_PATTERN = re.compile(
    r"D:(\d{4})(?:(\d{2})(?:(\d{2})(?:(\d{2})(?:(\d{2})(\d{2})?)?)?)?)?"
)

# Missing month and day default to 1, missing time parts to 0
_PDF_DATE_DEFAULTS = (None, 1, 1, 0, 0, 0)

OUTPUT_DATE_FORMAT = "%Y-%m-%d %H:%M:%SZ"

FieldExtractor = Callable[[Annotation], Optional[str]]


def _string(key: str) -> FieldExtractor:
    return lambda annot: annot.get_string(key)


def _nested(key: str, subkey: str) -> FieldExtractor:
    return lambda annot: annot.get_nested(key, subkey)


def _joined_list(key: str) -> FieldExtractor:
    def extract(annot: Annotation) -> Optional[str]:
        value = annot.get(key)
        if not isinstance(value, list):
            return None
        return " ".join(str(part) for part in value if part is not None)
    return extract


def _json_object(key: str) -> FieldExtractor:
    def extract(annot: Annotation) -> Optional[str]:
        value = annot.get(key)
        if not isinstance(value, dict):
            return None
        try:
            return json.dumps(value, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return None
    return extract


# Tried in order, first non-empty string wins
COMMENT_CHAIN: tuple[FieldExtractor, ...] = (
    _string("contents"),
    _nested("contents", "str"),
    _nested("contents", "text"),
    _joined_list("contents"),
    _json_object("contents"),
    _string("contentsObj"),
    _nested("contentsObj", "str"),
    _json_object("contentsObj"),
)

AUTHOR_CHAIN: tuple[FieldExtractor, ...] = (
    _nested("titleObj", "str"),
    _string("title"),
    _string("T"),
    _nested("T", "str"),
    _string("user"),
    _string("author"),
    _string("userName"),
)

SUBTYPE_CHAIN: tuple[FieldExtractor, ...] = (
    _string("subtype"),
    _string("annotationType"),
)

DATE_CHAIN: tuple[FieldExtractor, ...] = (
    _string("modificationDate"),
    _string("modDate"),
    _string("modified"),
)


def first_match(annot: Annotation, chain: Sequence[FieldExtractor]) -> str:
    """Run the extractors in order and return the first non-empty result."""
    for extract in chain:
        value = extract(annot)
        if value:
            return value
    return ""


def normalize_pdf_date(raw: Optional[str]) -> str:
    """Convert an annotation timestamp to 'YYYY-MM-DD HH:MM:SSZ' (UTC).

    PDF dates (D:YYYYMMDDHHmmSS...) are read as UTC with any offset suffix
    ignored; trailing parts may be omitted. Other strings go through pandas'
    date parser, naive values being taken as UTC. Strings without digits
    ('now', 'today') and anything unparseable give an empty string.
    """
    if not raw or not raw.strip():
        return ""

    match = PDF_DATE_PATTERN.search(raw)
    if match:
        parts = [
            int(part) if part is not None else default
            for part, default in zip(match.groups(), _PDF_DATE_DEFAULTS)
        ]
        try:
            parsed = datetime(*parts, tzinfo=timezone.utc)
        except ValueError:
            return ""
        return parsed.strftime(OUTPUT_DATE_FORMAT)

    text = raw.strip()
    # pandas resolves relative words against the clock
    if not re.search(r"\d", text):
        return ""

    try:
        parsed = pd.to_datetime(text, utc=True)
    except (ValueError, TypeError, OverflowError):
        return ""
    if pd.isna(parsed):
        return ""
    return parsed.strftime(OUTPUT_DATE_FORMAT)


def annotation_to_record(annot: Annotation, page_number: int) -> Optional[CommentRecord]:
    """Build a record from one annotation, or None if it isn't a text comment."""
    if first_match(annot, SUBTYPE_CHAIN) != TEXT_SUBTYPE:
        return None

    comment = first_match(annot, COMMENT_CHAIN).strip()
    if not comment:
        return None

    return CommentRecord(
        page=page_number,
        author=first_match(annot, AUTHOR_CHAIN),
        comment=comment,
        modified=normalize_pdf_date(first_match(annot, DATE_CHAIN)),
    )


def extract(reader: PDFReader) -> ExtractionResult:
    """Collect the text comments of an opened document in page order."""
    records = []
    for page_number, annotations in reader.iter_annotations():
        for annot in annotations:
            record = annotation_to_record(annot, page_number)
            if record is not None:
                records.append(record)
    return ExtractionResult(records=tuple(records), warning=not records)


def extract_comments(source: Union[Path, str, bytes], name: Optional[str] = None) -> ExtractionResult:
    """Open a PDF (path or bytes) and extract its comments.

    Raises:
        PDFParseError: If the document can't be opened or read.
    """
    with PDFReader(source, name=name) as reader:
        return extract(reader)


def load_document(
    session: CommentSession,
    source: Union[Path, str, bytes],
    name: Optional[str] = None,
) -> CommentSession:
    """Load a document into the session, replacing its records.

    A parse failure is stored on the session rather than raised.
    """
    if name is None:
        name = "" if isinstance(source, bytes) else Path(source).name

    session.begin_load(name)
    try:
        result = extract_comments(source, name=name)
    except PDFParseError as e:
        session.fail_load(str(e))
    else:
        session.finish_load(result)
    return session
