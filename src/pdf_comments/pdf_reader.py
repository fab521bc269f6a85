"""PDF annotation access using pdfplumber and pdfminer.six."""

from io import BytesIO
from pathlib import Path
import sys
import threading
from typing import Any, Iterator, Mapping, Optional, Union

import pdfplumber
from pdfminer.pdftypes import PDFObjRef, resolve1
from pdfminer.psparser import PSLiteral, literal_name
from pdfminer.utils import decode_text

# Nesting depth kept when converting annotation values (Popup -> Parent -> ... cycles)
MAX_VALUE_DEPTH = 2

# Friendly keys added next to the raw PDF dictionary keys
ANNOTATION_ALIASES = {
    "Subtype": "subtype",
    "Contents": "contents",
    "T": "title",
    "M": "modificationDate",
}


class PDFParseError(Exception):
    """The document could not be opened or read at all."""


class ExtractionWarning:
    """Tracks extraction warnings for diagnostic purposes.

    Thread-safe implementation using a lock for concurrent access.
    """
    _warnings: list[str] = []
    _lock = threading.Lock()

    @classmethod
    def add(cls, message: str):
        """Add a warning message (thread-safe)."""
        with cls._lock:
            cls._warnings.append(message)

    @classmethod
    def get_all(cls) -> list[str]:
        """Get all warning messages (thread-safe)."""
        with cls._lock:
            return cls._warnings.copy()

    @classmethod
    def clear(cls):
        """Clear all warnings (thread-safe)."""
        with cls._lock:
            cls._warnings.clear()


def _to_python(value: Any, depth: int = 0) -> Any:
    """Convert a pdfminer object into plain Python values.

    Only the annotation's own values are dereferenced; references nested
    deeper (Popup, Parent, P) are dropped.
    """
    if isinstance(value, PDFObjRef):
        if depth > 0:
            return None
        return _to_python(resolve1(value), depth + 1)
    if isinstance(value, PSLiteral):
        return literal_name(value)
    if isinstance(value, bytes):
        return decode_text(value)
    if isinstance(value, dict):
        if depth >= MAX_VALUE_DEPTH:
            return None
        return {str(k): _to_python(v, depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        if depth >= MAX_VALUE_DEPTH:
            return None
        return [_to_python(v, depth + 1) for v in value]
    return value


class Annotation:
    """Loosely-typed view of one annotation dictionary.

    Producers disagree on which keys they fill, so every accessor returns
    None for a missing or wrongly-typed value instead of raising.
    """

    def __init__(self, data: Mapping[str, Any]):
        self._data = dict(data)

    @classmethod
    def from_pdf(cls, raw: Mapping) -> "Annotation":
        """Build from a raw pdfminer annotation dictionary."""
        data = {str(k): _to_python(v) for k, v in raw.items()}
        for pdf_key, alias in ANNOTATION_ALIASES.items():
            if pdf_key in data and alias not in data:
                data[alias] = data[pdf_key]
        return cls(data)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def get_string(self, key: str) -> Optional[str]:
        value = self._data.get(key)
        return value if isinstance(value, str) else None

    def get_nested(self, key: str, subkey: str) -> Optional[str]:
        container = self._data.get(key)
        if not isinstance(container, Mapping):
            return None
        value = container.get(subkey)
        return value if isinstance(value, str) else None

    def keys(self):
        return self._data.keys()

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"Annotation({self._data!r})"


class PDFReader:
    """Handles opening a PDF and reading its annotations page by page."""

    def __init__(self, source: Union[Path, str, bytes], name: Optional[str] = None):
        if isinstance(source, bytes):
            self.pdf_path: Optional[Path] = None
            self._data: Optional[bytes] = source
        else:
            self.pdf_path = Path(source)
            self._data = None
        self.name = name if name is not None else (self.pdf_path.name if self.pdf_path else "")
        self._pdf: Optional[pdfplumber.PDF] = None

    def __enter__(self) -> "PDFReader":
        try:
            if self._data is not None:
                self._pdf = pdfplumber.open(BytesIO(self._data))
            else:
                self._pdf = pdfplumber.open(self.pdf_path)
        except Exception as e:
            raise PDFParseError(f"Failed to open PDF {self.name or 'document'}: {e}") from e
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._pdf:
            self._pdf.close()

    @property
    def total_pages(self) -> int:
        """Return total number of pages in the PDF."""
        if not self._pdf:
            raise RuntimeError("PDF not opened. Use context manager.")
        try:
            return len(self._pdf.pages)
        except Exception as e:
            raise PDFParseError(f"Failed to read page tree: {e}") from e

    def get_annotations(self, page_number: int) -> list[Annotation]:
        """Return the annotations of a page (1-indexed) in document order.

        An annotation that cannot be decoded is skipped with a warning.
        """
        if not self._pdf:
            raise RuntimeError("PDF not opened. Use context manager.")

        if page_number < 1 or page_number > self.total_pages:
            raise ValueError(f"Page {page_number} out of range (1-{self.total_pages})")

        try:
            page = self._pdf.pages[page_number - 1]
            raw_annots = resolve1(page.page_obj.annots) or []
        except Exception as e:
            raise PDFParseError(f"Failed to read annotations on page {page_number}: {e}") from e

        if not isinstance(raw_annots, list):
            ExtractionWarning.add(f"Page {page_number}: /Annots is not an array, ignored")
            return []

        annotations = []
        for index, ref in enumerate(raw_annots):
            try:
                raw = resolve1(ref)
                if not isinstance(raw, dict):
                    raise TypeError(f"expected a dictionary, got {type(raw).__name__}")
                annotations.append(Annotation.from_pdf(raw))
            except Exception as e:
                warning_msg = f"Page {page_number}: skipped annotation {index + 1}: {e}"
                print(f"Warning: {warning_msg}", file=sys.stderr)
                ExtractionWarning.add(warning_msg)

        return annotations

    def iter_annotations(self) -> Iterator[tuple[int, list[Annotation]]]:
        """Iterate (page_number, annotations) in page order."""
        for page_num in range(1, self.total_pages + 1):
            yield page_num, self.get_annotations(page_num)
