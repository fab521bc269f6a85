"""Shared fixtures: small PDFs with hand-written annotation dictionaries."""

from pathlib import Path

import pytest

from pdf_comments.pdf_reader import ExtractionWarning


def build_pdf(pages: list[list[str]]) -> bytes:
    """Build a PDF whose pages carry the given annotation dictionaries.

    Each page is a list of annotation bodies (the inside of '<< >>'). An entry
    starting with 'inline:' is written directly into the /Annots array.
    """
    objects: list[str] = ["<< /Type /Catalog /Pages 2 0 R >>", ""]
    page_numbers = []

    for annots in pages:
        objects.append("")
        page_num = len(objects)
        refs = []
        for body in annots:
            if body.startswith("inline:"):
                refs.append(body[len("inline:"):])
                continue
            objects.append(f"<< /Type /Annot /Rect [10 10 30 30] {body} >>")
            refs.append(f"{len(objects)} 0 R")
        objects[page_num - 1] = (
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 200 200] "
            f"/Annots [{' '.join(refs)}] >>"
        )
        page_numbers.append(page_num)

    kids = " ".join(f"{n} 0 R" for n in page_numbers)
    objects[1] = f"<< /Type /Pages /Kids [{kids}] /Count {len(page_numbers)} >>"

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, 1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n{body}\nendobj\n".encode("latin-1")

    xref_pos = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode("latin-1")
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("latin-1")
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_pos}\n%%EOF\n"
    ).encode("latin-1")
    return bytes(out)


@pytest.fixture
def pdf_bytes():
    """In-memory PDF builder, see build_pdf."""
    return build_pdf


@pytest.fixture
def make_pdf(tmp_path):
    """Write a PDF built from annotation bodies and return its path."""

    def _make(pages: list[list[str]], name: str = "review.pdf") -> Path:
        path = tmp_path / name
        path.write_bytes(build_pdf(pages))
        return path

    return _make


@pytest.fixture
def two_page_pdf(make_pdf):
    """Page 1: Alice's comment plus a highlight. Page 2: anonymous dated comment."""
    return make_pdf([
        [
            "/Subtype /Text /T (Alice) /Contents (Looks good)",
            "/Subtype /Highlight /T (Bob) /Contents (highlighted)",
        ],
        [
            "/Subtype /Text /Contents (Fix this) /M (D:20230101120000)",
        ],
    ])


@pytest.fixture(autouse=True)
def clear_warnings():
    ExtractionWarning.clear()
    yield
    ExtractionWarning.clear()
