import pytest
from pdfminer.psparser import LIT

from pdf_comments.pdf_reader import Annotation, ExtractionWarning, PDFParseError, PDFReader


class TestAnnotation:
    def test_from_pdf_decodes_and_aliases(self):
        annot = Annotation.from_pdf({
            "Subtype": LIT("Text"),
            "T": b"Alice",
            "Contents": b"\xfe\xff\x00H\x00i",
            "M": b"D:20230101120000Z",
            "Rect": [0, 0, 10, 10],
        })
        assert annot.get_string("subtype") == "Text"
        assert annot.get_string("title") == "Alice"
        assert annot.get_string("contents") == "Hi"
        assert annot.get_string("modificationDate") == "D:20230101120000Z"
        assert annot.get("Rect") == [0, 0, 10, 10]

    def test_nested_values_depth_limited(self):
        annot = Annotation.from_pdf({"A": {"B": {"C": {"D": 1}}}})
        assert annot.get("A") == {"B": {"C": None}}

    def test_accessors_return_none(self):
        annot = Annotation({"contents": {"str": 5}, "title": ["x"]})
        assert annot.get_string("title") is None
        assert annot.get_string("missing") is None
        assert annot.get_nested("contents", "str") is None
        assert annot.get_nested("title", "str") is None
        assert annot.get("missing") is None


class TestPDFReader:
    def test_pages_and_annotations(self, pdf_bytes):
        data = pdf_bytes([
            ["/Subtype /Text /Contents (a)", "/Subtype /Link"],
            [],
        ])
        with PDFReader(data, name="mem.pdf") as reader:
            assert reader.total_pages == 2
            pages = list(reader.iter_annotations())

        assert [page for page, _ in pages] == [1, 2]
        assert [a.get_string("subtype") for a in pages[0][1]] == ["Text", "Link"]
        assert pages[1][1] == []

    def test_page_out_of_range(self, pdf_bytes):
        with PDFReader(pdf_bytes([[]])) as reader:
            with pytest.raises(ValueError):
                reader.get_annotations(2)

    def test_requires_context_manager(self, pdf_bytes):
        reader = PDFReader(pdf_bytes([[]]))
        with pytest.raises(RuntimeError):
            reader.total_pages

    def test_unreadable_entry_recorded(self, pdf_bytes):
        data = pdf_bytes([["inline:42", "/Subtype /Text /Contents (ok)"]])
        with PDFReader(data) as reader:
            annotations = reader.get_annotations(1)

        assert len(annotations) == 1
        assert any("Page 1" in w for w in ExtractionWarning.get_all())

    def test_open_failure(self):
        with pytest.raises(PDFParseError):
            with PDFReader(b"%PDF-1.4 truncated"):
                pass

    def test_name_from_path(self, make_pdf):
        path = make_pdf([[]], name="named.pdf")
        assert PDFReader(path).name == "named.pdf"
