import pytest
from pdf2image.exceptions import PDFInfoNotInstalledError

from formgen.errors import PageCountExceeded, RasterizationUnavailable
from formgen.utils import pdf_handler
from formgen.utils.pdf_handler import PDFHandler


def test_estimate_counts_page_objects(make_pdf):
    """Each /Type /Page object counts once; the page tree does not."""
    pdf = make_pdf([["Name:"], ["Email:"], ["Signature:"]])
    assert PDFHandler.estimate_page_count(pdf) == 3


def test_estimate_single_page_pdf(make_pdf):
    assert PDFHandler.estimate_page_count(make_pdf([["Name:"]])) == 1


def test_estimate_ignores_spacing_between_type_and_page():
    pdf = b"%PDF-1.7\n<</Type/Page>>\n<< /Type  /Page >>\n<</Type/Pages>>\n%%EOF"
    assert PDFHandler.estimate_page_count(pdf) == 2


def test_estimate_unknown_for_bytes_without_pages():
    assert PDFHandler.estimate_page_count(b"%PDF-1.4\n%%EOF") is None
    assert PDFHandler.estimate_page_count(b"") is None


def test_guard_rejects_oversized_pdf():
    """29 page objects and one page tree estimate to 29 pages."""
    pdf = b"%PDF-1.7\n" + b"<< /Type /Page >>\n" * 29 + b"<< /Type /Pages >>\n%%EOF"

    with pytest.raises(PageCountExceeded) as excinfo:
        PDFHandler.guard_page_count(pdf, max_pages=25)

    assert excinfo.value.estimated == 29
    assert excinfo.value.max_pages == 25
    assert excinfo.value.status_code == 400
    assert "~29 pages" in str(excinfo.value)
    assert "<= 25 pages" in str(excinfo.value)


def test_guard_allows_pdf_at_limit(make_pdf):
    pdf = make_pdf([["Page"]] * 2)
    assert PDFHandler.guard_page_count(pdf, max_pages=2) == 2


def test_guard_allows_unknown_estimate():
    assert PDFHandler.guard_page_count(b"%PDF-1.4 not really", max_pages=1) is None


def test_rasterize_without_poppler_raises_unavailable(monkeypatch, make_pdf):
    def missing_poppler(*args, **kwargs):
        raise PDFInfoNotInstalledError("Unable to get page count. Is poppler installed and in PATH?")

    monkeypatch.setattr(pdf_handler, "convert_from_bytes", missing_poppler)

    with pytest.raises(RasterizationUnavailable) as excinfo:
        PDFHandler.rasterize(make_pdf([["Name:"]]))

    assert "poppler" in excinfo.value.reason
    assert "screenshots" in str(excinfo.value)


def test_rasterize_numbers_pages_from_one(monkeypatch):
    from PIL import Image

    def fake_convert(pdf_bytes, dpi, fmt):
        assert dpi == 150
        return [Image.new("RGB", (20, 20), "white"), Image.new("RGBA", (20, 20), "black")]

    monkeypatch.setattr(pdf_handler, "convert_from_bytes", fake_convert)

    pages = PDFHandler.rasterize(b"%PDF-1.4", dpi=150)

    assert [page.page_number for page in pages] == [1, 2]
    assert all(page.mime_type == "image/jpeg" and page.source == "raster" for page in pages)
    assert all(page.data.startswith(b"\xff\xd8") for page in pages)


def test_rasterize_empty_input():
    with pytest.raises(RasterizationUnavailable):
        PDFHandler.rasterize(b"")
