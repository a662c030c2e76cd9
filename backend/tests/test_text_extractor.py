from formgen.services.text_extractor import TextExtractor


def test_extracts_lines_in_reading_order(make_pdf):
    pdf = make_pdf([["Applicant Information", "Full Name:", "Email   Address:"]])

    lines = TextExtractor().extract_lines(pdf)

    assert lines == ["Applicant Information", "Full Name:", "Email Address:"]


def test_reads_only_leading_pages(make_pdf):
    pdf = make_pdf([["First page"], ["Second page"], ["Third page"]])

    lines = TextExtractor().extract_lines(pdf, max_pages=2)

    assert lines == ["First page", "Second page"]


def test_unreadable_pdf_returns_empty_list():
    assert TextExtractor().extract_lines(b"%PDF-1.4 garbage without structure") == []
    assert TextExtractor().extract_lines(b"") == []
