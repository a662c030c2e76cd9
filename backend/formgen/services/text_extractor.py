"""
Text line extraction from PDFs without rasterization.
Provides the ground-truth text used to validate model-generated forms.
"""
import io
import logging
import re
from typing import List

import pdfplumber

logger = logging.getLogger(__name__)

_WS = re.compile(r'\s+')


class TextExtractor:
    """Extracts visible text lines from the embedded text layer of a PDF."""

    def extract_lines(self, pdf_bytes: bytes, max_pages: int = 3) -> List[str]:
        """
        Extract one string per visible text line, in reading order.

        Scanned PDFs without a text layer yield an empty list.

        Args:
            pdf_bytes: PDF file as bytes
            max_pages: Number of leading pages to read

        Returns:
            List of whitespace-normalized, non-empty lines
        """
        if not pdf_bytes or max_pages <= 0:
            return []

        lines: List[str] = []
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                for page in pdf.pages[:max_pages]:
                    text = page.extract_text() or ''
                    for raw in text.splitlines():
                        line = _WS.sub(' ', raw).strip()
                        if line:
                            lines.append(line)
        except Exception as e:
            logger.warning(f"PDF text extraction failed; validation will be skipped ({e})")
            return []

        logger.info(f"Extracted {len(lines)} text line(s) from first {max_pages} page(s)")
        return lines
