"""
PDF handling utilities for in-memory processing.
Estimates page counts from raw bytes and renders pages to images without saving to disk.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional, List
from io import BytesIO
from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError
from PIL import Image

from formgen.errors import PageCountExceeded, RasterizationUnavailable

logger = logging.getLogger(__name__)

# Also matches "/Type /Pages"; page trees are subtracted afterwards.
_PAGE_PATTERN = re.compile(r'/Type\s*/Page')
_PAGES_PATTERN = re.compile(r'/Type\s*/Pages\b')


@dataclass
class PageImage:
    """A single page image sent to Document AI or the vision model."""
    page_number: int  # 1-based, dense within one batch
    data: bytes
    mime_type: str = 'image/jpeg'  # image/jpeg | image/png
    source: str = 'raster'  # raster | upload

    @property
    def size(self) -> int:
        return len(self.data)


class PDFHandler:
    """Handler for PDF processing in memory."""

    @staticmethod
    def estimate_page_count(pdf_bytes: bytes) -> Optional[int]:
        """
        Estimate the page count by counting page objects in the raw bytes.

        This is a cheap pre-flight heuristic. It may under- or over-count and
        must only be used to reject pathologically large uploads.

        Args:
            pdf_bytes: PDF file as bytes

        Returns:
            Estimated page count, or None if no page objects were found
        """
        if not pdf_bytes:
            return None
        text = pdf_bytes.decode('latin-1')
        pages = len(_PAGE_PATTERN.findall(text))
        page_trees = len(_PAGES_PATTERN.findall(text))
        estimate = max(0, pages - page_trees)
        return estimate or None

    @staticmethod
    def guard_page_count(pdf_bytes: bytes, max_pages: int) -> Optional[int]:
        """
        Reject PDFs whose estimated page count exceeds max_pages.

        Args:
            pdf_bytes: PDF file as bytes
            max_pages: Maximum number of pages allowed

        Returns:
            The estimate (None when unknown)

        Raises:
            PageCountExceeded: If the estimate is larger than max_pages
        """
        estimated = PDFHandler.estimate_page_count(pdf_bytes)
        if estimated and estimated > max_pages:
            logger.warning(f"PDF rejected: ~{estimated} pages exceeds limit of {max_pages}")
            raise PageCountExceeded(estimated=estimated, max_pages=max_pages)
        return estimated

    @staticmethod
    def rasterize(pdf_bytes: bytes, dpi: int = 220, quality: int = 85) -> List[PageImage]:
        """
        Render every PDF page to a JPEG image.

        Args:
            pdf_bytes: PDF file as bytes
            dpi: Render resolution
            quality: JPEG quality

        Returns:
            One PageImage per page, numbered from 1

        Raises:
            RasterizationUnavailable: If poppler is missing or the PDF cannot be rendered
        """
        if not pdf_bytes:
            raise RasterizationUnavailable("empty PDF")
        try:
            images = convert_from_bytes(pdf_bytes, dpi=dpi, fmt='jpeg')
        except PDFInfoNotInstalledError as e:
            raise RasterizationUnavailable("poppler is not installed") from e
        except (PDFPageCountError, PDFSyntaxError) as e:
            raise RasterizationUnavailable(f"renderer could not open the PDF ({e})") from e
        except OSError as e:
            raise RasterizationUnavailable(f"renderer failed ({e})") from e

        if not images:
            raise RasterizationUnavailable("renderer produced no pages")

        pages = [
            PageImage(
                page_number=index,
                data=PDFHandler.image_to_bytes(image, format='JPEG', quality=quality),
                mime_type='image/jpeg',
                source='raster'
            )
            for index, image in enumerate(images, start=1)
        ]
        logger.info(f"Rasterized PDF to {len(pages)} page image(s) at {dpi} DPI")
        return pages

    @staticmethod
    def image_to_bytes(image: Image.Image, format: str = 'PNG', quality: int = 85) -> bytes:
        """
        Convert PIL Image to bytes.

        Args:
            image: PIL Image object
            format: Image format (PNG, JPEG, etc.)
            quality: Quality for lossy formats

        Returns:
            Image as bytes
        """
        buffer = BytesIO()
        if format.upper() in ('JPEG', 'JPG'):
            if image.mode not in ('RGB', 'L'):
                image = image.convert('RGB')
            image.save(buffer, format='JPEG', quality=quality)
        else:
            image.save(buffer, format=format)
        return buffer.getvalue()
