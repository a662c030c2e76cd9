"""
Image processing service for page images.
Detects visually empty pages and writes optional debug dumps of what was sent upstream.
"""
import logging
import json
import time
from typing import List, Dict, Any, Optional
from io import BytesIO
from pathlib import Path
import numpy as np
from PIL import Image, UnidentifiedImageError

from formgen.config import Config
from formgen.utils.pdf_handler import PageImage, PDFHandler

logger = logging.getLogger(__name__)


class ImageProcessor:
    """Service for blank-page detection and debug dumps of page images."""

    # Anything smaller cannot hold a meaningful page
    TINY_IMAGE_BYTES = 2_048
    # A page image below this size is empty (a full page at ~220 DPI is far larger)
    RASTER_MIN_BYTES = 25_000

    SAMPLE_CANVAS = 200
    SAMPLE_GRID = 20
    WHITE_THRESHOLD = 245
    BLANK_RATIO = 0.985

    def __init__(self, upload_dir: Optional[str] = None):
        """
        Initialize image processor.

        Args:
            upload_dir: Base directory for debug dumps (defaults to Config.UPLOAD_DIR)
        """
        self.upload_dir = Path(upload_dir or Config.UPLOAD_DIR)

    def looks_blank(self, image_bytes: bytes, min_bytes: int = RASTER_MIN_BYTES) -> bool:
        """
        Decide whether an encoded image is visually empty.

        Args:
            image_bytes: Encoded PNG/JPEG bytes
            min_bytes: Images smaller than this are blank without decoding

        Returns:
            True if the image is blank. Undecodable images return False.
        """
        if not image_bytes or len(image_bytes) < self.TINY_IMAGE_BYTES:
            return True
        if len(image_bytes) < min_bytes:
            return True

        try:
            with Image.open(BytesIO(image_bytes)) as image:
                canvas = image.convert('RGB')
                canvas.thumbnail((self.SAMPLE_CANVAS, self.SAMPLE_CANVAS))
                pixels = np.asarray(canvas)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.warning(f"Could not decode image for blank check ({e}); keeping it")
            return False

        height, width = pixels.shape[:2]
        if height == 0 or width == 0:
            return True

        rows = np.linspace(0, height - 1, num=min(self.SAMPLE_GRID, height)).astype(int)
        cols = np.linspace(0, width - 1, num=min(self.SAMPLE_GRID, width)).astype(int)
        samples = pixels[np.ix_(rows, cols)]
        near_white = np.all(samples > self.WHITE_THRESHOLD, axis=-1)
        ratio = float(near_white.mean())
        return ratio > self.BLANK_RATIO

    def split_blank_pages(self, pages: List[PageImage], min_bytes: int = RASTER_MIN_BYTES):
        """
        Partition pages into (usable, blank).

        Returns:
            Tuple of (usable pages, blank pages), each in the original order
        """
        usable, blank = [], []
        for page in pages:
            if self.looks_blank(page.data, min_bytes=min_bytes):
                blank.append(page)
            else:
                usable.append(page)
        if blank:
            logger.info(
                f"Skipping {len(blank)} blank {blank[0].source} image(s): "
                f"pages {[p.page_number for p in blank]}"
            )
        return usable, blank

    def dump_vision_pages(self, pages: List[PageImage], max_pages: Optional[int] = None) -> List[Path]:
        """
        Write the images sent to the vision model as JPEG files.

        Files go to <UPLOAD_DIR>/forms/vision-debug/<epoch_ms>_page_<NN>.jpg.
        Failures are logged and never interrupt the conversion.
        """
        limit = Config.VISION_DEBUG_DUMP_MAX if max_pages is None else max_pages
        out_dir = self.upload_dir / 'forms' / 'vision-debug'
        stamp = int(time.time() * 1000)
        written = []
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            for page in pages[:max(0, limit)]:
                path = out_dir / f"{stamp}_page_{page.page_number:02d}.jpg"
                path.write_bytes(self._as_jpeg(page))
                written.append(path)
        except OSError as e:
            logger.warning(f"Vision debug dump failed: {e}")
        if written:
            logger.info(f"Wrote {len(written)} vision debug image(s) to {out_dir}")
        return written

    def dump_docai_results(self, template_id: str, results: Dict[str, Any]) -> List[Path]:
        """
        Write raw Document AI outputs as JSON for debugging and reprocessing.

        Args:
            template_id: Form/template identifier, used as directory name
            results: Mapping of suffix (e.g. 'layout', 'form') to raw result
        """
        out_dir = self.upload_dir / 'forms' / 'docai' / str(template_id or 'unknown')
        stamp = int(time.time() * 1000)
        written = []
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            for suffix, payload in results.items():
                path = out_dir / f"{stamp}_{suffix}.json"
                path.write_text(json.dumps(payload, indent=2), encoding='utf-8')
                written.append(path)
        except (OSError, TypeError) as e:
            logger.warning(f"Document AI debug dump failed: {e}")
        return written

    @staticmethod
    def _as_jpeg(page: PageImage) -> bytes:
        if page.mime_type == 'image/jpeg':
            return page.data
        try:
            with Image.open(BytesIO(page.data)) as image:
                return PDFHandler.image_to_bytes(image, format='JPEG')
        except (UnidentifiedImageError, OSError):
            return page.data
