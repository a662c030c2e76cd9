import io
from typing import List

import numpy as np
import pytest
from PIL import Image


def _pdf_string(text: str) -> bytes:
    escaped = text.replace('\\', '\\\\').replace('(', '\\(').replace(')', '\\)')
    return b'(' + escaped.encode('latin-1') + b')'


def build_pdf(pages: List[List[str]]) -> bytes:
    """Build a minimal text PDF, one list of lines per page, with a valid xref table."""
    bodies = {
        1: b"<< /Type /Catalog /Pages 2 0 R >>",
        3: b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    }
    kids = []
    for index, lines in enumerate(pages):
        page_num = 4 + 2 * index
        kids.append(b"%d 0 R" % page_num)
        stream = b"BT /F1 12 Tf 14 TL 72 720 Td"
        for line_index, line in enumerate(lines):
            if line_index:
                stream += b" T*"
            stream += b" " + _pdf_string(line) + b" Tj"
        stream += b" ET"
        bodies[page_num] = (
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            b"/Resources << /Font << /F1 3 0 R >> >> /Contents %d 0 R >>" % (page_num + 1)
        )
        bodies[page_num + 1] = b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream"
    bodies[2] = b"<< /Type /Pages /Kids [" + b" ".join(kids) + b"] /Count %d >>" % len(pages)

    out = bytearray(b"%PDF-1.4\n")
    offsets = {}
    for num in sorted(bodies):
        offsets[num] = len(out)
        out += b"%d 0 obj\n" % num + bodies[num] + b"\nendobj\n"

    xref_offset = len(out)
    size = max(bodies) + 1
    out += b"xref\n0 %d\n" % size
    out += b"0000000000 65535 f \n"
    for num in range(1, size):
        out += b"%010d 00000 n \n" % offsets[num]
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (size, xref_offset)
    return bytes(out)


def encode_png(pixels: np.ndarray, compress_level: int = 6) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(pixels.astype(np.uint8), mode='RGB').save(buffer, format='PNG', compress_level=compress_level)
    return buffer.getvalue()


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def noise_png():
    """A 400x400 random-noise page: large and clearly not blank."""
    rng = np.random.default_rng(7)
    return encode_png(rng.integers(0, 256, size=(400, 400, 3)))


@pytest.fixture
def white_png():
    """A small, fully white image (well under the tiny-image floor)."""
    return encode_png(np.full((64, 64, 3), 255))


@pytest.fixture
def large_white_png():
    """A fully white image stored uncompressed so it clears every size floor."""
    return encode_png(np.full((400, 400, 3), 255), compress_level=0)


@pytest.fixture
def striped_png():
    """A white page whose left fifth is black, stored uncompressed."""
    pixels = np.full((400, 400, 3), 255)
    pixels[:, :80, :] = 0
    return encode_png(pixels, compress_level=0)


@pytest.fixture
def small_marked_png():
    """A 120x120 image whose top third is noise: between the 2 KB and 25 KB floors."""
    rng = np.random.default_rng(11)
    pixels = np.full((120, 120, 3), 255)
    pixels[:40, :, :] = rng.integers(0, 256, size=(40, 120, 3))
    return encode_png(pixels)
