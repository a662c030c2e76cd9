import json

import pytest

from formgen.services.image_processor import ImageProcessor
from formgen.utils.pdf_handler import PageImage


@pytest.fixture
def processor(tmp_path):
    return ImageProcessor(upload_dir=str(tmp_path))


def test_white_image_is_blank(processor, white_png, large_white_png):
    assert processor.looks_blank(white_png)
    assert len(large_white_png) > ImageProcessor.TINY_IMAGE_BYTES
    assert processor.looks_blank(large_white_png)


def test_noise_image_is_not_blank(processor, noise_png):
    assert not processor.looks_blank(noise_png)
    assert not processor.looks_blank(noise_png, min_bytes=ImageProcessor.RASTER_MIN_BYTES)


def test_partially_dark_page_is_not_blank(processor, striped_png):
    assert not processor.looks_blank(striped_png)


def test_tiny_bytes_are_blank(processor):
    assert processor.looks_blank(b"")
    assert processor.looks_blank(b"\x89PNG" + b"\x00" * 100)


def test_images_under_page_floor_are_blank_by_default(processor, small_marked_png):
    assert ImageProcessor.TINY_IMAGE_BYTES < len(small_marked_png) < ImageProcessor.RASTER_MIN_BYTES
    assert processor.looks_blank(small_marked_png)
    assert not processor.looks_blank(small_marked_png, min_bytes=ImageProcessor.TINY_IMAGE_BYTES)


def test_small_uploads_count_as_blank_pages(processor, small_marked_png, noise_png):
    pages = [
        PageImage(1, small_marked_png, "image/png", "upload"),
        PageImage(2, noise_png, "image/png", "upload"),
    ]

    usable, blank = processor.split_blank_pages(pages)

    assert [p.page_number for p in usable] == [2]
    assert [p.page_number for p in blank] == [1]


def test_raster_floor_marks_small_pages_blank(processor, striped_png):
    assert processor.looks_blank(striped_png, min_bytes=len(striped_png) + 1)


def test_undecodable_image_is_kept(processor):
    assert not processor.looks_blank(b"not an image" * 3000)


def test_split_blank_pages_keeps_order(processor, noise_png, white_png, striped_png):
    pages = [
        PageImage(1, noise_png, "image/png", "upload"),
        PageImage(2, white_png, "image/png", "upload"),
        PageImage(3, striped_png, "image/png", "upload"),
    ]

    usable, blank = processor.split_blank_pages(pages)

    assert [p.page_number for p in usable] == [1, 3]
    assert [p.page_number for p in blank] == [2]


def test_dump_vision_pages_respects_limit(processor, tmp_path, noise_png):
    pages = [PageImage(n, noise_png, "image/png", "upload") for n in range(1, 5)]

    written = processor.dump_vision_pages(pages, max_pages=2)

    assert len(written) == 2
    assert all(path.parent == tmp_path / "forms" / "vision-debug" for path in written)
    assert written[0].name.endswith("_page_01.jpg")
    assert written[0].read_bytes().startswith(b"\xff\xd8")


def test_dump_docai_results_writes_json(processor, tmp_path):
    written = processor.dump_docai_results("tmpl-1", {"layout": {"a": 1}, "form": {"b": 2}})

    assert len(written) == 2
    assert all(path.parent == tmp_path / "forms" / "docai" / "tmpl-1" for path in written)
    layout = [path for path in written if path.name.endswith("_layout.json")][0]
    assert json.loads(layout.read_text(encoding="utf-8")) == {"a": 1}
