"""Tests for raster image downscaling."""

import io

from PIL import Image

from stockmeta.config import DownscaleConfig
from stockmeta.core.models import SourceFile
from stockmeta.tasks.downscale import downscale_image, target_dimensions


class TestTargetDimensions:
    """Tests for the target size computation."""

    def test_large_image_is_capped(self):
        assert target_dimensions(3000, 3000, DownscaleConfig()) == (200, 200)

    def test_min_dimension_floor(self):
        assert target_dimensions(2000, 1000, DownscaleConfig()) == (200, 200)

    def test_small_image_keeps_its_size(self):
        assert target_dimensions(50, 40, DownscaleConfig()) == (50, 40)

    def test_one_small_side(self):
        assert target_dimensions(1000, 150, DownscaleConfig()) == (200, 150)


class TestDownscaleImage:
    """Tests for downscale_image."""

    def test_reduces_large_png_to_jpeg(self, make_png):
        source = make_png("photo.png", width=1600, height=1200)
        reduced = downscale_image(source)

        assert reduced.filename == "photo.png"
        assert reduced.mime_type == "image/jpeg"
        with Image.open(io.BytesIO(reduced.content)) as image:
            assert image.format == "JPEG"
            assert image.size == (200, 200)

    def test_transparent_png_is_flattened(self, make_png):
        source = make_png("logo.png", width=300, height=300, color=(0, 0, 0, 0), mode="RGBA")
        reduced = downscale_image(source)
        with Image.open(io.BytesIO(reduced.content)) as image:
            assert image.mode == "RGB"
            assert image.getpixel((10, 10))[0] > 240

    def test_corrupt_image_returns_original(self):
        source = SourceFile(filename="broken.png", content=b"\x89PNG not really", mime_type="image/png")
        assert downscale_image(source) is source

    def test_empty_image_returns_original(self):
        source = SourceFile(filename="empty.jpg", content=b"", mime_type="image/jpeg")
        assert downscale_image(source) is source

    def test_svg_is_left_alone(self):
        source = SourceFile(filename="a.svg", content=b"<svg/>", mime_type="image/svg+xml")
        assert downscale_image(source) is source

    def test_non_image_is_left_alone(self):
        source = SourceFile(filename="a.mp4", content=b"data", mime_type="video/mp4")
        assert downscale_image(source) is source
