"""
Shrinks raster images before upload.

The model only needs a small preview to describe an image; uploading the
original wastes bandwidth and quota. `downscale_image` never raises: on any
failure the original file is returned unchanged.
"""
import io
import logging
from typing import Optional, Tuple

from PIL import Image

from stockmeta.config import DownscaleConfig
from stockmeta.core.models import SourceFile

logger = logging.getLogger(__name__)

OUTPUT_MIME_TYPE = "image/jpeg"


def target_dimensions(width: int, height: int, config: DownscaleConfig) -> Tuple[int, int]:
    """
    About `scale` of the original width, capped at `max_dimension`. Images of at
    least `min_dimension` on both sides never go below it; smaller images are
    capped at their own size.
    """
    new_width = min(round(width * config.scale), config.max_dimension)
    new_height = round(height * (new_width / width))

    if width >= config.min_dimension and height >= config.min_dimension:
        new_width = max(new_width, config.min_dimension)
        new_height = max(new_height, config.min_dimension)
    else:
        new_width = min(width, config.min_dimension)
        new_height = min(height, config.min_dimension)
    return max(new_width, 1), max(new_height, 1)


def _encode_jpeg(image: Image.Image, size: Tuple[int, int], quality: int) -> bytes:
    resampling = getattr(Image, "Resampling", Image).BILINEAR
    resized = image.resize(size, resampling)
    buffer = io.BytesIO()
    resized.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def _to_rgb(image: Image.Image) -> Image.Image:
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return image.convert("RGB")


def _should_skip(source: SourceFile) -> bool:
    mime_type = (source.mime_type or "").lower()
    return not mime_type.startswith("image/") or "svg" in mime_type


def downscale_image(source: SourceFile, config: Optional[DownscaleConfig] = None) -> SourceFile:
    config = config or DownscaleConfig()
    if _should_skip(source):
        return source

    try:
        with Image.open(io.BytesIO(source.content)) as opened:
            image = _to_rgb(opened)
        width, height = image.size
        new_size = target_dimensions(width, height, config)
        logger.debug(f"Reducing image dimensions: {width}x{height} -> {new_size[0]}x{new_size[1]}")

        first_pass = _encode_jpeg(image, new_size, config.quality)
        best = first_pass

        if len(first_pass) > config.target_kb * 1024:
            logger.debug(
                f"{source.filename} still {len(first_pass) / 1024:.2f} KB, applying a second pass"
            )
            smaller_size = (
                max(round(new_size[0] * config.second_pass_scale), 1),
                max(round(new_size[1] * config.second_pass_scale), 1),
            )
            second_pass = _encode_jpeg(image, smaller_size, config.second_pass_quality)
            if len(second_pass) < len(first_pass):
                best = second_pass

        logger.debug(
            f"Reduced image size: {source.filename} - Original: {source.size / 1024:.2f} KB, "
            f"New: {len(best) / 1024:.2f} KB"
        )
        return SourceFile(filename=source.filename, content=best, mime_type=OUTPUT_MIME_TYPE)
    except Exception as e:
        logger.warning(f"Image size reduction failed for {source.filename}, using original: {e}")
        return source
