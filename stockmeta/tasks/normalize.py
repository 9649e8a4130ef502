"""
Turns uploaded files into payloads the model can ingest.

Raster images are downscaled, SVGs rasterized, EPS files described as text and
videos reduced to a single frame.
"""
import asyncio
import io
import logging
import os
import tempfile
from typing import Optional, Tuple

import cairosvg
import cv2
from PIL import Image, ImageDraw, ImageFont

from stockmeta.config import Settings, NormalizeConfig
from stockmeta.core.errors import ConversionError, ThumbnailError, UnsupportedFileError
from stockmeta.core.models import FileContext, FileKind, NormalizedPayload, PreparedFile, SourceFile
from stockmeta.tasks import eps
from stockmeta.tasks.downscale import downscale_image

logger = logging.getLogger(__name__)

GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}
EPS_MIME_TYPES = {"application/postscript", "application/eps", "application/x-eps", "image/eps", "image/x-eps"}

RASTER_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp", ".tif", ".tiff"}
SVG_EXTENSIONS = {".svg"}
EPS_EXTENSIONS = {".eps", ".ps"}
VIDEO_EXTENSIONS = {".mp4", ".webm", ".ogg", ".mov", ".avi", ".wmv", ".flv", ".mkv"}


# --- Classification ---

def _classify_mime(mime_type: str) -> Optional[FileKind]:
    if mime_type == "image/svg+xml":
        return FileKind.SVG
    if mime_type in EPS_MIME_TYPES:
        return FileKind.EPS
    if mime_type.startswith("video/"):
        return FileKind.VIDEO
    if mime_type.startswith("image/"):
        return FileKind.RASTER
    return None


def _classify_extension(extension: str) -> FileKind:
    if extension in SVG_EXTENSIONS:
        return FileKind.SVG
    if extension in EPS_EXTENSIONS:
        return FileKind.EPS
    if extension in VIDEO_EXTENSIONS:
        return FileKind.VIDEO
    if extension in RASTER_EXTENSIONS:
        return FileKind.RASTER
    return FileKind.UNSUPPORTED


def classify(source: SourceFile) -> FileKind:
    """
    A specific MIME type decides; the extension is authoritative when the MIME
    type is generic, absent or unknown.
    """
    mime_type = (source.mime_type or "").split(";")[0].strip().lower()
    if mime_type not in GENERIC_MIME_TYPES:
        kind = _classify_mime(mime_type)
        if kind is not None:
            return kind
    return _classify_extension(source.extension)


def _with_extension(filename: str, suffix: str) -> str:
    root, _ = os.path.splitext(filename)
    return f"{root}{suffix}"


# --- SVG ---

def rasterize_svg(source: SourceFile, width: int = 1200, height: int = 1200) -> NormalizedPayload:
    try:
        png_bytes = cairosvg.svg2png(bytestring=source.content, output_width=width, output_height=height)
    except Exception as e:
        raise ConversionError(f"Failed to convert SVG to PNG format: {e}") from e
    if not png_bytes:
        raise ConversionError("Failed to convert SVG to PNG format: renderer returned no data")
    return NormalizedPayload.image(_with_extension(source.filename, ".png"), png_bytes, "image/png")


# --- Video ---

def _encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _open_video(path: str) -> Tuple["cv2.VideoCapture", float]:
    capture = cv2.VideoCapture(path)
    if not capture.isOpened():
        capture.release()
        raise ThumbnailError("Failed to load video")
    fps = capture.get(cv2.CAP_PROP_FPS) or 0.0
    frame_count = capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0
    duration = frame_count / fps if fps > 0 else 0.0
    return capture, duration


def _grab_frame(capture: "cv2.VideoCapture", seek_seconds: float, config: NormalizeConfig) -> bytes:
    capture.set(cv2.CAP_PROP_POS_MSEC, seek_seconds * 1000)
    ok, frame = capture.read()
    if not ok or frame is None:
        raise ThumbnailError("Failed to extract video thumbnail - no frame decoded")

    width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)) or config.video_default_width
    height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)) or config.video_default_height
    image = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
    if image.size != (width, height):
        image = image.resize((width, height))
    return _encode_png(image)


async def _extract_frame(source: SourceFile, config: NormalizeConfig) -> bytes:
    # OpenCV only reads from a path.
    handle = tempfile.NamedTemporaryFile(suffix=source.extension or ".mp4", delete=False)
    try:
        with handle:
            handle.write(source.content)
        capture, duration = await asyncio.wait_for(
            asyncio.to_thread(_open_video, handle.name), timeout=config.video_decode_timeout
        )
        try:
            seek_seconds = min(config.video_frame_time, duration / 2) if duration > 0 else 0.0
            return await asyncio.wait_for(
                asyncio.to_thread(_grab_frame, capture, seek_seconds, config),
                timeout=config.video_seek_timeout,
            )
        finally:
            capture.release()
    finally:
        os.unlink(handle.name)


def render_placeholder_frame(filename: str, width: int = 640, height: int = 360) -> bytes:
    """Dark frame with film-strip marks and the file name."""
    image = Image.new("RGB", (width, height), "#222222")
    draw = ImageDraw.Draw(image)
    for i in range(10):
        draw.rectangle([50, 50 + i * 30, 80, 70 + i * 30], fill="#555555")
        draw.rectangle([width - 80, 50 + i * 30, width - 50, 70 + i * 30], fill="#555555")
    label = f"Video: {filename}"
    font = ImageFont.load_default()
    left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
    position = ((width - (right - left)) / 2, (height - (bottom - top)) / 2)
    draw.text(position, label, fill="#ffffff", font=font)
    return _encode_png(image)


async def extract_video_thumbnail(source: SourceFile, config: Optional[NormalizeConfig] = None) -> NormalizedPayload:
    """
    Always yields a frame: decode problems and timeouts fall back to a
    placeholder. ThumbnailError is raised only if the placeholder fails too.
    """
    config = config or NormalizeConfig()
    thumbnail_name = f"{os.path.splitext(source.filename)[0]}_thumbnail.png"
    try:
        data = await _extract_frame(source, config)
    except Exception as e:
        logger.debug(f"Using fallback thumbnail for {source.filename}: {e!r}")
        try:
            data = render_placeholder_frame(
                source.filename, config.video_default_width, config.video_default_height
            )
        except Exception as fallback_error:
            raise ThumbnailError(f"Failed to extract video thumbnail: {fallback_error}") from fallback_error
    return NormalizedPayload.image(thumbnail_name, data, "image/png")


# --- Dispatch ---

async def normalize(source: SourceFile, settings: Settings) -> PreparedFile:
    """Classifies `source` and builds its upload payload."""
    kind = classify(source)
    config = settings.normalize
    eps_metadata = None

    if kind == FileKind.SVG:
        logger.debug(f"Converting SVG {source.filename} to PNG")
        payload = await asyncio.to_thread(rasterize_svg, source, config.svg_width, config.svg_height)
    elif kind == FileKind.EPS:
        eps_metadata = await asyncio.to_thread(eps.extract_eps_metadata, source)
        payload = NormalizedPayload.text_report(
            eps.report_filename(source.filename),
            eps.serialize_eps_metadata(eps_metadata, config.eps_preview_chars),
        )
    elif kind == FileKind.VIDEO:
        payload = await extract_video_thumbnail(source, config)
    elif kind == FileKind.RASTER:
        image = source
        if not (image.mime_type or "").lower().startswith("image/"):
            image = SourceFile(filename=source.filename, content=source.content, mime_type=_guess_raster_mime(source))
        reduced = await asyncio.to_thread(downscale_image, image, settings.downscale)
        payload = NormalizedPayload.image(reduced.filename, reduced.content, reduced.mime_type)
    else:
        raise UnsupportedFileError(f"Unsupported file type: {source.filename} ({source.mime_type or 'unknown'})")

    context = FileContext(filename=source.filename, kind=kind, eps_metadata=eps_metadata)
    return PreparedFile(context=context, payload=payload)


def _guess_raster_mime(source: SourceFile) -> str:
    extension = source.extension.lstrip(".")
    if extension in ("jpg", "jpeg"):
        return "image/jpeg"
    if extension in ("tif", "tiff"):
        return "image/tiff"
    return f"image/{extension or 'jpeg'}"
