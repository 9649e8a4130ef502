"""
Best-effort metadata extraction from EPS/PostScript files.

The model cannot read PostScript, so an EPS file is described to it as a
plain-text report built from its Document Structuring Convention comments and
a few content heuristics. Nothing here interprets PostScript.
"""
import logging
import math
import re
from pathlib import Path
from typing import Dict, List, Optional

from stockmeta.core.errors import ExtractionError
from stockmeta.core.models import EpsMetadata, SourceFile

logger = logging.getLogger(__name__)

DSC_REGEX = re.compile(r"^%%(\w+)(?::\s*(.*))?$", re.MULTILINE)
PAGE_REGEX = re.compile(r"%%Page:.*?(\d+)")
FONT_REGEX = re.compile(r"/([A-Za-z0-9][A-Za-z0-9\-]*)\s+(?:findfont|scalefont|makefont)\b")

_NUM = r"(?:\d*\.\d+|\d+)"
CMYK_REGEX = re.compile(rf"{_NUM} {_NUM} {_NUM} {_NUM} (?:CMYK|setcmykcolor)")
RGB_REGEX = re.compile(rf"{_NUM} {_NUM} {_NUM} (?:RGB|setrgbcolor)")
GRAY_REGEX = re.compile(rf"{_NUM} setgray")

COLOR_KEYWORDS = [
    "black", "white", "red", "green", "blue", "yellow", "cyan",
    "magenta", "purple", "orange", "pink", "brown", "gray", "grey",
]

# First match wins.
DOCUMENT_TYPES = [
    (("icon", "icons"), "Icon Set"),
    (("logo",), "Logo Design"),
    (("pattern", "texture"), "Pattern/Texture"),
    (("background", "bg"), "Background"),
    (("banner", "ad"), "Banner/Advertisement"),
    (("chart", "graph", "diagram"), "Chart/Diagram"),
    (("flyer", "brochure"), "Flyer/Brochure"),
    (("infographic",), "Infographic"),
    (("illustration", "drawing"), "Illustration"),
    (("character", "mascot"), "Character Design"),
    (("set", "bundle", "collection"), "Graphic Set/Collection"),
    (("frame", "border"), "Frame/Border Design"),
    (("card", "invitation"), "Card/Invitation"),
    (("shape", "element"), "Graphic Elements"),
    (("abstract",), "Abstract Design"),
    (("floral", "flower"), "Floral Design"),
    (("food", "drink"), "Food/Drink Illustration"),
    (("animal", "nature"), "Nature/Animal Illustration"),
]
DEFAULT_DOCUMENT_TYPE = "Vector Design"

REPORT_SKIP_KEYS = {"Title", "Creator", "Author", "CreationDate", "ModDate", "BoundingBox", "ExtractedTitle"}
CONTROL_CHARS_REGEX = re.compile(r"[\x00-\x09\x0B-\x1F\x7F-\xFF]+")
BINARY_BLOCK_REGEX = re.compile(r"%%BeginBinary.*?%%EndBinary", re.DOTALL)
DATA_BLOCK_REGEX = re.compile(r"%%BeginData.*?%%EndData", re.DOTALL)


def decode_eps_text(content: bytes) -> str:
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        text = content.decode("latin-1")
    return text.replace("\r\n", "\n").replace("\r", "\n")


# --- DSC comments ---

def parse_dsc(text: str) -> Dict[str, str]:
    """
    Maps every `%%Key: value` (or bare `%%Key`) line to its value.

    Later occurrences of a key overwrite earlier ones, so a trailing
    `%%BoundingBox` replaces an `(atend)` placeholder.
    """
    comments: Dict[str, str] = {}
    for match in DSC_REGEX.finditer(text):
        key, value = match.group(1), match.group(2)
        comments[key] = value.strip() if value else ""

    if not comments.get("Title") and comments.get("Comments"):
        potential_title = comments["Comments"].split(".")[0].strip()
        if 5 < len(potential_title) < 100:
            comments["ExtractedTitle"] = potential_title
    return comments


# --- Heuristics ---

def infer_document_type(filename: str) -> str:
    lower_name = filename.lower()
    for tokens, label in DOCUMENT_TYPES:
        if any(token in lower_name for token in tokens):
            return label
    return DEFAULT_DOCUMENT_TYPE


def count_image_instances(text: str) -> int:
    """Page markers when present, else a guess from gsave/grestore pairs."""
    pages = PAGE_REGEX.findall(text)
    if pages:
        return len(pages)

    pairs = min(text.count("gsave"), text.count("grestore"))
    if pairs > 5:
        return min(math.ceil(pairs / 3), 20)
    return 1


def extract_font_names(text: str) -> List[str]:
    return list(dict.fromkeys(FONT_REGEX.findall(text)))


def extract_color_hints(text: str) -> List[str]:
    colors: List[str] = []
    if CMYK_REGEX.search(text):
        colors.append("CMYK Color Model")
    if RGB_REGEX.search(text):
        colors.append("RGB Color Model")
    if GRAY_REGEX.search(text):
        colors.append("Grayscale")
    if "ICC Profile" in text:
        colors.append("ICC Color Profile")
    for color in COLOR_KEYWORDS:
        if re.search(rf"\b{color}\b", text, re.IGNORECASE):
            colors.append(color.capitalize())
    return colors


def title_from_filename(filename: str) -> str:
    clean_name = re.sub(r"[_-]", " ", Path(filename).stem)
    clean_name = re.sub(r"^[0-9\s]+", "", clean_name)
    clean_name = re.sub(r"\b\w", lambda m: m.group(0).upper(), clean_name)
    if len(clean_name) < 5:
        clean_name = f"Vector Design {clean_name}".strip()
    return clean_name


# --- Extraction ---

def extract_eps_metadata(source: SourceFile) -> EpsMetadata:
    """
    Reads an EPS file as text and collects its metadata.

    Raises ExtractionError when the file is empty or cannot be read.
    """
    if not source.content:
        raise ExtractionError(f"EPS file {source.filename} is empty")

    try:
        text = decode_eps_text(source.content)
        comments = parse_dsc(text)
        return EpsMetadata(
            filename=source.filename,
            file_size=source.size,
            title=comments.get("Title") or None,
            creator=comments.get("Creator") or comments.get("Author") or None,
            creation_date=comments.get("CreationDate") or comments.get("ModDate") or None,
            bounding_box=comments.get("BoundingBox") or None,
            document_type=infer_document_type(source.filename),
            image_count=count_image_instances(text),
            fonts=extract_font_names(text),
            colors=extract_color_hints(text),
            dsc_comments=comments,
            extracted_text=text,
        )
    except Exception as e:
        logger.error(f"Could not extract EPS metadata from {source.filename}: {e}")
        raise ExtractionError(f"Failed to extract metadata from EPS file: {e}") from e


def _content_preview(text: str, max_chars: int) -> str:
    preview = CONTROL_CHARS_REGEX.sub(" ", text)
    preview = BINARY_BLOCK_REGEX.sub("[Binary Data Removed]", preview)
    preview = DATA_BLOCK_REGEX.sub("[Data Block Removed]", preview)
    preview = preview.strip()
    if len(preview) > max_chars:
        return preview[:max_chars] + "..."
    return preview


def serialize_eps_metadata(metadata: EpsMetadata, preview_chars: int = 1500) -> str:
    """Renders the fixed-section text report sent to the model in place of pixels."""
    title: Optional[str] = (
        metadata.title
        or metadata.dsc_comments.get("ExtractedTitle")
        or title_from_filename(metadata.filename)
    )
    lines = [
        "EPS FILE METADATA",
        "================",
        "",
        f"Filename: {metadata.filename}",
        f"File Size: {round(metadata.file_size / 1024)} KB",
        f"Document Type: {metadata.document_type}",
        f"Approximate Image Count: {metadata.image_count}",
        "",
        "DOCUMENT PROPERTIES",
        "------------------",
        f"Title: {title}",
        f"Creator: {metadata.creator or 'Unknown'}",
        f"Creation Date: {metadata.creation_date or 'Unknown'}",
        f"Bounding Box: {metadata.bounding_box or 'Unknown'}",
        "",
    ]

    if metadata.colors:
        lines += ["COLOR INFORMATION", "----------------"]
        lines += [f"- {color}" for color in metadata.colors]
        lines.append("")

    if metadata.fonts:
        lines += ["FONT INFORMATION", "---------------"]
        lines += [f"- {font}" for font in metadata.fonts]
        lines.append("")

    lines += ["DOCUMENT CONTENT PREVIEW", "----------------------"]
    lines.append(_content_preview(metadata.extracted_text, preview_chars))
    lines.append("")

    lines += ["ADDITIONAL DSC COMMENTS", "---------------------"]
    for key, value in metadata.dsc_comments.items():
        if key in REPORT_SKIP_KEYS or not value.strip():
            continue
        lines.append(f"{key}: {value}")

    return "\n".join(lines)


def report_filename(filename: str) -> str:
    return re.sub(r"\.eps$", "", filename, flags=re.IGNORECASE) + "-metadata.txt"
