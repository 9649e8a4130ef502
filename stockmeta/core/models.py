"""
Pydantic models for data structures used in the pipeline.
"""
import mimetypes
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FileKind(str, Enum):
    RASTER = "raster"
    SVG = "svg"
    EPS = "eps"
    VIDEO = "video"
    UNSUPPORTED = "unsupported"


class GenerationMode(str, Enum):
    METADATA = "metadata"
    IMAGE_TO_PROMPT = "imageToPrompt"


class Platform(str, Enum):
    FREEPIK = "Freepik"
    ADOBE_STOCK = "AdobeStock"
    SHUTTERSTOCK = "Shutterstock"
    VECTEEZY = "Vecteezy"
    DEPOSITPHOTOS = "Depositphotos"
    RF123 = "123RF"
    ALAMY = "Alamy"
    DREAMSTIME = "Dreamstime"


class PlatformGroup(str, Enum):
    """Field-set family a platform selection maps to."""
    FREEPIK = "freepik"
    SHUTTERSTOCK = "shutterstock"
    ADOBE_STOCK = "adobe_stock"
    GENERIC = "generic"

    @classmethod
    def from_platforms(cls, platforms: List[Platform]) -> "PlatformGroup":
        if len(platforms) != 1:
            return cls.GENERIC
        return {
            Platform.FREEPIK: cls.FREEPIK,
            Platform.SHUTTERSTOCK: cls.SHUTTERSTOCK,
            Platform.ADOBE_STOCK: cls.ADOBE_STOCK,
        }.get(platforms[0], cls.GENERIC)


class SourceFile(BaseModel):
    """An uploaded file: raw bytes plus the declared MIME type."""
    model_config = ConfigDict(frozen=True)

    filename: str
    content: bytes
    mime_type: str = ""

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def stem(self) -> str:
        return Path(self.filename).stem

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()

    @classmethod
    def from_path(cls, path: Path) -> "SourceFile":
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(filename=path.name, content=path.read_bytes(), mime_type=mime_type or "")


class NormalizedPayload(BaseModel):
    """The artifact uploaded to the model: an image or a text report."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["image", "text"]
    filename: str
    mime_type: str
    data: Optional[bytes] = None
    text: Optional[str] = None

    @property
    def is_text(self) -> bool:
        return self.kind == "text"

    @classmethod
    def image(cls, filename: str, data: bytes, mime_type: str) -> "NormalizedPayload":
        return cls(kind="image", filename=filename, data=data, mime_type=mime_type)

    @classmethod
    def text_report(cls, filename: str, text: str) -> "NormalizedPayload":
        return cls(kind="text", filename=filename, text=text, mime_type="text/plain")


class EpsMetadata(BaseModel):
    """Structural data recovered from EPS/PostScript DSC comments."""
    model_config = ConfigDict(frozen=True)

    filename: str
    file_size: int = 0
    title: Optional[str] = None
    creator: Optional[str] = None
    creation_date: Optional[str] = None
    bounding_box: Optional[str] = None
    document_type: str = "Vector Design"
    image_count: int = 1
    fonts: List[str] = []
    colors: List[str] = []
    dsc_comments: Dict[str, str] = {}
    extracted_text: str = ""


class FileContext(BaseModel):
    """What prompt construction and post-processing know about a file."""
    model_config = ConfigDict(frozen=True)

    filename: str
    kind: FileKind
    eps_metadata: Optional[EpsMetadata] = None

    @property
    def is_video(self) -> bool:
        return self.kind == FileKind.VIDEO

    @property
    def is_eps(self) -> bool:
        return self.kind == FileKind.EPS


class PreparedFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    context: FileContext
    payload: NormalizedPayload


# --- Content modifiers ---

class ModifierKind(str, Enum):
    WHITE_BACKGROUND = "white_background"
    TRANSPARENT_BACKGROUND = "transparent_background"
    SILHOUETTE = "silhouette"


class ContentModifier(BaseModel):
    """
    A fixed annotation rule. `marker` is the phrase looked up in the description
    before `description_addendum` is appended; a None addendum leaves the
    description untouched.
    """
    model_config = ConfigDict(frozen=True)

    kind: ModifierKind
    title_suffix: str
    keyword: str
    marker: str
    description_addendum: Optional[str] = None
    directive: str


CONTENT_MODIFIERS: Dict[ModifierKind, ContentModifier] = {
    ModifierKind.WHITE_BACKGROUND: ContentModifier(
        kind=ModifierKind.WHITE_BACKGROUND,
        title_suffix="isolated on white background",
        keyword="white background",
        marker="isolated white background",
        directive=(
            "IMPORTANT: This image has an isolated object on a white background. Please ensure you:\n"
            '1. Add "isolated on white background" to the end of the title\n'
            '2. Include "white background" as one of the keywords\n'
            "3. Mention the isolated object on a white background in the description"
        ),
    ),
    ModifierKind.TRANSPARENT_BACKGROUND: ContentModifier(
        kind=ModifierKind.TRANSPARENT_BACKGROUND,
        title_suffix="isolated on transparent background",
        keyword="transparent background",
        marker="transparent background",
        directive=(
            "IMPORTANT: This image has an isolated object on a transparent background. Please ensure you:\n"
            '1. Add "isolated on transparent background" to the end of the title\n'
            '2. Include "transparent background" as one of the keywords\n'
            "3. Mention the isolated object on a transparent background in the description"
        ),
    ),
    ModifierKind.SILHOUETTE: ContentModifier(
        kind=ModifierKind.SILHOUETTE,
        title_suffix="silhouette",
        keyword="silhouette",
        marker="silhouette",
        description_addendum=(
            "This image features a striking silhouette design, perfect for creating a bold visual impact."
        ),
        directive=(
            "IMPORTANT: This image features a silhouette. Please ensure you:\n"
            '1. Add "silhouette" to the end of the title\n'
            '2. Include "silhouette" as one of the keywords\n'
            "3. Mention the silhouette style in the description as a distinctive feature"
        ),
    ),
}


class ContentModifiers(BaseModel):
    model_config = ConfigDict(frozen=True)

    white_background: bool = False
    transparent_background: bool = False
    silhouette: bool = False

    def active(self) -> List[ContentModifier]:
        """Enabled modifiers, in the order they are applied."""
        flags = (
            (ModifierKind.WHITE_BACKGROUND, self.white_background),
            (ModifierKind.TRANSPARENT_BACKGROUND, self.transparent_background),
            (ModifierKind.SILHOUETTE, self.silhouette),
        )
        return [CONTENT_MODIFIERS[kind] for kind, enabled in flags if enabled]


class AnalysisOptions(BaseModel):
    """Configuration snapshot for one run. Read-only once built."""
    model_config = ConfigDict(frozen=True)

    platforms: List[Platform] = Field(default_factory=lambda: [Platform.ADOBE_STOCK])
    generation_mode: GenerationMode = GenerationMode.METADATA
    min_title_words: int = 8
    max_title_words: int = 15
    min_keywords: int = 20
    max_keywords: int = 35
    min_description_words: int = 30
    max_description_words: int = 40
    custom_prompt_enabled: bool = False
    custom_prompt: str = ""
    prohibited_words_enabled: bool = False
    prohibited_words: str = ""
    modifiers: ContentModifiers = Field(default_factory=ContentModifiers)
    single_word_keywords_enabled: bool = False

    @model_validator(mode="after")
    def _check_bounds(self) -> "AnalysisOptions":
        for name in ("title_words", "keywords", "description_words"):
            low = getattr(self, f"min_{name}")
            high = getattr(self, f"max_{name}")
            if low < 0 or low > high:
                raise ValueError(f"Invalid bounds for {name}: min={low}, max={high}")
        return self

    @property
    def platform_group(self) -> PlatformGroup:
        return PlatformGroup.from_platforms(self.platforms)

    @property
    def uses_custom_prompt(self) -> bool:
        return self.custom_prompt_enabled and bool(self.custom_prompt.strip())

    @property
    def prohibited_word_list(self) -> List[str]:
        if not self.prohibited_words_enabled:
            return []
        return [word.strip() for word in self.prohibited_words.split(",") if word.strip()]


class ParsedResponse(BaseModel):
    """Structured fields read from the model output, before post-processing."""
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    description: str = ""
    keywords: List[str] = []
    prompt: Optional[str] = None
    category: Optional[Any] = None


class AnalysisResult(BaseModel):
    """Output record for one file. A failure carries only error and identity fields."""
    model_config = ConfigDict(frozen=True)

    filename: str
    index: Optional[int] = None
    title: str = ""
    description: str = ""
    keywords: List[str] = []
    prompt: Optional[str] = None
    base_model: Optional[str] = None
    categories: Optional[List[str]] = None
    category: Optional[int] = None
    error: Optional[str] = None
    is_video: bool = False
    is_eps: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(
        cls,
        filename: str,
        error: str,
        kind: Optional[FileKind] = None,
        index: Optional[int] = None,
    ) -> "AnalysisResult":
        return cls(
            filename=filename,
            index=index,
            error=error,
            is_video=kind == FileKind.VIDEO,
            is_eps=kind == FileKind.EPS,
        )
