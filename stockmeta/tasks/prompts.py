"""
Builds the instruction text sent to the model with each file.

The same `ResponseSchema` value drives the response-format directive here and
the field extraction in `stockmeta.tasks.parsing`.
"""
from enum import Enum
from typing import List, Optional, Tuple

from stockmeta.core.models import (
    AnalysisOptions,
    EpsMetadata,
    FileContext,
    FileKind,
    GenerationMode,
    PlatformGroup,
)
from stockmeta.tasks.categories import VIDEO_CATEGORIES

EPS_PHRASE_CAVEAT = (
    'Important: Do not include phrases like "Vector EPS" or "EPS file" or "Vector file" '
    "in the {field} itself - just describe the content."
)
PROMPT_ONLY_DIRECTIVE = "Return the prompt description only, nothing else."


class ResponseSchema(str, Enum):
    """Fields the model is asked to return."""
    PROMPT_ONLY = "prompt_only"
    FREEPIK = "freepik"
    SHUTTERSTOCK = "shutterstock"
    ADOBE_STOCK = "adobe_stock"
    GENERIC = "generic"
    GENERIC_VIDEO = "generic_video"

    @property
    def fields(self) -> Tuple[str, ...]:
        return _SCHEMA_FIELDS[self]

    @property
    def is_structured(self) -> bool:
        return self is not ResponseSchema.PROMPT_ONLY

    @classmethod
    def resolve(cls, mode: GenerationMode, group: PlatformGroup, kind: FileKind) -> "ResponseSchema":
        if mode == GenerationMode.IMAGE_TO_PROMPT:
            return cls.PROMPT_ONLY
        if group == PlatformGroup.FREEPIK:
            return cls.FREEPIK
        if group == PlatformGroup.SHUTTERSTOCK:
            return cls.SHUTTERSTOCK
        if group == PlatformGroup.ADOBE_STOCK:
            return cls.ADOBE_STOCK
        if kind == FileKind.VIDEO:
            return cls.GENERIC_VIDEO
        return cls.GENERIC


_SCHEMA_FIELDS = {
    ResponseSchema.PROMPT_ONLY: (),
    ResponseSchema.FREEPIK: ("title", "prompt", "keywords"),
    ResponseSchema.SHUTTERSTOCK: ("description", "keywords"),
    ResponseSchema.ADOBE_STOCK: ("title", "keywords"),
    ResponseSchema.GENERIC: ("title", "description", "keywords"),
    ResponseSchema.GENERIC_VIDEO: ("title", "keywords", "category"),
}

_GROUP_HEADINGS = {
    PlatformGroup.FREEPIK: "metadata for the Freepik platform:",
    PlatformGroup.SHUTTERSTOCK: "metadata for the Shutterstock platform:",
    PlatformGroup.ADOBE_STOCK: "metadata for Adobe Stock:",
    PlatformGroup.GENERIC: "appropriate metadata for this design file:",
}


# --- Directives ---

def prohibited_words_directive(words: List[str]) -> str:
    return (
        "IMPORTANT: Do not use the following words in any part of the metadata "
        f"(title, description, or keywords): {', '.join(words)}."
    )


def _describe_field(field: str, options: AnalysisOptions) -> str:
    if field == "category":
        return '"category" (as a number from 1-21)'
    if field == "keywords":
        return f'"keywords" (as an array of at least {options.min_keywords} terms)'
    return f'"{field}"'


def format_directive(schema: ResponseSchema, options: AnalysisOptions) -> str:
    if not schema.is_structured:
        return PROMPT_ONLY_DIRECTIVE
    described = [_describe_field(field, options) for field in schema.fields]
    if len(described) == 2:
        joined = f"{described[0]} and {described[1]}"
    else:
        joined = ", ".join(described[:-1]) + f", and {described[-1]}"
    return f"Format your response as a JSON object with the fields {joined}."


# --- Templates ---

def _eps_summary(filename: str, metadata: Optional[EpsMetadata]) -> str:
    document_type = metadata.document_type if metadata else "Vector Design"
    image_count = metadata.image_count if metadata else 1
    colors = ", ".join(metadata.colors) if metadata and metadata.colors else "Unknown"
    fonts = ", ".join(metadata.fonts) if metadata and metadata.fonts else "Unknown"
    return (
        f'This is metadata extracted from an EPS file named "{filename}". '
        "The metadata includes the following information:\n\n"
        f"Document Type: {document_type}\n"
        f"Image Count: {image_count}\n"
        f"Colors: {colors}\n"
        f"Fonts: {fonts}"
    )


def _intro(context: FileContext, group: PlatformGroup) -> str:
    if context.kind == FileKind.EPS:
        return f"{_eps_summary(context.filename, context.eps_metadata)}\n\nGenerate {_GROUP_HEADINGS[group]}"
    if context.kind == FileKind.VIDEO:
        return (
            f'This is a thumbnail from a video file named "{context.filename}". '
            "Analyze this thumbnail and generate metadata suitable for a video:"
        )
    if group == PlatformGroup.GENERIC:
        return "Analyze this image and generate:"
    return f"Analyze this image and generate {_GROUP_HEADINGS[group]}"


def _field_line(field: str, subject: str, options: AnalysisOptions, eps_file: bool) -> str:
    if field == "title":
        line = (
            f"A clear, descriptive title between {options.min_title_words}-{options.max_title_words} words "
            f"that accurately describes what's in the {subject}. Don't use any symbols."
        )
        return f"{line} {EPS_PHRASE_CAVEAT.format(field='title')}" if eps_file else line
    if field == "prompt":
        line = f"Create an image generation prompt that describes this {subject} in 1-2 sentences (30-50 words)."
        return f"{line} {EPS_PHRASE_CAVEAT.format(field='prompt')}" if eps_file else line
    if field == "description":
        line = (
            "A clear, detailed description that's between "
            f"{options.min_description_words}-{options.max_description_words} words."
        )
        return f"{line} {EPS_PHRASE_CAVEAT.format(field='description')}" if eps_file else line
    if field == "keywords":
        return (
            f"A list of {options.min_keywords}-{options.max_keywords} relevant, specific keywords "
            f"(single words or short phrases) that someone might search for to find this {subject}."
        )
    if field == "category":
        legend = ", ".join(f"{number}={name}" for number, name in VIDEO_CATEGORIES.items())
        return f"A category number between 1-21, where:\n   {legend}"
    raise ValueError(f"Unknown response field: {field}")


def _metadata_template(context: FileContext, options: AnalysisOptions, schema: ResponseSchema) -> str:
    subject = {FileKind.EPS: "design", FileKind.VIDEO: "video"}.get(context.kind, "image")
    lines = [_intro(context, options.platform_group)]
    for number, field in enumerate(schema.fields, start=1):
        lines.append(f"{number}. {_field_line(field, subject, options, context.is_eps)}")
    return "\n".join(lines)


def _image_to_prompt_template(context: FileContext) -> str:
    if context.kind == FileKind.EPS:
        return (
            f"{_eps_summary(context.filename, context.eps_metadata)}\n\n"
            "Generate a detailed description of what this design file likely contains. "
            "The description should be at least 50 words but not more than 150 words. "
            f"{EPS_PHRASE_CAVEAT.format(field='description')}"
        )
    if context.kind == FileKind.VIDEO:
        return (
            f'This is a thumbnail from a video file named "{context.filename}". '
            "Generate a detailed description of what this video appears to contain based on this frame. "
            "Include details about content, style, colors, movement, and composition. "
            "The description should be at least 50 words but not more than 150 words."
        )
    return (
        "Generate a detailed prompt description to recreate this image with an AI image generator. "
        "Include details about content, style, colors, lighting, and composition. "
        "The prompt should be at least 50 words but not more than 150 words."
    )


def compose_prompt(context: FileContext, options: AnalysisOptions) -> str:
    """
    Prohibited-word directive, modifier directives, then the custom prompt or
    the built-in template, then the response-format directive.
    """
    schema = ResponseSchema.resolve(options.generation_mode, options.platform_group, context.kind)

    sections: List[str] = []
    prohibited = options.prohibited_word_list
    if prohibited:
        sections.append(prohibited_words_directive(prohibited))
    sections.extend(modifier.directive for modifier in options.modifiers.active())

    if options.uses_custom_prompt:
        sections.append(options.custom_prompt.strip())
    elif schema is ResponseSchema.PROMPT_ONLY:
        sections.append(_image_to_prompt_template(context))
    else:
        sections.append(_metadata_template(context, options, schema))

    sections.append(format_directive(schema, options))
    return "\n\n".join(sections)
