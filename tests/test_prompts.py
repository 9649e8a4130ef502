"""Tests for prompt composition and response schemas."""

import pytest

from stockmeta.core.models import (
    AnalysisOptions,
    ContentModifiers,
    EpsMetadata,
    FileContext,
    FileKind,
    GenerationMode,
    Platform,
    PlatformGroup,
)
from stockmeta.tasks.prompts import PROMPT_ONLY_DIRECTIVE, ResponseSchema, compose_prompt, format_directive

IMAGE = FileContext(filename="photo.jpg", kind=FileKind.RASTER)
VIDEO = FileContext(filename="clip.mp4", kind=FileKind.VIDEO)
EPS = FileContext(
    filename="logo-icon-set.eps",
    kind=FileKind.EPS,
    eps_metadata=EpsMetadata(
        filename="logo-icon-set.eps", document_type="Icon Set", colors=["Red"], fonts=["Helvetica"]
    ),
)


class TestResponseSchema:
    """Tests for ResponseSchema.resolve."""

    @pytest.mark.parametrize(
        "mode,group,kind,expected",
        [
            (GenerationMode.IMAGE_TO_PROMPT, PlatformGroup.FREEPIK, FileKind.RASTER, ResponseSchema.PROMPT_ONLY),
            (GenerationMode.METADATA, PlatformGroup.FREEPIK, FileKind.VIDEO, ResponseSchema.FREEPIK),
            (GenerationMode.METADATA, PlatformGroup.SHUTTERSTOCK, FileKind.EPS, ResponseSchema.SHUTTERSTOCK),
            (GenerationMode.METADATA, PlatformGroup.ADOBE_STOCK, FileKind.RASTER, ResponseSchema.ADOBE_STOCK),
            (GenerationMode.METADATA, PlatformGroup.GENERIC, FileKind.VIDEO, ResponseSchema.GENERIC_VIDEO),
            (GenerationMode.METADATA, PlatformGroup.GENERIC, FileKind.SVG, ResponseSchema.GENERIC),
        ],
    )
    def test_resolve(self, mode, group, kind, expected):
        assert ResponseSchema.resolve(mode, group, kind) is expected

    def test_fields(self):
        assert ResponseSchema.FREEPIK.fields == ("title", "prompt", "keywords")
        assert ResponseSchema.GENERIC_VIDEO.fields == ("title", "keywords", "category")
        assert ResponseSchema.PROMPT_ONLY.fields == ()

    def test_platform_group_needs_single_platform(self):
        assert PlatformGroup.from_platforms([Platform.FREEPIK]) == PlatformGroup.FREEPIK
        assert PlatformGroup.from_platforms([Platform.FREEPIK, Platform.ADOBE_STOCK]) == PlatformGroup.GENERIC
        assert PlatformGroup.from_platforms([Platform.ALAMY]) == PlatformGroup.GENERIC


class TestFormatDirective:
    """Tests for the response-format directive."""

    def test_two_fields(self):
        directive = format_directive(ResponseSchema.ADOBE_STOCK, AnalysisOptions(min_keywords=25))
        assert directive == (
            'Format your response as a JSON object with the fields "title" and '
            '"keywords" (as an array of at least 25 terms).'
        )

    def test_three_fields(self):
        directive = format_directive(ResponseSchema.GENERIC, AnalysisOptions())
        assert '"title", "description", and "keywords"' in directive

    def test_video_category_uses_full_taxonomy(self):
        directive = format_directive(ResponseSchema.GENERIC_VIDEO, AnalysisOptions())
        assert '"category" (as a number from 1-21)' in directive

    def test_prompt_only(self):
        assert format_directive(ResponseSchema.PROMPT_ONLY, AnalysisOptions()) == PROMPT_ONLY_DIRECTIVE


class TestComposePrompt:
    """Tests for compose_prompt."""

    def test_adobe_image_template(self):
        prompt = compose_prompt(IMAGE, AnalysisOptions(platforms=[Platform.ADOBE_STOCK]))
        assert prompt.startswith("Analyze this image and generate metadata for Adobe Stock:")
        assert "1. A clear, descriptive title between 8-15 words" in prompt
        assert "2. A list of 20-35 relevant, specific keywords" in prompt
        assert prompt.endswith('"keywords" (as an array of at least 20 terms).')

    def test_generic_video_lists_categories(self):
        options = AnalysisOptions(platforms=[Platform.VECTEEZY])
        prompt = compose_prompt(VIDEO, options)
        assert 'This is a thumbnail from a video file named "clip.mp4"' in prompt
        assert "A category number between 1-21" in prompt
        assert "8=Graphic Resources" in prompt
        assert "21=Travel" in prompt

    def test_eps_framing(self):
        prompt = compose_prompt(EPS, AnalysisOptions(platforms=[Platform.SHUTTERSTOCK]))
        assert prompt.startswith('This is metadata extracted from an EPS file named "logo-icon-set.eps"')
        assert "Document Type: Icon Set" in prompt
        assert "Colors: Red" in prompt
        assert "Fonts: Helvetica" in prompt
        assert 'Do not include phrases like "Vector EPS"' in prompt
        assert '"description" and "keywords"' in prompt

    def test_freepik_asks_for_prompt(self):
        prompt = compose_prompt(IMAGE, AnalysisOptions(platforms=[Platform.FREEPIK]))
        assert "Create an image generation prompt" in prompt
        assert '"title", "prompt", and "keywords"' in prompt

    def test_directives_come_first_in_order(self):
        options = AnalysisOptions(
            prohibited_words_enabled=True,
            prohibited_words="cartoon, toy",
            modifiers=ContentModifiers(white_background=True, silhouette=True),
        )
        prompt = compose_prompt(IMAGE, options)
        prohibited = prompt.index("Do not use the following words")
        white = prompt.index("isolated object on a white background")
        silhouette = prompt.index("This image features a silhouette")
        template = prompt.index("Analyze this image")
        assert prohibited < white < silhouette < template
        assert "(title, description, or keywords): cartoon, toy." in prompt

    def test_disabled_prohibited_words_are_ignored(self):
        options = AnalysisOptions(prohibited_words_enabled=False, prohibited_words="cartoon")
        assert "Do not use" not in compose_prompt(IMAGE, options)

    def test_custom_prompt_keeps_format_directive(self):
        options = AnalysisOptions(custom_prompt_enabled=True, custom_prompt="Describe the mood.")
        prompt = compose_prompt(IMAGE, options)
        assert prompt.startswith("Describe the mood.")
        assert "Analyze this image" not in prompt
        assert prompt.endswith('"keywords" (as an array of at least 20 terms).')

    def test_blank_custom_prompt_uses_template(self):
        options = AnalysisOptions(custom_prompt_enabled=True, custom_prompt="   ")
        assert "Analyze this image" in compose_prompt(IMAGE, options)

    def test_image_to_prompt(self):
        options = AnalysisOptions(generation_mode=GenerationMode.IMAGE_TO_PROMPT)
        prompt = compose_prompt(IMAGE, options)
        assert "recreate this image with an AI image generator" in prompt
        assert prompt.endswith(PROMPT_ONLY_DIRECTIVE)

    def test_bounds_are_interpolated(self):
        options = AnalysisOptions(
            platforms=[Platform.ALAMY], min_title_words=5, max_title_words=9,
            min_description_words=12, max_description_words=18,
        )
        prompt = compose_prompt(IMAGE, options)
        assert "between 5-9 words" in prompt
        assert "between 12-18 words" in prompt
