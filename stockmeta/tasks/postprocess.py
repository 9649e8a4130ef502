"""
Deterministic clean-up applied to every parsed model reply.

Stages run in a fixed order: content modifiers, single-word expansion, keyword
backfill, prohibited-word filtering, platform enrichment, final dedupe and cap.
Each stage reads the output of the previous one.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from stockmeta.core.models import (
    AnalysisOptions,
    AnalysisResult,
    ContentModifier,
    FileContext,
    GenerationMode,
    ParsedResponse,
    PlatformGroup,
)
from stockmeta.tasks.categories import (
    determine_video_category,
    is_valid_video_category,
    suggest_adobe_categories,
    suggest_shutterstock_categories,
)
from stockmeta.tasks.keywords import contains_prohibited, dedupe_keywords, extract_keywords

logger = logging.getLogger(__name__)

FREEPIK_BASE_MODEL = "leonardo"


@dataclass
class _Draft:
    """Mutable working copy threaded through the stages."""
    title: str = ""
    description: str = ""
    keywords: List[str] = field(default_factory=list)
    prompt: Optional[str] = None
    claimed_category: Any = None
    base_model: Optional[str] = None
    categories: Optional[List[str]] = None
    category: Optional[int] = None


# --- Stages ---

def _apply_modifier(draft: _Draft, modifier: ContentModifier) -> None:
    if draft.title and modifier.title_suffix.lower() not in draft.title.lower():
        draft.title = f"{draft.title.strip()} {modifier.title_suffix}"
    if not any(modifier.keyword in keyword.lower() for keyword in draft.keywords):
        draft.keywords.append(modifier.keyword)
    if (
        modifier.description_addendum
        and draft.description
        and modifier.marker not in draft.description.lower()
    ):
        draft.description = f"{draft.description.strip()} {modifier.description_addendum}"


def apply_modifiers(draft: _Draft, options: AnalysisOptions) -> None:
    for modifier in options.modifiers.active():
        _apply_modifier(draft, modifier)


def expand_single_words(draft: _Draft, options: AnalysisOptions) -> None:
    if not options.single_word_keywords_enabled or not draft.keywords:
        return
    words = [word for keyword in draft.keywords for word in keyword.split()]
    draft.keywords = dedupe_keywords(words)[:options.max_keywords]


def backfill_keywords(draft: _Draft, options: AnalysisOptions) -> None:
    if len(draft.keywords) >= options.min_keywords:
        return
    if not (options.custom_prompt_enabled or options.platform_group == PlatformGroup.GENERIC):
        return
    logger.debug(f"Only {len(draft.keywords)} keywords, generating more")
    content = " ".join([draft.title, draft.description, ", ".join(draft.keywords)])
    combined = dedupe_keywords(draft.keywords + extract_keywords(content))
    draft.keywords = combined[:options.max_keywords]


def filter_prohibited(draft: _Draft, options: AnalysisOptions) -> None:
    prohibited = options.prohibited_word_list
    if not prohibited or not draft.keywords:
        return
    draft.keywords = [keyword for keyword in draft.keywords if not contains_prohibited(keyword, prohibited)]
    if len(draft.keywords) < options.min_keywords:
        replacements = [
            keyword
            for keyword in extract_keywords(f"{draft.title} {draft.description}")
            if not contains_prohibited(keyword, prohibited)
        ]
        draft.keywords = dedupe_keywords(draft.keywords + replacements)[:options.max_keywords]


def _coerce_category(value: Any) -> Optional[int]:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return value if is_valid_video_category(value) else None


def resolve_video_category(draft: _Draft) -> None:
    claimed = _coerce_category(draft.claimed_category)
    if claimed is not None:
        draft.category = claimed
    else:
        draft.category = determine_video_category(draft.title, draft.description, draft.keywords)


def enrich_for_platform(draft: _Draft, options: AnalysisOptions, context: FileContext) -> None:
    group = options.platform_group
    if group == PlatformGroup.FREEPIK:
        if len(draft.keywords) < options.min_keywords and draft.prompt:
            regenerated = extract_keywords(draft.prompt)
            prohibited = options.prohibited_word_list
            if prohibited:
                regenerated = [kw for kw in regenerated if not contains_prohibited(kw, prohibited)]
            draft.keywords = regenerated[:options.max_keywords]
        draft.base_model = FREEPIK_BASE_MODEL
    elif group == PlatformGroup.SHUTTERSTOCK:
        draft.categories = suggest_shutterstock_categories(draft.title, draft.description)
    elif group == PlatformGroup.ADOBE_STOCK:
        draft.categories = suggest_adobe_categories(draft.title, draft.keywords)

    if context.is_video:
        resolve_video_category(draft)


def finalize_keywords(draft: _Draft, options: AnalysisOptions) -> None:
    draft.keywords = dedupe_keywords(draft.keywords)[:options.max_keywords]


# --- Entry point ---

def _to_result(draft: _Draft, context: FileContext) -> AnalysisResult:
    return AnalysisResult(
        filename=context.filename,
        title=draft.title,
        description=draft.description,
        keywords=draft.keywords,
        prompt=draft.prompt,
        base_model=draft.base_model,
        categories=draft.categories,
        category=draft.category,
        is_video=context.is_video,
        is_eps=context.is_eps,
    )


def apply_post_processing(parsed: ParsedResponse, options: AnalysisOptions, context: FileContext) -> AnalysisResult:
    if options.generation_mode == GenerationMode.IMAGE_TO_PROMPT:
        text = parsed.description
        draft = _Draft(description=text, prompt=text)
        if context.is_video:
            resolve_video_category(draft)
        return _to_result(draft, context)

    draft = _Draft(
        title=parsed.title,
        description=parsed.description,
        keywords=list(parsed.keywords),
        prompt=parsed.prompt,
        claimed_category=parsed.category,
    )
    apply_modifiers(draft, options)
    expand_single_words(draft, options)
    backfill_keywords(draft, options)
    filter_prohibited(draft, options)
    enrich_for_platform(draft, options, context)
    finalize_keywords(draft, options)
    return _to_result(draft, context)
