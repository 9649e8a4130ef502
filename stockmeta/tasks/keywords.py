"""
Keyword extraction from free text, used to backfill short keyword lists.
"""
import re
from typing import Iterable, List

STOPWORDS = frozenset([
    "the", "and", "for", "with", "this", "that", "are", "from",
    "has", "have", "had", "was", "were", "will", "been", "being",
    "can", "could", "may", "might", "must", "should", "would",
    "its", "his", "her", "they", "them", "their", "our", "your",
    "not", "but", "than", "then", "when", "how",
])

NON_WORD_REGEX = re.compile(r"[^\w]")


def extract_keywords(content: str, limit: int = 50) -> List[str]:
    """
    Lowercased tokens of `content` longer than two characters, stopwords
    removed, first occurrence order, at most `limit` of them.
    """
    keywords: List[str] = []
    seen = set()
    for word in content.lower().split():
        cleaned = NON_WORD_REGEX.sub("", word)
        if len(cleaned) <= 2 or cleaned in STOPWORDS or cleaned in seen:
            continue
        seen.add(cleaned)
        keywords.append(cleaned)
        if len(keywords) >= limit:
            break
    return keywords


def dedupe_keywords(keywords: Iterable[str]) -> List[str]:
    """Drops case-insensitive duplicates, keeping the first spelling."""
    unique: List[str] = []
    seen = set()
    for keyword in keywords:
        key = keyword.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(keyword)
    return unique


def contains_prohibited(text: str, prohibited: List[str]) -> bool:
    lowered = text.lower()
    return any(word.lower() in lowered for word in prohibited)
