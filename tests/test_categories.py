"""Tests for keyword extraction and category taxonomies."""

from stockmeta.tasks.categories import (
    VIDEO_CATEGORIES,
    category_name,
    determine_video_category,
    is_valid_video_category,
    suggest_adobe_categories,
    suggest_shutterstock_categories,
)
from stockmeta.tasks.keywords import dedupe_keywords, extract_keywords


class TestExtractKeywords:
    """Tests for the generic keyword extractor."""

    def test_filters_stopwords_and_short_tokens(self):
        assert extract_keywords("The cat and the dog, with a hat!") == ["cat", "dog", "hat"]

    def test_first_occurrence_order(self):
        assert extract_keywords("Sun sea sun SEA sand") == ["sun", "sea", "sand"]

    def test_limit(self):
        text = " ".join(f"word{i}" for i in range(80))
        assert len(extract_keywords(text)) == 50
        assert len(extract_keywords(text, limit=5)) == 5

    def test_dedupe_is_case_insensitive(self):
        assert dedupe_keywords(["Beach", "beach", "BEACH", "sun"]) == ["Beach", "sun"]


class TestPlatformCategories:
    """Tests for Shutterstock and Adobe Stock suggestions."""

    def test_shutterstock_all_matches(self):
        categories = suggest_shutterstock_categories(
            "Portrait outdoor", "professional food abstract"
        )
        assert categories == ["People", "Nature", "Business", "Food & Drink", "Backgrounds/Textures"]

    def test_adobe_uses_keywords(self):
        assert suggest_adobe_categories("Plain", ["landscape"]) == ["Nature"]


class TestVideoCategory:
    """Tests for the 21-entry video taxonomy."""

    def test_taxonomy(self):
        assert list(VIDEO_CATEGORIES) == list(range(1, 22))
        assert category_name(8) == "Graphic Resources"
        assert category_name(99) == "Graphic Resources"

    def test_default_without_title_and_keywords(self):
        assert determine_video_category("", "a dog in the park", []) == 8

    def test_title_hits_weigh_more(self):
        assert determine_video_category("Tourist", "", ["car", "train", "bus"]) == 21

    def test_first_best_category_wins_ties(self):
        assert determine_video_category("", "", ["coffee", "food"]) == 4

    def test_background_boost(self):
        assert determine_video_category("Smiling woman", "", ["background"]) == 8

    def test_validity(self):
        assert is_valid_video_category(1)
        assert is_valid_video_category(21)
        assert not is_valid_video_category(22)
        assert not is_valid_video_category(False)
        assert not is_valid_video_category("3")
