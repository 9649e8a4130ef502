"""
Category taxonomies: rule-based suggestions for Shutterstock and Adobe Stock,
and the 21-entry video taxonomy with its keyword scoring.
"""
import re
from typing import Dict, List, Tuple

# (trigger words, Shutterstock label, Adobe Stock label), in output order.
CATEGORY_RULES: List[Tuple[Tuple[str, ...], str, str]] = [
    (("people", "person", "portrait"), "People", "People"),
    (("nature", "landscape", "outdoor"), "Nature", "Nature"),
    (("business", "office", "professional"), "Business", "Business"),
    (("food", "drink", "meal"), "Food & Drink", "Food"),
    (("abstract", "pattern", "texture"), "Backgrounds/Textures", "Abstract"),
]
DEFAULT_SHUTTERSTOCK_CATEGORY = "Objects"
DEFAULT_ADOBE_CATEGORY = "Illustrations"


def _suggest(text: str, column: int, default: str) -> List[str]:
    lowered = text.lower()
    categories = [
        rule[column]
        for rule in CATEGORY_RULES
        if any(trigger in lowered for trigger in rule[0])
    ]
    return categories or [default]


def suggest_shutterstock_categories(title: str, description: str) -> List[str]:
    return _suggest(f"{title} {description}", 1, DEFAULT_SHUTTERSTOCK_CATEGORY)


def suggest_adobe_categories(title: str, keywords: List[str]) -> List[str]:
    return _suggest(f"{title} {' '.join(keywords)}", 2, DEFAULT_ADOBE_CATEGORY)


# --- Video categories ---

VIDEO_CATEGORIES: Dict[int, str] = {
    1: "Animals",
    2: "Buildings and Architecture",
    3: "Business",
    4: "Drinks",
    5: "The Environment",
    6: "States of Mind",
    7: "Food",
    8: "Graphic Resources",
    9: "Hobbies and Leisure",
    10: "Industry",
    11: "Landscapes",
    12: "Lifestyle",
    13: "People",
    14: "Plants and Flowers",
    15: "Culture and Religion",
    16: "Science",
    17: "Social Issues",
    18: "Sports",
    19: "Technology",
    20: "Transport",
    21: "Travel",
}
DEFAULT_VIDEO_CATEGORY = 8

CATEGORY_KEYWORDS: Dict[int, List[str]] = {
    1: ["animal", "wildlife", "pet", "zoo", "dog", "cat", "bird", "fish", "fauna", "tiger", "lion", "elephant"],
    2: ["building", "architecture", "structure", "house", "apartment", "skyscraper", "office", "construction",
        "tower", "bridge", "monument"],
    3: ["business", "office", "corporate", "meeting", "professional", "commerce", "management", "executive",
        "finance", "marketing", "startup"],
    4: ["drink", "beverage", "coffee", "tea", "juice", "water", "cocktail", "wine", "beer", "alcohol", "smoothie",
        "soda"],
    5: ["environment", "nature", "ecosystem", "conservation", "planet", "earth", "green", "sustainable", "climate",
        "pollution"],
    6: ["mind", "emotion", "feeling", "mental", "psychology", "mood", "thought", "dream", "meditation",
        "consciousness", "awareness"],
    7: ["food", "meal", "dish", "cuisine", "cooking", "restaurant", "recipe", "ingredient", "culinary", "gourmet",
        "breakfast", "dinner"],
    8: ["graphic", "design", "illustration", "vector", "template", "pattern", "texture", "abstract", "digital art",
        "wallpaper", "background"],
    9: ["hobby", "leisure", "entertainment", "recreation", "pastime", "game", "fun", "activity", "craft",
        "collecting", "diy"],
    10: ["industry", "factory", "manufacturing", "production", "industrial", "machinery", "assembly", "automation",
         "process", "engineering"],
    11: ["landscape", "scenery", "vista", "panorama", "horizon", "outdoor", "mountain", "valley", "field", "sky",
         "ocean", "sea"],
    12: ["lifestyle", "living", "daily", "routine", "wellness", "health", "habit", "fashion", "home", "family",
         "community"],
    13: ["people", "person", "human", "individual", "crowd", "group", "portrait", "face", "woman", "man", "child",
         "family"],
    14: ["plant", "flower", "tree", "garden", "botanical", "floral", "leaf", "bloom", "vegetation", "forest",
         "jungle", "grass"],
    15: ["culture", "religion", "tradition", "belief", "ritual", "ceremony", "heritage", "worship", "spiritual",
         "faith", "festival"],
    16: ["science", "research", "laboratory", "experiment", "academic", "study", "discovery", "scientific",
         "chemistry", "physics", "biology"],
    17: ["social", "issue", "problem", "cause", "awareness", "inequality", "justice", "activism", "rights",
         "protest", "movement"],
    18: ["sport", "athlete", "game", "competition", "team", "fitness", "exercise", "training", "match",
         "tournament", "olympics", "champion"],
    19: ["technology", "digital", "electronic", "computer", "device", "gadget", "innovation", "tech", "software",
         "hardware", "internet", "ai"],
    20: ["transport", "vehicle", "car", "train", "plane", "bus", "bicycle", "boat", "travel", "traffic", "highway",
         "airport"],
    21: ["travel", "tourism", "vacation", "destination", "trip", "journey", "explore", "tourist", "hotel", "resort",
         "landmark", "sightseeing"],
}

GRAPHIC_RESOURCE_HINTS = ("background", "texture", "pattern", "wallpaper", "abstract")
GRAPHIC_RESOURCE_BOOST = 5
TITLE_HIT_BONUS = 3

_KEYWORD_PATTERNS: Dict[str, re.Pattern] = {
    keyword: re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)
    for keywords in CATEGORY_KEYWORDS.values()
    for keyword in keywords
}


def is_valid_video_category(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value in VIDEO_CATEGORIES


def determine_video_category(title: str = "", description: str = "", keywords: List[str] = ()) -> int:
    """
    Scores every category by keyword hits over title, description and keywords.

    Each keyword found in the title adds a bonus; background-like vocabulary
    boosts Graphic Resources. The first category with the highest positive
    score wins, Graphic Resources otherwise.
    """
    keywords = list(keywords or [])
    if not title and not keywords:
        return DEFAULT_VIDEO_CATEGORY

    title_lower = (title or "").lower()
    content = f"{title_lower} {(description or '').lower()} {' '.join(keywords).lower()}"

    scores = {category_id: 0 for category_id in VIDEO_CATEGORIES}
    for category_id, category_keywords in CATEGORY_KEYWORDS.items():
        for keyword in category_keywords:
            pattern = _KEYWORD_PATTERNS[keyword]
            hits = len(pattern.findall(content))
            if not hits:
                continue
            scores[category_id] += hits
            if pattern.search(title_lower):
                scores[category_id] += TITLE_HIT_BONUS

    if any(hint in content for hint in GRAPHIC_RESOURCE_HINTS):
        scores[DEFAULT_VIDEO_CATEGORY] += GRAPHIC_RESOURCE_BOOST

    best, highest = DEFAULT_VIDEO_CATEGORY, 0
    for category_id, score in scores.items():
        if score > highest:
            best, highest = category_id, score
    return best


def category_name(category_id: int) -> str:
    return VIDEO_CATEGORIES.get(category_id, VIDEO_CATEGORIES[DEFAULT_VIDEO_CATEGORY])
