# agent/concierge/parsing.py
"""
Pure parsers for model output.

Each parser is strict and raises ``ValueError`` (pydantic's ``ValidationError``
and ``json.JSONDecodeError`` are both subclasses) so callers can fall back.
"""
import json
from typing import Any, List, Tuple

from models.agent import SearchCategory, SearchParams

DEFAULT_TOOLS: Tuple[str, ...] = ("profile", "search")
EMPTY_MESSAGE_QUERY = "general search"

# first match wins
CATEGORY_CUES: Tuple[Tuple[SearchCategory, Tuple[str, ...]], ...] = (
    (SearchCategory.HOTELS, ("hotel", "stay")),
    (SearchCategory.FLIGHTS, ("flight", "fly")),
    (SearchCategory.RESTAURANTS, ("restaurant", "food", "pizza", "eat")),
    (SearchCategory.PRODUCTS, ("buy", "shop", "product")),
)


def parse_tool_selection(raw: str) -> List[str]:
    """Parse a JSON array of tool names. Order is kept, duplicates and non-strings dropped."""
    parsed: Any = json.loads((raw or "").strip())
    if not isinstance(parsed, list):
        raise ValueError(f"Expected a JSON array of tool names, got {type(parsed).__name__}")

    names: List[str] = []
    for item in parsed:
        if not isinstance(item, str):
            continue
        name = item.strip().lower()
        if name and name not in names:
            names.append(name)
    return names


def extract_json_object(text: str) -> str:
    """Cut the substring between the first '{' and the last '}' (models like to add prose)."""
    text = (text or "").strip()
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and start < end:
        return text[start:end + 1]
    return text


def parse_search_params(raw: str) -> SearchParams:
    data = json.loads(extract_json_object(raw))
    if not isinstance(data, dict):
        raise ValueError("Search parameters must be a JSON object")
    return SearchParams.model_validate(data)


def detect_category(message: str) -> SearchCategory:
    lowered = (message or "").lower()
    for category, cues in CATEGORY_CUES:
        if any(cue in lowered for cue in cues):
            return category
    return SearchCategory.GENERAL


def heuristic_search_params(message: str) -> SearchParams:
    trimmed = (message or "").strip()
    if not trimmed:
        return SearchParams(query=EMPTY_MESSAGE_QUERY, category=SearchCategory.GENERAL)
    return SearchParams(query=trimmed, category=detect_category(trimmed))
