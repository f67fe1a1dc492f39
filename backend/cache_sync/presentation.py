"""Helpers the UI layer uses to filter and summarize cached locations."""
from __future__ import annotations

from typing import Iterable

from cache_sync.entities import Location

# Filter chip meaning "no category filter".
ALL_CATEGORIES = "All"

# Categories offered when a user adds a location.
DEFAULT_CATEGORIES = ["Food & Drink", "Culture", "Shopping", "Stay", "Historic"]


def category_filter_options(locations: Iterable[Location]) -> list[str]:
    """ALL_CATEGORIES followed by the sorted distinct categories of locations."""
    distinct = {c for loc in locations for c in loc.categories if c}
    return [ALL_CATEGORIES] + sorted(distinct)


def toggle_category(selected: set[str], category: str) -> set[str]:
    """
    Return the selection after tapping category. Tapping ALL_CATEGORIES resets
    to it; picking a category drops ALL_CATEGORIES; removing the last category
    falls back to ALL_CATEGORIES.
    """
    if category == ALL_CATEGORIES:
        return {ALL_CATEGORIES}
    current = set(selected) - {ALL_CATEGORIES}
    if category in current:
        current.remove(category)
    else:
        current.add(category)
    return current or {ALL_CATEGORIES}


def matches_filters(location: Location, query: str = "", selected: set[str] | None = None) -> bool:
    """Case-insensitive name search plus category filter (empty selection means all)."""
    if query and query.strip().lower() not in location.name.lower():
        return False
    if not selected or ALL_CATEGORIES in selected:
        return True
    return any(c in selected for c in location.categories)


def filter_locations(locations: Iterable[Location], query: str = "", selected: set[str] | None = None) -> list[Location]:
    return [loc for loc in locations if matches_filters(loc, query, selected)]


def average_rating(ratings: Iterable[float]) -> float:
    """Mean rating; 0.0 when there are no ratings."""
    values = list(ratings)
    if not values:
        return 0.0
    return sum(values) / len(values)
