"""Normalize loosely-typed remote documents into city and location records.

Remote documents carry dynamically typed field values (str, int, float, bool,
list, None) and any field may be missing. Normalization never raises: each
missing or wrong-typed field falls back to its default (``""``, ``0.0``, ``[]``
or ``None`` for optional fields).
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from cache_sync.entities import City, Location

# Closed set of value types a remote field may hold. Missing fields are absent keys.
FieldValue = Union[str, int, float, bool, list, None]

CATEGORY_DELIMITER = ";"
_ESCAPE = "\\"

MIN_RATING = 0
MAX_RATING = 5


@dataclass(frozen=True)
class RemoteDocument:
    """One document from the remote store: store-assigned id plus its field map."""

    id: str
    fields: Mapping[str, FieldValue] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def field_str(fields: Mapping[str, Any], key: str) -> str:
    """String field; "" when missing or not a string."""
    v = fields.get(key)
    return v if isinstance(v, str) else ""


def field_optional_str(fields: Mapping[str, Any], key: str) -> Optional[str]:
    """String field; None when missing or not a string."""
    v = fields.get(key)
    return v if isinstance(v, str) else None


def _to_number(v: Any) -> Optional[float]:
    # bool is an int subclass but never a coordinate.
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        try:
            n = float(v)
        except OverflowError:
            return None
    elif isinstance(v, str):
        try:
            n = float(v.strip())
        except (ValueError, OverflowError):
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def field_float(fields: Mapping[str, Any], key: str) -> float:
    """Numeric field from float, int or numeric string; 0.0 otherwise."""
    n = _to_number(fields.get(key))
    return 0.0 if n is None else n


def field_rating(fields: Mapping[str, Any], key: str) -> Optional[int]:
    """Rating as an int clamped to 0..5 (fractions truncated); None when not numeric."""
    n = _to_number(fields.get(key))
    if n is None:
        return None
    return max(MIN_RATING, min(MAX_RATING, int(n)))


def field_categories(fields: Mapping[str, Any]) -> list[str]:
    """Categories from a list field (string elements only) or a legacy scalar "category"."""
    categories = fields.get("categories")
    if isinstance(categories, list):
        return [c for c in categories if isinstance(c, str)]
    category = fields.get("category")
    if isinstance(category, str):
        return [category]
    return []


# ---------------------------------------------------------------------------
# Category storage codec
# ---------------------------------------------------------------------------

def join_categories(categories: list[str]) -> str:
    """Flatten categories into one stored string.

    Names are joined with ";". A literal ";" or "\\" inside a name is
    backslash-escaped so every list round-trips through split_categories.
    """
    escaped = (
        c.replace(_ESCAPE, _ESCAPE + _ESCAPE).replace(CATEGORY_DELIMITER, _ESCAPE + CATEGORY_DELIMITER)
        for c in categories
    )
    return CATEGORY_DELIMITER.join(escaped)


def split_categories(stored: Optional[str]) -> list[str]:
    """Inverse of join_categories. Blank input gives an empty list, not [""]."""
    if stored is None or not stored.strip():
        return []
    parts: list[str] = []
    current: list[str] = []
    chars = iter(stored)
    for ch in chars:
        if ch == _ESCAPE:
            current.append(next(chars, _ESCAPE))
        elif ch == CATEGORY_DELIMITER:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


# ---------------------------------------------------------------------------
# Document -> record
# ---------------------------------------------------------------------------

def normalize_city(doc: RemoteDocument) -> City:
    """Build a City from a remote city document."""
    f = doc.fields or {}
    return City(
        id=doc.id,
        name=field_str(f, "name"),
        image_url=field_str(f, "imageUrl"),
        latitude=field_float(f, "latitude"),
        longitude=field_float(f, "longitude"),
    )


def normalize_location(doc: RemoteDocument, city_id: str) -> Location:
    """Build a Location for city_id from a remote location document."""
    f = doc.fields or {}
    return Location(
        id=doc.id,
        city_id=city_id,
        name=field_str(f, "name"),
        categories=field_categories(f),
        image_url=field_str(f, "imageUrl"),
        address=field_optional_str(f, "address"),
        latitude=field_float(f, "latitude"),
        longitude=field_float(f, "longitude"),
        initial_review=field_optional_str(f, "initialReview"),
        initial_rating=field_rating(f, "initialRating"),
        initial_username=field_optional_str(f, "initialUsername"),
        initial_user_id=field_optional_str(f, "initialUserId"),
    )


def normalize_cities(docs: list[RemoteDocument]) -> list[City]:
    """Normalize city documents; a document without fields becomes a defaulted City."""
    return [normalize_city(d) for d in docs]


def normalize_locations(docs: list[RemoteDocument], city_id: str) -> list[Location]:
    """Normalize location documents for one city."""
    return [normalize_location(d, city_id) for d in docs]
