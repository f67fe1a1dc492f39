"""Strongly-typed city and location records handed to the UI layer."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class City:
    id: str
    name: str = ""
    image_url: str = ""
    latitude: float = 0.0
    longitude: float = 0.0


@dataclass(frozen=True)
class Location:
    id: str
    city_id: str
    name: str = ""
    categories: list[str] = field(default_factory=list)
    image_url: str = ""
    address: Optional[str] = None
    latitude: float = 0.0
    longitude: float = 0.0
    initial_review: Optional[str] = None
    initial_rating: Optional[int] = None
    initial_username: Optional[str] = None
    initial_user_id: Optional[str] = None
