"""Pydantic schemas for the cached city and location API."""
from typing import Optional

from pydantic import BaseModel, Field


class CityResponse(BaseModel):
    """Cached city; distance fields are set when the request carries an origin."""

    id: str
    name: str
    image_url: str
    latitude: float
    longitude: float
    distance_km: Optional[int] = None
    distance: Optional[str] = None


class LocationResponse(BaseModel):
    """Cached location of a city."""

    id: str
    city_id: str
    name: str
    categories: list[str] = Field(default_factory=list)
    image_url: str
    address: Optional[str] = None
    latitude: float
    longitude: float
    initial_review: Optional[str] = None
    initial_rating: Optional[int] = None
    initial_username: Optional[str] = None
    initial_user_id: Optional[str] = None
    distance: Optional[str] = None


class LocationListResponse(BaseModel):
    """Locations of one city plus the filter chips and average seed rating."""

    city_id: str
    categories: list[str]
    average_rating: float
    locations: list[LocationResponse]


class SyncResponse(BaseModel):
    """Outcome of a successful refresh."""

    scope: str
    cities: int = 0
    locations: int = 0
