"""City and location API routes: read the local cache, trigger refreshes."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.deps import get_coordinator
from cache_sync.coordinator import SyncCoordinator, SyncError, SyncResult
from cache_sync.entities import City, Location
from cache_sync.geo import GeoPoint, distance_km_rounded, format_distance
from cache_sync.presentation import average_rating, category_filter_options, filter_locations
from schemas.cities import CityResponse, LocationListResponse, LocationResponse, SyncResponse

router = APIRouter(tags=["cities"])


def _origin(lat: Optional[float], lon: Optional[float]) -> Optional[GeoPoint]:
    if lat is None or lon is None:
        return None
    return GeoPoint(lat, lon)


def _city_response(city: City, origin: Optional[GeoPoint]) -> CityResponse:
    target = GeoPoint(city.latitude, city.longitude)
    return CityResponse(
        id=city.id,
        name=city.name,
        image_url=city.image_url,
        latitude=city.latitude,
        longitude=city.longitude,
        distance_km=distance_km_rounded(origin, target) if origin else None,
        distance=format_distance(origin, target),
    )


def _location_response(loc: Location, origin: Optional[GeoPoint]) -> LocationResponse:
    return LocationResponse(
        id=loc.id,
        city_id=loc.city_id,
        name=loc.name,
        categories=list(loc.categories),
        image_url=loc.image_url,
        address=loc.address,
        latitude=loc.latitude,
        longitude=loc.longitude,
        initial_review=loc.initial_review,
        initial_rating=loc.initial_rating,
        initial_username=loc.initial_username,
        initial_user_id=loc.initial_user_id,
        distance=format_distance(origin, GeoPoint(loc.latitude, loc.longitude)),
    )


def _sync_response(result: SyncResult) -> SyncResponse:
    return SyncResponse(scope=result.scope, cities=result.cities, locations=result.locations)


def _refresh_failed(e: SyncError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("/cities", response_model=list[CityResponse])
async def list_cities(
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    coordinator: SyncCoordinator = Depends(get_coordinator),
) -> list[CityResponse]:
    """List cached cities. With lat/lon, include the distance from that point."""
    origin = _origin(lat, lon)
    return [_city_response(c, origin) for c in await coordinator.list_cities()]


@router.get("/cities/{city_id}/locations", response_model=LocationListResponse)
async def list_locations(
    city_id: str,
    q: str = "",
    category: list[str] = Query(default=[]),
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    coordinator: SyncCoordinator = Depends(get_coordinator),
) -> LocationListResponse:
    """List cached locations of a city (empty for an unknown city), filtered by name and category."""
    origin = _origin(lat, lon)
    locations = await coordinator.list_locations_for_city(city_id)
    ratings = [loc.initial_rating for loc in locations if loc.initial_rating is not None]
    matching = filter_locations(locations, q, set(category))
    return LocationListResponse(
        city_id=city_id,
        categories=category_filter_options(locations),
        average_rating=average_rating(ratings),
        locations=[_location_response(loc, origin) for loc in matching],
    )


@router.post("/cities/refresh", response_model=SyncResponse)
async def refresh_cities(coordinator: SyncCoordinator = Depends(get_coordinator)) -> SyncResponse:
    """Replace the cached cities with the remote collection."""
    try:
        return _sync_response(await coordinator.refresh_cities())
    except SyncError as e:
        raise _refresh_failed(e) from e


@router.post("/cities/{city_id}/locations/refresh", response_model=SyncResponse)
async def refresh_locations(city_id: str, coordinator: SyncCoordinator = Depends(get_coordinator)) -> SyncResponse:
    """Replace the cached locations of one city."""
    try:
        return _sync_response(await coordinator.refresh_locations_for_city(city_id))
    except SyncError as e:
        raise _refresh_failed(e) from e


@router.post("/sync", response_model=SyncResponse)
async def refresh_all(coordinator: SyncCoordinator = Depends(get_coordinator)) -> SyncResponse:
    """Pull every city and every city's locations, then replace the whole cache."""
    try:
        return _sync_response(await coordinator.refresh_all_cities_and_locations())
    except SyncError as e:
        raise _refresh_failed(e) from e
