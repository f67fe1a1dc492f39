"""On-device cache of cities and locations: atomic scope replacement plus reactive reads."""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import AsyncIterator, Optional

from sqlalchemy.orm import sessionmaker

from cache_sync.documents import join_categories, split_categories
from cache_sync.entities import City, Location
from cache_sync.streams import CITIES_SCOPE, ScopeNotifier, locations_scope, watch_scope
from models.city import City as CityRow
from models.location import Location as LocationRow
from repositories.city_repository import list_cities as repo_list_cities
from repositories.city_repository import replace_cities as repo_replace_cities
from repositories.location_repository import list_locations_for_city as repo_list_locations_for_city
from repositories.location_repository import replace_all_locations as repo_replace_all_locations
from repositories.location_repository import replace_locations_for_city as repo_replace_locations_for_city

LOG = logging.getLogger(__name__)


def city_to_row(city: City) -> CityRow:
    return CityRow(
        id=city.id,
        name=city.name,
        image_url=city.image_url,
        latitude=city.latitude,
        longitude=city.longitude,
    )


def city_from_row(row: CityRow) -> City:
    return City(
        id=row.id,
        name=row.name,
        image_url=row.image_url,
        latitude=row.latitude,
        longitude=row.longitude,
    )


def location_to_row(location: Location) -> LocationRow:
    return LocationRow(
        id=location.id,
        city_id=location.city_id,
        name=location.name,
        categories=join_categories(location.categories),
        image_url=location.image_url,
        address=location.address,
        latitude=location.latitude,
        longitude=location.longitude,
        initial_review=location.initial_review,
        initial_rating=location.initial_rating,
        initial_username=location.initial_username,
        initial_user_id=location.initial_user_id,
    )


def location_from_row(row: LocationRow) -> Location:
    return Location(
        id=row.id,
        city_id=row.city_id,
        name=row.name,
        categories=split_categories(row.categories),
        image_url=row.image_url,
        address=row.address,
        latitude=row.latitude,
        longitude=row.longitude,
        initial_review=row.initial_review,
        initial_rating=row.initial_rating,
        initial_username=row.initial_username,
        initial_user_id=row.initial_user_id,
    )


class LocalCache:
    """
    Two scopes of cached data: all cities, and the locations of each city.

    Writes replace a whole scope inside one DB transaction (run on a worker
    thread) and then notify that scope's watchers on the event loop. DB work is
    serialized by a thread lock: in-memory SQLite shares a single connection.
    """

    def __init__(self, session_factory: sessionmaker, notifier: Optional[ScopeNotifier] = None) -> None:
        self._session_factory = session_factory
        self.notifier = notifier or ScopeNotifier()
        self._db_lock = threading.Lock()

    # -- synchronous DB work (worker thread) --------------------------------

    def _read_cities(self) -> list[City]:
        with self._db_lock, self._session_factory() as session:
            return [city_from_row(r) for r in repo_list_cities(session)]

    def _read_locations(self, city_id: str) -> list[Location]:
        with self._db_lock, self._session_factory() as session:
            return [location_from_row(r) for r in repo_list_locations_for_city(session, city_id)]

    def _write_cities(self, cities: list[City]) -> None:
        with self._db_lock, self._session_factory() as session:
            repo_replace_cities(session, [city_to_row(c) for c in cities])

    def _write_locations(self, city_id: str, locations: list[Location]) -> None:
        with self._db_lock, self._session_factory() as session:
            repo_replace_locations_for_city(session, city_id, [location_to_row(loc) for loc in locations])

    def _write_all(self, cities: list[City], locations: list[Location]) -> None:
        with self._db_lock, self._session_factory() as session:
            try:
                repo_replace_cities(session, [city_to_row(c) for c in cities], commit=False)
                repo_replace_all_locations(session, [location_to_row(loc) for loc in locations], commit=False)
                session.commit()
            except Exception:
                session.rollback()
                raise

    # -- async API -----------------------------------------------------------

    async def list_cities(self) -> list[City]:
        return await asyncio.to_thread(self._read_cities)

    async def list_locations_for_city(self, city_id: str) -> list[Location]:
        return await asyncio.to_thread(self._read_locations, city_id)

    async def replace_cities(self, cities: list[City]) -> None:
        """Atomically replace the cities scope."""
        await asyncio.to_thread(self._write_cities, cities)
        self.notifier.publish(CITIES_SCOPE)

    async def replace_locations_for_city(self, city_id: str, locations: list[Location]) -> None:
        """Atomically replace the locations scope of one city."""
        await asyncio.to_thread(self._write_locations, city_id, locations)
        self.notifier.publish(locations_scope(city_id))

    async def replace_all(self, cities: list[City], locations: list[Location]) -> None:
        """Atomically replace both tables; every location scope is notified."""
        await asyncio.to_thread(self._write_all, cities, locations)
        self.notifier.publish(CITIES_SCOPE)
        self.notifier.publish_prefix(locations_scope(""))

    def watch_cities(self) -> AsyncIterator[list[City]]:
        """Current cities, then a new snapshot after every write to the cities scope."""
        return watch_scope(self.notifier, CITIES_SCOPE, self.list_cities)

    def watch_locations_for_city(self, city_id: str) -> AsyncIterator[list[Location]]:
        """Current locations of city_id, then a new snapshot after every write to that scope."""
        return watch_scope(self.notifier, locations_scope(city_id), lambda: self.list_locations_for_city(city_id))
