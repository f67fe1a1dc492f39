"""Sync coordinator: pull cities and locations from the remote store into the local cache."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import AsyncIterator

from cache_sync.documents import normalize_cities, normalize_locations
from cache_sync.entities import City, Location
from cache_sync.local_cache import LocalCache
from cache_sync.remote_store import CITIES_COLLECTION, LOCATIONS_COLLECTION, RemoteDocumentStore
from cache_sync.streams import CITIES_SCOPE, locations_scope

LOG = logging.getLogger(__name__)


class SyncError(Exception):
    """A refresh did not complete; the cache keeps its previous contents for that scope."""

    def __init__(self, scope: str, message: str) -> None:
        super().__init__(message)
        self.scope = scope


@dataclass(frozen=True)
class SyncResult:
    scope: str
    cities: int = 0
    locations: int = 0


class SyncCoordinator:
    """
    Keeps the local cache consistent with the remote store.

    Refreshes of one scope are serialized by a per-scope asyncio.Lock held across
    fetch and write, so they finish in the order they were started and their
    writes never interleave. A fetch failure leaves the cache untouched; a write
    failure is rolled back by the cache transaction.
    """

    def __init__(self, remote: RemoteDocumentStore, cache: LocalCache) -> None:
        self._remote = remote
        self._cache = cache
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def cache(self) -> LocalCache:
        return self._cache

    def _lock(self, scope: str) -> asyncio.Lock:
        lock = self._locks.get(scope)
        if lock is None:
            lock = self._locks[scope] = asyncio.Lock()
        return lock

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_cities(self) -> AsyncIterator[list[City]]:
        """Continuously-updated view of cached cities (empty until the first refresh)."""
        return self._cache.watch_cities()

    def get_locations_for_city(self, city_id: str) -> AsyncIterator[list[Location]]:
        """Continuously-updated view of one city's cached locations."""
        return self._cache.watch_locations_for_city(city_id)

    async def list_cities(self) -> list[City]:
        return await self._cache.list_cities()

    async def list_locations_for_city(self, city_id: str) -> list[Location]:
        return await self._cache.list_locations_for_city(city_id)

    # ------------------------------------------------------------------
    # Fetch + normalize
    # ------------------------------------------------------------------

    async def _fetch_cities(self, scope: str) -> list[City]:
        try:
            docs = await self._remote.fetch_collection(CITIES_COLLECTION)
        except Exception as e:
            LOG.warning("Fetching cities failed: %s", e)
            raise SyncError(scope, f"Could not fetch cities: {e}") from e
        return normalize_cities(docs)

    async def _fetch_locations(self, scope: str, city_id: str) -> list[Location]:
        try:
            docs = await self._remote.fetch_subcollection(CITIES_COLLECTION, city_id, LOCATIONS_COLLECTION)
        except Exception as e:
            LOG.warning("Fetching locations for city %s failed: %s", city_id, e)
            raise SyncError(scope, f"Could not fetch locations for city {city_id}: {e}") from e
        return normalize_locations(docs, city_id)

    # ------------------------------------------------------------------
    # Refresh operations
    # ------------------------------------------------------------------

    async def refresh_cities(self) -> SyncResult:
        """Replace the cities scope with the remote cities collection."""
        scope = CITIES_SCOPE
        async with self._lock(scope):
            LOG.info("Refreshing cities")
            cities = await self._fetch_cities(scope)
            try:
                await self._cache.replace_cities(cities)
            except Exception as e:
                LOG.exception("Writing cities to cache failed")
                raise SyncError(scope, f"Could not write cities: {e}") from e
            LOG.info("Refreshed %d cities", len(cities))
            return SyncResult(scope=scope, cities=len(cities))

    async def refresh_locations_for_city(self, city_id: str) -> SyncResult:
        """Replace the locations of city_id; other cities' locations are untouched."""
        if not city_id:
            raise ValueError("city_id must be non-empty")
        scope = locations_scope(city_id)
        async with self._lock(scope):
            LOG.info("Refreshing locations for city %s", city_id)
            locations = await self._fetch_locations(scope, city_id)
            try:
                await self._cache.replace_locations_for_city(city_id, locations)
            except Exception as e:
                LOG.exception("Writing locations for city %s failed", city_id)
                raise SyncError(scope, f"Could not write locations for city {city_id}: {e}") from e
            LOG.info("Refreshed %d locations for city %s", len(locations), city_id)
            return SyncResult(scope=scope, locations=len(locations))

    async def refresh_all_cities_and_locations(self) -> SyncResult:
        """
        Fetch all cities, then each city's locations one after another, and
        replace both tables in one transaction. Nothing is written unless every
        fetch succeeded.
        """
        scope = "all"
        async with self._lock(CITIES_SCOPE):
            LOG.info("Refreshing all cities and locations")
            cities = await self._fetch_cities(scope)
            locations: list[Location] = []
            for city in cities:
                locations.extend(await self._fetch_locations(scope, city.id))
            # Wait out per-city refreshes already in flight so none of them
            # commits older rows after this write.
            city_ids = {c.id for c in cities} | {c.id for c in await self._cache.list_cities()}
            async with contextlib.AsyncExitStack() as stack:
                for city_id in sorted(city_ids):
                    await stack.enter_async_context(self._lock(locations_scope(city_id)))
                try:
                    await self._cache.replace_all(cities, locations)
                except Exception as e:
                    LOG.exception("Writing full refresh to cache failed")
                    raise SyncError(scope, f"Could not write cities and locations: {e}") from e
            LOG.info("Refreshed %d cities and %d locations", len(cities), len(locations))
            return SyncResult(scope=scope, cities=len(cities), locations=len(locations))
