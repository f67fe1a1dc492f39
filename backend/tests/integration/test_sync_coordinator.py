"""Integration tests: SyncCoordinator against an in-memory remote store and a real cache DB."""
import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from cache_sync.coordinator import SyncCoordinator, SyncError
from cache_sync.documents import RemoteDocument
from cache_sync.entities import City
from cache_sync.remote_store import InMemoryRemoteStore

pytestmark = pytest.mark.integration


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class SnapshotSequenceStore(InMemoryRemoteStore):
    """Returns a different cities snapshot on each fetch; the first fetch waits for release."""

    def __init__(self, snapshots):
        super().__init__()
        self._snapshots = list(snapshots)
        self.release = asyncio.Event()
        self.first_fetch_started = asyncio.Event()

    async def fetch_collection(self, name):
        index = self.fetch_count
        self.fetch_count += 1
        if index == 0:
            self.first_fetch_started.set()
            await self.release.wait()
        return [RemoteDocument(id=i, fields={"name": n}) for i, n in self._snapshots[index]]


async def _ids(coordinator):
    return sorted(c.id for c in await coordinator.list_cities())


# ---------------------------------------------------------------------------
# refresh_cities
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_refresh_cities_mirrors_remote(coordinator, remote):
    remote.put_city("c2", {"name": "Ghent", "latitude": "51.05", "longitude": 3})
    result = await coordinator.refresh_cities()
    assert (result.scope, result.cities) == ("cities", 2)
    cities = {c.id: c for c in await coordinator.list_cities()}
    assert cities["c1"] == City(id="c1", name="Antwerp", image_url="https://img/antwerp.jpg", latitude=51.2, longitude=4.4)
    assert (cities["c2"].latitude, cities["c2"].longitude) == (51.05, 3.0)


@pytest.mark.asyncio
async def test_refresh_cities_is_idempotent(coordinator):
    await coordinator.refresh_cities()
    once = set(await coordinator.list_cities())
    await coordinator.refresh_cities()
    assert set(await coordinator.list_cities()) == once


@pytest.mark.asyncio
async def test_refresh_cities_drops_cities_removed_remotely(coordinator, remote):
    await coordinator.refresh_cities()
    remote.delete("cities", "c1")
    remote.put_city("c3", {"name": "Bruges"})
    await coordinator.refresh_cities()
    assert await _ids(coordinator) == ["c3"]


@pytest.mark.asyncio
async def test_refresh_cities_fetch_failure_keeps_cache(coordinator, remote):
    await coordinator.refresh_cities()
    remote.put_city("c2", {"name": "Ghent"})
    remote.fail_with = ConnectionError("offline")
    with pytest.raises(SyncError) as exc_info:
        await coordinator.refresh_cities()
    assert exc_info.value.scope == "cities"
    assert await _ids(coordinator) == ["c1"]


@pytest.mark.asyncio
async def test_refresh_cities_write_failure_raises_sync_error(coordinator):
    await coordinator.refresh_cities()
    with patch.object(coordinator.cache, "replace_cities", AsyncMock(side_effect=RuntimeError("disk full"))):
        with pytest.raises(SyncError):
            await coordinator.refresh_cities()
    assert await _ids(coordinator) == ["c1"]


@pytest.mark.asyncio
async def test_refresh_cities_does_not_touch_locations(coordinator):
    await coordinator.refresh_locations_for_city("c1")
    await coordinator.refresh_cities()
    assert len(await coordinator.list_locations_for_city("c1")) == 1


# ---------------------------------------------------------------------------
# refresh_locations_for_city
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_refresh_locations_normalizes_categories(coordinator, remote):
    remote.put_location("c1", "l2", {"name": "Bar", "categories": ["Food", 42, "Drink"]})
    remote.put_location("c1", "l3", {"name": "Bench"})
    result = await coordinator.refresh_locations_for_city("c1")
    assert (result.scope, result.locations) == ("locations:c1", 3)
    by_id = {loc.id: loc for loc in await coordinator.list_locations_for_city("c1")}
    assert by_id["l1"].categories == ["Culture"]
    assert by_id["l2"].categories == ["Food", "Drink"]
    assert by_id["l3"].categories == []


@pytest.mark.asyncio
async def test_refresh_locations_scope_isolation(coordinator, remote):
    """Refreshing city A never changes rows belonging to city B."""
    remote.put_city("c2", {"name": "Ghent"})
    remote.put_location("c2", "g1", {"name": "Gravensteen"})
    await coordinator.refresh_locations_for_city("c2")
    before = await coordinator.list_locations_for_city("c2")

    remote.delete("cities/c2/locations", "g1")
    remote.put_location("c1", "l9", {"name": "MAS"})
    await coordinator.refresh_locations_for_city("c1")

    assert await coordinator.list_locations_for_city("c2") == before
    assert {loc.id for loc in await coordinator.list_locations_for_city("c1")} == {"l1", "l9"}


@pytest.mark.asyncio
async def test_refresh_locations_unknown_city_yields_empty(coordinator):
    result = await coordinator.refresh_locations_for_city("nowhere")
    assert result.locations == 0
    assert await coordinator.list_locations_for_city("nowhere") == []


@pytest.mark.asyncio
async def test_refresh_locations_requires_city_id(coordinator):
    with pytest.raises(ValueError):
        await coordinator.refresh_locations_for_city("")


@pytest.mark.asyncio
async def test_refresh_locations_fetch_failure_keeps_cache(coordinator, remote):
    await coordinator.refresh_locations_for_city("c1")
    remote.fail_with = TimeoutError("slow network")
    with pytest.raises(SyncError) as exc_info:
        await coordinator.refresh_locations_for_city("c1")
    assert exc_info.value.scope == "locations:c1"
    assert [loc.id for loc in await coordinator.list_locations_for_city("c1")] == ["l1"]


# ---------------------------------------------------------------------------
# refresh_all_cities_and_locations
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_end_to_end_full_refresh(coordinator):
    """Antwerp with one legacy-shaped location ends up in both views."""
    result = await coordinator.refresh_all_cities_and_locations()
    assert (result.cities, result.locations) == (1, 1)

    cities_stream = coordinator.get_cities()
    cities = await cities_stream.__anext__()
    await cities_stream.aclose()
    assert [(c.id, c.name, c.latitude, c.longitude) for c in cities] == [("c1", "Antwerp", 51.2, 4.4)]

    locations_stream = coordinator.get_locations_for_city("c1")
    locations = await locations_stream.__anext__()
    await locations_stream.aclose()
    assert len(locations) == 1
    assert locations[0].name == "Cathedral"
    assert locations[0].categories == ["Culture"]
    assert (locations[0].latitude, locations[0].longitude) == (51.22, 4.40)


@pytest.mark.asyncio
async def test_full_refresh_city_without_locations(coordinator, remote):
    remote.put_city("c2", {"name": "Ghent"})
    result = await coordinator.refresh_all_cities_and_locations()
    assert (result.cities, result.locations) == (2, 1)
    assert await coordinator.list_locations_for_city("c2") == []


@pytest.mark.asyncio
async def test_full_refresh_clears_locations_of_removed_cities(coordinator, remote):
    remote.put_city("c2", {"name": "Ghent"})
    remote.put_location("c2", "g1", {"name": "Gravensteen"})
    await coordinator.refresh_all_cities_and_locations()
    remote.delete("cities", "c2")
    await coordinator.refresh_all_cities_and_locations()
    assert await _ids(coordinator) == ["c1"]
    assert await coordinator.list_locations_for_city("c2") == []


@pytest.mark.asyncio
async def test_full_refresh_fetches_sequentially_per_city(coordinator, remote):
    remote.put_city("c2", {"name": "Ghent"})
    remote.put_city("c3", {"name": "Bruges"})
    await coordinator.refresh_all_cities_and_locations()
    # one collection fetch plus one sub-collection fetch per city
    assert remote.fetch_count == 4


@pytest.mark.asyncio
async def test_full_refresh_location_failure_writes_nothing(cache):
    """A failing sub-collection fetch aborts before any cache mutation."""
    remote = InMemoryRemoteStore()
    remote.put_city("c1", {"name": "Antwerp"})
    coordinator = SyncCoordinator(remote, cache)
    await coordinator.refresh_cities()

    remote.put_city("c2", {"name": "Ghent"})
    original = remote.fetch_subcollection
    calls = []

    async def flaky(parent, parent_id, child):
        calls.append(parent_id)
        if len(calls) == 2:
            raise ConnectionError("dropped")
        return await original(parent, parent_id, child)

    remote.fetch_subcollection = flaky
    with pytest.raises(SyncError):
        await coordinator.refresh_all_cities_and_locations()
    assert await _ids(coordinator) == ["c1"]


# ---------------------------------------------------------------------------
# Concurrency and watches
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_concurrent_refreshes_do_not_mix_snapshots(cache):
    """Two overlapping refreshes of one scope finish in start order; the result is one whole snapshot."""
    snapshot_a = [("a1", "A one"), ("a2", "A two")]
    snapshot_b = [("b1", "B one")]
    remote = SnapshotSequenceStore([snapshot_a, snapshot_b])
    coordinator = SyncCoordinator(remote, cache)

    first = asyncio.create_task(coordinator.refresh_cities())
    await remote.first_fetch_started.wait()
    second = asyncio.create_task(coordinator.refresh_cities())
    await asyncio.sleep(0.01)
    # the second refresh is queued behind the first, not fetching
    assert remote.fetch_count == 1
    remote.release.set()
    await asyncio.gather(first, second)

    assert await _ids(coordinator) == ["b1"]


@pytest.mark.asyncio
async def test_get_cities_emits_after_refresh(coordinator):
    stream = coordinator.get_cities()
    assert await stream.__anext__() == []
    await coordinator.refresh_cities()
    cities = await asyncio.wait_for(stream.__anext__(), timeout=1.0)
    assert [c.name for c in cities] == ["Antwerp"]
    await stream.aclose()


@pytest.mark.asyncio
async def test_get_locations_emits_after_city_refresh(coordinator):
    stream = coordinator.get_locations_for_city("c1")
    assert await stream.__anext__() == []
    await coordinator.refresh_locations_for_city("c1")
    locations = await asyncio.wait_for(stream.__anext__(), timeout=1.0)
    assert [loc.categories for loc in locations] == [["Culture"]]
    await stream.aclose()


class GatedLocationStore(InMemoryRemoteStore):
    """The first locations fetch reads its snapshot immediately but returns only after release."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()
        self.first_fetch_started = asyncio.Event()
        self._location_fetches = 0

    async def fetch_subcollection(self, parent_collection, parent_id, child_collection):
        docs = await super().fetch_subcollection(parent_collection, parent_id, child_collection)
        self._location_fetches += 1
        if self._location_fetches == 1:
            self.first_fetch_started.set()
            await self.release.wait()
        return docs


@pytest.mark.asyncio
async def test_full_refresh_waits_for_in_flight_city_refresh(cache):
    """A per-city refresh that fetched before a full refresh cannot commit its older rows after it."""
    remote = GatedLocationStore()
    remote.put_city("c1", {"name": "Antwerp"})
    remote.put_location("c1", "old", {"name": "Old"})
    coordinator = SyncCoordinator(remote, cache)

    city_refresh = asyncio.create_task(coordinator.refresh_locations_for_city("c1"))
    await remote.first_fetch_started.wait()
    remote.delete("cities/c1/locations", "old")
    remote.put_location("c1", "new", {"name": "New"})
    full_refresh = asyncio.create_task(coordinator.refresh_all_cities_and_locations())
    await asyncio.sleep(0.01)
    remote.release.set()
    await asyncio.gather(city_refresh, full_refresh)

    assert [loc.id for loc in await coordinator.list_locations_for_city("c1")] == ["new"]


@pytest.mark.asyncio
async def test_refresh_normalizes_empty_and_oversized_documents(coordinator, remote):
    """Empty documents become defaulted rows and huge numbers never abort the refresh."""
    remote.put_city("c2", {})
    remote.put_city("c3", {"name": "Far", "latitude": 10**400})
    result = await coordinator.refresh_cities()
    assert result.cities == 3
    cities = {c.id: c for c in await coordinator.list_cities()}
    assert cities["c2"] == City(id="c2")
    assert (cities["c3"].name, cities["c3"].latitude) == ("Far", 0.0)
