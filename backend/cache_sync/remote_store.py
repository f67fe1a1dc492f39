"""Remote document store clients: the narrow read interface the sync core consumes."""
from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol

from cache_sync.documents import RemoteDocument

LOG = logging.getLogger(__name__)

CITIES_COLLECTION = "cities"
LOCATIONS_COLLECTION = "locations"


class RemoteStoreError(Exception):
    """A remote fetch did not complete (network, permission, missing collection...)."""


class RemoteDocumentStore(Protocol):
    async def fetch_collection(self, name: str) -> list[RemoteDocument]:
        ...

    async def fetch_subcollection(
        self, parent_collection: str, parent_id: str, child_collection: str
    ) -> list[RemoteDocument]:
        ...


def _as_fields(data: Any) -> dict[str, Any]:
    return dict(data) if isinstance(data, dict) else {}


class InMemoryRemoteStore:
    """
    Dict-backed remote store for tests and local development.

    Collections are keyed by path: "cities" or "cities/<id>/locations".
    fail_with, when set, is raised from every fetch to simulate an outage.
    """

    def __init__(self, collections: Optional[dict[str, dict[str, dict[str, Any]]]] = None) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = copy.deepcopy(collections or {})
        self.fail_with: Optional[Exception] = None
        self.fetch_count = 0

    @staticmethod
    def subcollection_path(parent_collection: str, parent_id: str, child_collection: str) -> str:
        return f"{parent_collection}/{parent_id}/{child_collection}"

    def put(self, path: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Add or replace a document."""
        self._collections.setdefault(path, {})[doc_id] = copy.deepcopy(fields)

    def put_city(self, city_id: str, fields: dict[str, Any]) -> None:
        self.put(CITIES_COLLECTION, city_id, fields)

    def put_location(self, city_id: str, location_id: str, fields: dict[str, Any]) -> None:
        path = self.subcollection_path(CITIES_COLLECTION, city_id, LOCATIONS_COLLECTION)
        self.put(path, location_id, fields)

    def delete(self, path: str, doc_id: str) -> bool:
        """Remove a document. Returns True if it existed."""
        return self._collections.get(path, {}).pop(doc_id, None) is not None

    def clear(self) -> None:
        self._collections.clear()

    def _read(self, path: str) -> list[RemoteDocument]:
        self.fetch_count += 1
        if self.fail_with is not None:
            raise RemoteStoreError(f"fetch {path} failed: {self.fail_with}") from self.fail_with
        docs = self._collections.get(path, {})
        return [RemoteDocument(id=doc_id, fields=copy.deepcopy(fields)) for doc_id, fields in docs.items()]

    async def fetch_collection(self, name: str) -> list[RemoteDocument]:
        return self._read(name)

    async def fetch_subcollection(
        self, parent_collection: str, parent_id: str, child_collection: str
    ) -> list[RemoteDocument]:
        return self._read(self.subcollection_path(parent_collection, parent_id, child_collection))


def load_seed(path: str | Path) -> InMemoryRemoteStore:
    """
    Build an InMemoryRemoteStore from a JSON seed file.

    Expected shape: {"cities": {"<city id>": {...fields, "locations": {"<loc id>": {...}}}}}.
    A city's "locations" key becomes its sub-collection, not a city field.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not isinstance(data.get(CITIES_COLLECTION, {}), dict):
        raise ValueError("Seed JSON must be an object with a 'cities' object")
    store = InMemoryRemoteStore()
    for city_id, city in data.get(CITIES_COLLECTION, {}).items():
        fields = _as_fields(city)
        locations = fields.pop(LOCATIONS_COLLECTION, {})
        store.put_city(city_id, fields)
        for location_id, location in _as_fields(locations).items():
            store.put_location(city_id, location_id, _as_fields(location))
    LOG.info("Loaded remote seed from %s", path)
    return store


class FirestoreRemoteStore:
    """Remote store backed by the google-cloud-firestore async client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_project(cls, project: Optional[str] = None) -> "FirestoreRemoteStore":
        from google.cloud import firestore

        return cls(firestore.AsyncClient(project=project))

    @staticmethod
    def _to_documents(snapshots: list[Any]) -> list[RemoteDocument]:
        return [RemoteDocument(id=s.id, fields=_as_fields(s.to_dict())) for s in snapshots]

    async def fetch_collection(self, name: str) -> list[RemoteDocument]:
        try:
            snapshots = await self._client.collection(name).get()
        except Exception as e:
            raise RemoteStoreError(f"fetch {name} failed: {e}") from e
        return self._to_documents(snapshots)

    async def fetch_subcollection(
        self, parent_collection: str, parent_id: str, child_collection: str
    ) -> list[RemoteDocument]:
        path = f"{parent_collection}/{parent_id}/{child_collection}"
        try:
            ref = self._client.collection(parent_collection).document(parent_id).collection(child_collection)
            snapshots = await ref.get()
        except Exception as e:
            raise RemoteStoreError(f"fetch {path} failed: {e}") from e
        return self._to_documents(snapshots)


def build_remote_store(kind: str, *, seed_path: Optional[str] = None, project: Optional[str] = None) -> RemoteDocumentStore:
    """Create the configured remote store ("memory" or "firestore")."""
    if kind == "firestore":
        return FirestoreRemoteStore.from_project(project)
    if kind == "memory":
        return load_seed(seed_path) if seed_path else InMemoryRemoteStore()
    raise ValueError(f"Unknown remote store: {kind!r}")
