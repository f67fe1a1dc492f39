"""City cache sync: FastAPI backend over the local city/location cache."""
import logging
import os
import subprocess
import sys

from fastapi import FastAPI

from utils.config import FIRESTORE_PROJECT, LOG_LEVEL, REMOTE_SEED_PATH, REMOTE_STORE, SYNC_ON_STARTUP

# Refresh progress and failures from cache_sync are logged at INFO.
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logging.getLogger("cache_sync").setLevel(LOG_LEVEL)
from fastapi.middleware.cors import CORSMiddleware

from db import SessionLocal
from api.cities import router as cities_router
from api.routes import router
from cache_sync.coordinator import SyncCoordinator, SyncError
from cache_sync.local_cache import LocalCache
from cache_sync.remote_store import build_remote_store
from schemas.health import HealthResponse

LOG = logging.getLogger(__name__)

app = FastAPI(
    title="City Cache Sync",
    description="Offline cache of cities and locations mirrored from the remote document store",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8080", "http://127.0.0.1:8080"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")
app.include_router(cities_router, prefix="/api")


@app.get("/api/health", response_model=HealthResponse)
def api_health() -> HealthResponse:
    """Explicit health route so /api/health is always available."""
    return HealthResponse()


def build_coordinator() -> SyncCoordinator:
    """Wire the configured remote store and the local cache into a coordinator."""
    remote = build_remote_store(REMOTE_STORE, seed_path=REMOTE_SEED_PATH, project=FIRESTORE_PROJECT)
    return SyncCoordinator(remote, LocalCache(SessionLocal))


def _run_migrations() -> None:
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        cwd=backend_dir,
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        raise RuntimeError(f"Alembic upgrade failed: {result.stderr or result.stdout}")


@app.on_event("startup")
async def startup() -> None:
    """Run DB migrations, build the coordinator and optionally pull the remote data once."""
    _run_migrations()
    if getattr(app.state, "coordinator", None) is None:
        app.state.coordinator = build_coordinator()
    if SYNC_ON_STARTUP:
        try:
            await app.state.coordinator.refresh_all_cities_and_locations()
        except SyncError as e:
            # Serve whatever is cached; the client can retry via POST /api/sync.
            LOG.warning("Startup sync failed: %s", e)


@app.get("/")
def root() -> dict:
    """Root redirect/info."""
    return {"service": "city-cache-sync", "docs": "/docs", "health": "/api/health"}


if __name__ == "__main__":
    import uvicorn

    from utils.config import PORT

    uvicorn.run(app, host="0.0.0.0", port=PORT)
