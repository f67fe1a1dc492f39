"""FastAPI dependencies."""
from fastapi import HTTPException, Request, status

from cache_sync.coordinator import SyncCoordinator


def get_coordinator(request: Request) -> SyncCoordinator:
    """Return the SyncCoordinator built at startup."""
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Sync coordinator not ready")
    return coordinator
