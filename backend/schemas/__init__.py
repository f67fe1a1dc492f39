# Schemas package
from .cities import CityResponse, LocationListResponse, LocationResponse, SyncResponse
from .health import HealthResponse

__all__ = [
    "CityResponse",
    "HealthResponse",
    "LocationListResponse",
    "LocationResponse",
    "SyncResponse",
]
