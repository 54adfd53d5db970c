"""
Pydantic response models for the FPL proxy HTTP API.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from fpl_proxy.cache.ttl import CacheStats


class HealthResponse(BaseModel):
    """Health check response.

    Attributes:
        status: Always ``"OK"`` while the process is serving.
        service: Human-readable service name.
        version: Service version.
        timestamp: Current UTC time, ISO-8601.
        uptime_seconds: Seconds since the app was created.
        cache: Response cache statistics.
        snapshots: Snapshot keys available as last-resort data.
    """

    status: str = "OK"
    service: str
    version: str
    timestamp: str
    uptime_seconds: float = Field(default=0.0, ge=0.0)
    cache: CacheStats
    snapshots: List[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error body returned for every non-2xx response.

    Attributes:
        error: Human-readable message.
        timestamp: UTC time of the failure, ISO-8601.
        request_id: Value of the ``X-Request-Id`` header, if any.
    """

    error: str
    timestamp: str
    request_id: Optional[str] = None
