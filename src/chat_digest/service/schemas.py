"""Pydantic response models for the service API."""

from pydantic import BaseModel

from .. import __version__

SERVICE_VERSION = __version__


class StorageStatus(BaseModel):
    """Message buffer status."""
    available: bool = False
    messages: int = 0
    senders: int = 0


class HealthResponse(BaseModel):
    """Simple health check response."""
    status: str = "ok"
    version: str = SERVICE_VERSION
    provider: str | None = None
    model: str | None = None
    storage: StorageStatus | None = None
