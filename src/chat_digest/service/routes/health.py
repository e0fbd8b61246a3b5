"""Health route."""

import asyncio

from fastapi import APIRouter

from ..dependencies import get_runtime
from ..schemas import HealthResponse, StorageStatus

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Health check endpoint."""
    runtime = get_runtime()
    stats = await asyncio.to_thread(runtime.store.stats)
    client = runtime.client
    return HealthResponse(
        provider=client.provider if client else None,
        model=client.model if client else None,
        storage=StorageStatus(**stats),
    )
