"""Route router collection for app registration."""

from .health import router as health_router
from .webhooks import router as webhooks_router

all_routers = [
    health_router,
    webhooks_router,
]

__all__ = ["all_routers"]
