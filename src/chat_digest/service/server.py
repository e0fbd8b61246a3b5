"""Service entry point re-exports."""

from .api import SERVICE_VERSION, app, create_app, main
from .runtime import ServiceRuntime

__all__ = [
    "ServiceRuntime",
    "app",
    "create_app",
    "main",
    "SERVICE_VERSION",
]
