"""Shared FastAPI dependencies and service helpers."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .runtime import ServiceRuntime

_runtime: "ServiceRuntime | None" = None


def set_runtime(runtime: "ServiceRuntime | None") -> None:
    """Set the global service runtime."""
    global _runtime
    _runtime = runtime


def get_runtime() -> "ServiceRuntime":
    """Get the initialized service runtime."""
    if _runtime is None:
        raise RuntimeError("Service not initialized")
    return _runtime
