"""
FastAPI webhook service for chat-digest.

Provides:
- POST /whatsapp-webhook for UltraMsg message events
- GET /health

Run with: chat-digest
Or: uvicorn chat_digest.service.server:app --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..utils.config import Config
from .dependencies import get_runtime, set_runtime
from .logging import get_service_logger, setup_service_logging
from .routes import all_routers
from .runtime import ServiceRuntime
from .schemas import SERVICE_VERSION

log = get_service_logger(__name__)


def create_app(runtime: ServiceRuntime | None = None) -> FastAPI:
    """Build the FastAPI app.

    With ``runtime`` given (tests, embedding) it is used as is; otherwise one
    is built from Config() at startup.
    """

    @asynccontextmanager
    async def lifespan(app):
        """FastAPI lifespan handler for startup/shutdown."""
        # Startup
        current = runtime or ServiceRuntime.build(Config())
        set_runtime(current)
        current.start()

        client = current.client
        log.startup(
            version=SERVICE_VERSION,
            host=current.config.SERVICE_HOST,
            port=current.config.SERVICE_PORT,
            provider=client.provider if client else "custom",
            model=client.model if client else "-",
            storage=current.storage_label,
        )

        yield

        # Shutdown
        log.shutdown()
        current.shutdown()
        set_runtime(None)

    app = FastAPI(
        title="chat-digest",
        description="On-demand summaries of buffered WhatsApp conversations",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    for router in all_routers:
        app.include_router(router)
    return app


app = create_app()


def main():
    """Entry point for the webhook service."""
    import argparse

    # Load config for defaults
    config = Config()

    parser = argparse.ArgumentParser(description="chat-digest webhook service")
    parser.add_argument("--host", default=config.SERVICE_HOST, help="Host to bind to")
    parser.add_argument("--port", type=int, default=config.SERVICE_PORT, help="Port to listen on")
    parser.add_argument("--verbose", "-v", action="store_true", help="One line per webhook event and summary run")
    parser.add_argument("--debug", action="store_true", help="Enable low-level DEBUG messages and payload dumps")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload (dev mode)")
    args = parser.parse_args()

    setup_service_logging(
        verbose=args.verbose or config.VERBOSE,
        debug=args.debug or config.DEBUG,
    )

    import uvicorn

    # Rich logging covers requests; keep uvicorn quiet unless debugging
    uvicorn_log_level = "debug" if args.debug else "warning"

    reload_excludes = [
        "__pycache__", "*.pyc", ".git",
        ".logs", "*.log",
    ] if args.reload else None

    uvicorn.run(
        "chat_digest.service.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        reload_excludes=reload_excludes,
        log_level=uvicorn_log_level,
    )
    return 0


__all__ = ["SERVICE_VERSION", "app", "create_app", "get_runtime", "main"]


if __name__ == "__main__":
    main()
