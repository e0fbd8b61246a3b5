"""
Rich-formatted logging for the chat-digest service.

Two verbosity levels on top of the default (warnings and errors only):
- Verbose (--verbose/-v): one readable line per webhook event and summary run
- Debug (--debug): low-level DEBUG messages, payload dumps, debug log file

Usage:
    from .logging import get_service_logger, setup_service_logging

    # At startup
    setup_service_logging(verbose=args.verbose, debug=args.debug)

    # Create logger for a module
    log = get_service_logger(__name__)
    log.webhook_event("trigger", "33600000000@c.us", "33611111111@c.us")
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

from logging.handlers import RotatingFileHandler
from rich.console import Console, ConsoleRenderable
from rich.errors import MarkupError
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

# Context variable to track request IDs across async operations
_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

SERVICE_THEME = Theme({
    "api.path": "green",
    "request_id": "dim yellow",
    "chat.id": "bold blue",
    "event.trigger": "bold magenta",
    "event.ignored": "dim",
    "event.stored": "cyan",
    "timing": "dim cyan",
    "success": "bold green",
    "failure": "bold red",
    "muted": "dim",
})

ICONS = {
    "request": "📨",
    "response": "📤",
    "summary": "📝",
    "stored": "💾",
    "ignored": "·",
    "success": "✓",
    "error": "✗",
}

_verbose = False
_debug = False
_console: Console | None = None


def get_console() -> Console:
    """Get the shared console instance."""
    global _console
    if _console is None:
        # force_terminal=True ensures Rich renders markup even when backgrounded
        _console = Console(theme=SERVICE_THEME, stderr=True, force_terminal=True)
    return _console


class ServiceRichHandler(RichHandler):
    """RichHandler that renders a line as plain text when its markup is invalid.

    Library modules log chat ids, message previews and exception text through
    plain ``logging``; a stray ``[/tag]`` in those must not break the call.
    """

    def render_message(self, record: logging.LogRecord, message: str) -> ConsoleRenderable:
        try:
            return super().render_message(record, message)
        except MarkupError:
            return Text(message)


def setup_service_logging(verbose: bool = False, debug: bool = False) -> None:
    """
    Configure logging for the service.

    Args:
        verbose: Enable INFO level logs
        debug: Enable DEBUG logs and the rotating debug log file
    """
    global _verbose, _debug

    _verbose = verbose or debug
    _debug = debug

    console_level = logging.INFO if (verbose or debug) else logging.WARNING
    root_level = logging.DEBUG if debug else console_level

    console = get_console()

    log_prefix = os.getenv("CHAT_DIGEST_LOG_PREFIX", "").strip()
    log_dir = os.getenv("CHAT_DIGEST_LOG_DIR", ".logs")

    class _PrefixFilter(logging.Filter):
        def filter(self, record: logging.LogRecord) -> bool:
            if not log_prefix:
                return True
            if record.args:
                record.msg = record.msg % record.args
                record.args = ()
            # Escape [ for Rich markup
            record.msg = f"\\[{log_prefix}] {record.msg}"
            return True

    def _add_debug_file_handler() -> None:
        os.makedirs(log_dir, exist_ok=True)
        log_path = os.path.join(log_dir, "chat-digest.debug.log")
        try:
            with open(log_path, "a", encoding="utf-8"):
                pass
        except OSError as exc:
            print(f"[chat-digest] Failed to open debug log file: {log_path} ({exc})", file=sys.stderr)
            return
        root_logger = logging.getLogger()
        for handler in root_logger.handlers:
            if isinstance(handler, RotatingFileHandler) and handler.baseFilename == os.path.abspath(log_path):
                return

        handler = RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        handler.addFilter(_PrefixFilter())
        root_logger.addHandler(handler)

    logging.basicConfig(
        level=root_level,
        format="%(message)s",
        handlers=[ServiceRichHandler(
            console=console,
            show_path=False,
            show_time=True,
            omit_repeated_times=False,
            log_time_format="[%I:%M %p]",
            show_level=False,
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
            markup=True,
        )],
        force=True,
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(_PrefixFilter())
        handler.setLevel(console_level)
    if verbose or debug:
        _add_debug_file_handler()

    noisy_loggers = [
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpx",
        "httpcore",
        "asyncio",
        "sqlalchemy.engine",
        "google_genai",
        "google_genai.models",
        "openai",
        "watchfiles",
        "watchfiles.main",
    ]
    for logger_name in noisy_loggers:
        if logger_name == "uvicorn.access" and not debug:
            # The gateway posts every message; access lines drown everything else
            logging.getLogger(logger_name).setLevel(logging.ERROR)
        else:
            logging.getLogger(logger_name).setLevel(logging.WARNING if not debug else logging.INFO)


def generate_request_id() -> str:
    """Generate a short request ID for tracing."""
    return uuid4().hex[:8]


def set_request_id(request_id: str) -> None:
    """Set the current request ID (for async context)."""
    _request_id.set(request_id)


def get_request_id() -> str | None:
    """Get the current request ID."""
    return _request_id.get()


def _shorten(text: str, max_len: int = 80) -> str:
    text = text.replace("\n", " ")
    return text[:max_len] + "..." if len(text) > max_len else text


class ServiceLogger:
    """
    Rich-formatted logger for the chat-digest service.

    Provides structured logging methods for webhook and summary events.
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)
        self._console = get_console()

    # -------------------------------------------------------------------------
    # Standard logging methods (delegate to underlying logger)
    # -------------------------------------------------------------------------

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self._logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs) -> None:
        self._logger.exception(msg, *args, **kwargs)

    # -------------------------------------------------------------------------
    # Structured service logging methods
    # -------------------------------------------------------------------------

    def _prefix(self) -> str:
        req_id = get_request_id()
        return f"[request_id]\\[{req_id}][/request_id] " if req_id else ""

    def startup(self, version: str, host: str, port: int, provider: str, model: str, storage: str) -> None:
        """Log service startup with configuration summary."""
        if _debug:
            self._logger.info(f"Service v{version} starting on {host}:{port}")
            self._logger.info(f"Summary backend: {escape(provider)}:{escape(model)}")
            self._logger.info(f"Storage: {escape(storage)}")
            return

        table = Table(title="chat-digest Service Started", show_header=False, box=None)
        table.add_column("Key", style="dim")
        table.add_column("Value")
        table.add_row("Version", f"[bold]{version}[/bold]")
        table.add_row("Endpoint", f"[bold green]http://{host}:{port}[/bold green]")
        table.add_row("Backend", escape(f"{provider}:{model}"))
        table.add_row("Storage", escape(storage))

        self._console.print()
        self._console.print(Panel(table, border_style="green"))
        self._console.print()

    def shutdown(self) -> None:
        """Log service shutdown."""
        if _debug:
            self._logger.info("Service shutting down")
            return

        self._console.print("[dim]Service shutting down...[/dim]")

    def webhook_event(self, kind: str, sender_id: str, recipient_id: str, body: str = "") -> None:
        """One line per classified inbound event."""
        style = {
            "trigger": "event.trigger",
            "ignorable": "event.ignored",
            "ordinary": "event.stored",
        }.get(kind, "muted")
        line = (
            f"{self._prefix()}{ICONS['request']} [{style}]{kind}[/{style}] "
            f"[chat.id]{escape(sender_id)}[/chat.id] → [chat.id]{escape(recipient_id)}[/chat.id]"
        )
        if _verbose and body:
            line += f' [muted]"{escape(_shorten(body))}"[/muted]'
        self._logger.info(line)

    def summary_started(self, sender_id: str, recipient_id: str, from_me: bool) -> None:
        self._logger.info(
            f"{self._prefix()}{ICONS['summary']} Summary requested for "
            f"[chat.id]{escape(sender_id)}[/chat.id] ↔ [chat.id]{escape(recipient_id)}[/chat.id]"
            f"{' [muted](from me)[/muted]' if from_me else ''}"
        )

    def summary_finished(self, outcome: str, count: int, target: str | None, elapsed_ms: float) -> None:
        ok = outcome == "summarized"
        icon = ICONS["success"] if ok else ICONS["error"]
        style = "success" if ok else "failure"
        target_part = f" → [chat.id]{escape(target)}[/chat.id]" if target else ""
        msg = (
            f"{self._prefix()}[{style}]{icon} {escape(outcome)}[/{style}] "
            f"{count} msg(s){target_part} [timing]{elapsed_ms:.0f}ms[/timing]"
        )
        if ok:
            self._logger.info(msg)
        else:
            self._logger.warning(msg)

    def payload(self, label: str, data: dict[str, Any]) -> None:
        """Dump an inbound payload (debug only)."""
        if not _debug:
            return
        try:
            self._logger.debug(
                "%s: %s", label, json.dumps(data, ensure_ascii=False, default=str, indent=2),
                extra={"markup": False},
            )
        except (TypeError, ValueError):
            self._logger.debug("%s: %s", label, data, extra={"markup": False})


def get_service_logger(name: str) -> ServiceLogger:
    """Get a ServiceLogger for a module."""
    return ServiceLogger(name)
