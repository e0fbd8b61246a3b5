import os
from datetime import timezone, tzinfo
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote_plus
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROVIDER_GEMINI = "gemini"
PROVIDER_OPENAI = "openai"

DEFAULT_MODELS = {
    PROVIDER_GEMINI: "gemini-2.5-flash-lite",
    PROVIDER_OPENAI: "gpt-4o-mini",
}

DEFAULT_TRIGGER_SENTINEL = "{{# summarize #}}"
DEFAULT_SUMMARY_HEADER = "*_Résumé des messages de WhatsApp_*"
DEFAULT_BROADCAST_SUFFIX = "@newsletter"



def get_default_config_dir() -> Path:
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(xdg_config_home) / "chat-digest"


def _env_file_has_chat_digest_key(path: Path) -> bool:
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if stripped.startswith("export "):
                stripped = stripped[len("export "):].strip()
            if "=" not in stripped:
                continue
            key = stripped.split("=", 1)[0].strip()
            if key.startswith("CHAT_DIGEST_"):
                return True
    except OSError:
        return False
    return False


def get_dotenv_path() -> Path:
    env_override = os.environ.get("CHAT_DIGEST_ENV_FILE")
    if env_override:
        return Path(env_override).expanduser().resolve()

    cwd_env = Path.cwd() / ".env"
    if cwd_env.is_file() and _env_file_has_chat_digest_key(cwd_env):
        return cwd_env

    return get_default_config_dir() / ".env"


DOTENV_PATH = get_dotenv_path()


class Config(BaseSettings):
    # --- Storage --- #
    DATABASE_URL: str = Field(default="", description="Full SQLAlchemy URL; overrides the POSTGRES_* settings when set")
    POSTGRES_HOST: str = Field(default="localhost", description="PostgreSQL server hostname (Set via CHAT_DIGEST_POSTGRES_HOST)")
    POSTGRES_PORT: int = Field(default=5432, description="PostgreSQL server port")
    POSTGRES_USER: str = Field(default="chat_digest", description="PostgreSQL username")
    POSTGRES_PASSWORD: str = Field(default="", description="PostgreSQL password")
    POSTGRES_DATABASE: str = Field(default="chat_digest", description="PostgreSQL database name")
    POSTGRES_SSLMODE: str = Field(default="require", description="libpq sslmode (disable, prefer, require, ...); a sslmode in DATABASE_URL wins")
    POSTGRES_STATEMENT_TIMEOUT_MS: int = Field(default=20000, description="Per-statement timeout enforced by the server")
    POSTGRES_POOL_SIZE: int = Field(default=5, description="Connections kept in the pool")
    POSTGRES_MAX_OVERFLOW: int = Field(default=10, description="Extra connections allowed above the pool size")

    # --- Summary backend --- #
    SUMMARY_PROVIDER: str = Field(default=PROVIDER_GEMINI, description="Generative backend: 'gemini' or 'openai'")
    SUMMARY_MODEL: str = Field(default="", description="Model identifier sent to the backend (empty = provider default)")
    GEMINI_API_KEY: str = Field(default="", description="Google Gemini API key (falls back to GEMINI_API_KEY / GOOGLE_API_KEY)")
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key (falls back to OPENAI_API_KEY)")
    OPENAI_BASE_URL: Optional[str] = Field(default=None, description="Optional OpenAI-compatible endpoint")
    SUMMARY_TEMPERATURE: float = Field(default=0.0, description="Sampling temperature for summaries")
    SUMMARY_TOP_P: float = Field(default=0.0, description="Nucleus sampling top-p for summaries")
    SUMMARY_TOP_K: int = Field(default=1, description="Top-k for backends that support it")

    # --- Messaging gateway (UltraMsg) --- #
    ULTRAMSG_BASE_URL: str = Field(default="https://api.ultramsg.com", description="Gateway API root")
    ULTRAMSG_INSTANCE_ID: str = Field(default="", description="Gateway instance id")
    ULTRAMSG_TOKEN: str = Field(default="", description="Gateway auth token")
    ULTRAMSG_TIMEOUT_SECONDS: float = Field(default=30.0, description="HTTP timeout for outbound sends")

    # --- Conversation behavior --- #
    TRIGGER_SENTINEL: str = Field(default=DEFAULT_TRIGGER_SENTINEL, description="Exact message body that requests a summary")
    SUMMARY_HEADER: str = Field(default=DEFAULT_SUMMARY_HEADER, description="First line of every delivered summary")
    BROADCAST_SUFFIX: str = Field(default=DEFAULT_BROADCAST_SUFFIX, description="Sender suffix of broadcast channels to ignore")
    TIMEZONE: str = Field(default="", description="IANA zone for rendered dates (empty = server local time)")
    DATETIME_FORMAT: str = Field(default="%d/%m/%Y %H:%M:%S", description="strftime format for rendered dates")

    # --- Service --- #
    SERVICE_HOST: str = Field(default="0.0.0.0", description="Host for the webhook service to bind to")
    SERVICE_PORT: int = Field(default=8000, description="Port for the webhook service to listen on")
    VERBOSE: bool = Field(default=False, description="Verbose logging")
    DEBUG: bool = Field(default=False, description="Enable raw debug logging output")

    model_config = SettingsConfigDict(
        env_prefix="CHAT_DIGEST_",
        env_file=DOTENV_PATH,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra='ignore'
    )

    def resolve_timezone(self) -> tzinfo | None:
        """Return the configured zone, or None for server local time."""
        name = (self.TIMEZONE or "").strip()
        if not name:
            return None
        if name.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(name)


def build_database_url(cfg: Config) -> str:
    """Build the SQLAlchemy URL for the message store.

    DATABASE_URL wins when set; a bare ``postgres://`` or ``postgresql://``
    scheme is pinned to the psycopg2 driver.
    """
    if cfg.DATABASE_URL:
        url = cfg.DATABASE_URL
        for prefix in ("postgres://", "postgresql://"):
            if url.startswith(prefix):
                return "postgresql+psycopg2://" + url[len(prefix):]
        return url

    encoded_password = quote_plus(cfg.POSTGRES_PASSWORD)
    return (
        f"postgresql+psycopg2://{cfg.POSTGRES_USER}:{encoded_password}"
        f"@{cfg.POSTGRES_HOST}:{cfg.POSTGRES_PORT}/{cfg.POSTGRES_DATABASE}"
    )


def has_database_credentials(cfg: Config | None = None) -> bool:
    """Check if database credentials are configured.

    True when DATABASE_URL is set or POSTGRES_PASSWORD is non-empty.
    """
    if cfg is None:
        cfg = Config()
    if cfg.DATABASE_URL and cfg.DATABASE_URL.strip():
        return True
    return bool(cfg.POSTGRES_PASSWORD and cfg.POSTGRES_PASSWORD.strip())


def redacted_settings(cfg: Config) -> dict[str, Any]:
    """Settings dump with secrets masked, for startup logs."""
    secret_keys = {"POSTGRES_PASSWORD", "GEMINI_API_KEY", "OPENAI_API_KEY", "ULTRAMSG_TOKEN", "DATABASE_URL"}
    out: dict[str, Any] = {}
    for key, value in cfg.model_dump().items():
        if key in secret_keys and value:
            out[key] = "***"
        else:
            out[key] = value
    return out
