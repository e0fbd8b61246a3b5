"""Process-wide components shared by every request.

ServiceRuntime wires the message store, the summary backend, the gateway
client and the pipeline together once at startup.
"""

from dataclasses import dataclass

from ..clients import LLMClient, create_client
from ..core.pipeline import ConversationPipeline
from ..core.summarizer import Summarizer
from ..integrations.ultramsg.client import UltraMsgClient
from ..memory.postgresql import MessageStore
from ..utils.config import Config, has_database_credentials, redacted_settings
from .logging import get_service_logger

log = get_service_logger(__name__)


@dataclass
class ServiceRuntime:
    config: Config
    store: MessageStore
    client: LLMClient | None
    summarizer: Summarizer
    delivery: UltraMsgClient
    pipeline: ConversationPipeline

    @classmethod
    def build(
        cls,
        config: Config,
        store: MessageStore | None = None,
        client: LLMClient | None = None,
        delivery: UltraMsgClient | None = None,
        summarizer: Summarizer | None = None,
    ) -> "ServiceRuntime":
        """Assemble the runtime, creating whatever wasn't passed in."""
        tz = config.resolve_timezone()
        store = store or MessageStore.from_config(config)
        delivery = delivery or UltraMsgClient.from_config(config)
        if summarizer is None:
            client = client or create_client(config)
            summarizer = Summarizer(client, tz=tz, datetime_format=config.DATETIME_FORMAT)
        pipeline = ConversationPipeline(
            store,
            summarizer,
            delivery,
            summary_header=config.SUMMARY_HEADER,
            tz=tz,
            datetime_format=config.DATETIME_FORMAT,
        )
        return cls(
            config=config,
            store=store,
            client=client,
            summarizer=summarizer,
            delivery=delivery,
            pipeline=pipeline,
        )

    @property
    def storage_label(self) -> str:
        return self.store.engine.url.render_as_string(hide_password=True)

    def start(self) -> None:
        log.debug(f"Settings: {redacted_settings(self.config)}")
        if not has_database_credentials(self.config):
            log.warning("No database credentials configured (set CHAT_DIGEST_DATABASE_URL or CHAT_DIGEST_POSTGRES_PASSWORD)")
        if not self.store.ensure_schema():
            log.warning("Message table unavailable; messages will not be buffered until the database is reachable")
        if not self.config.ULTRAMSG_INSTANCE_ID or not self.config.ULTRAMSG_TOKEN:
            log.warning("UltraMsg instance id or token not set; summaries cannot be delivered")

    def shutdown(self) -> None:
        self.store.dispose()
