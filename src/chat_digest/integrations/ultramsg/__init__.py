"""UltraMsg (WhatsApp gateway) integration."""

from .client import UltraMsgClient
from .webhook import (
    EventKind,
    InboundMessage,
    classify_event,
    dispatch_event,
    handle_ultramsg_webhook,
)

__all__ = [
    'EventKind',
    'InboundMessage',
    'UltraMsgClient',
    'classify_event',
    'dispatch_event',
    'handle_ultramsg_webhook',
]
