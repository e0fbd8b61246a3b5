"""chat-digest: on-demand WhatsApp conversation summaries."""

__version__ = "0.1.0"
