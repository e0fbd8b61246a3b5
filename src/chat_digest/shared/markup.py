"""Convert Markdown emphasis produced by models into WhatsApp markup."""

from __future__ import annotations

import re


_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC_RE = re.compile(r"__([^_]+)__")
_STRIKETHROUGH_RE = re.compile(r"~~([^~]+)~~")
_MONOSPACE_RE = re.compile(r"`([^`]+)`")
_SOFT_BREAK_RE = re.compile(r"\s\s\n")


def convert_markdown_to_whatsapp(text: str | None) -> str:
    """Rewrite Markdown spans using WhatsApp's delimiters.

    - ``**bold**`` -> ``*bold*``
    - ``__italic__`` -> ``_italic_``
    - ``~~strike~~`` -> ``~strike~``
    - ``code`` in single backticks -> triple backticks
    - two-space soft line breaks -> plain newline
    """
    if not text:
        return ""

    converted = _BOLD_RE.sub(r"*\1*", text)
    converted = _ITALIC_RE.sub(r"_\1_", converted)
    converted = _STRIKETHROUGH_RE.sub(r"~\1~", converted)
    converted = _MONOSPACE_RE.sub(r"```\1```", converted)
    converted = _SOFT_BREAK_RE.sub("\n", converted)

    return converted
