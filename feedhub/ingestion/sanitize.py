"""Removal of actively dangerous constructs from feed text.

Only script/style blocks, ``javascript:`` URIs and inline event handlers are
stripped. Other markup is left for the renderer to sanitize.
"""

import re

_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?(?:</script\s*>|$)", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style\b[^>]*>.*?(?:</style\s*>|$)", re.IGNORECASE | re.DOTALL)
_JS_URI_RE = re.compile(r"javascript\s*:", re.IGNORECASE)
# An on*= handler inside a tag, with its quoted or bare value.
_EVENT_HANDLER_RE = re.compile(
    r"""(<[^>]*?)\s+on[a-z]+\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)""",
    re.IGNORECASE,
)


def _strip_event_handlers(text: str) -> str:
    previous = None
    while previous != text:
        previous = text
        text = _EVENT_HANDLER_RE.sub(r"\1", text)
    return text


def sanitize(text: str) -> str:
    """Strip dangerous constructs and surrounding whitespace."""
    if not text:
        return ""
    text = _SCRIPT_RE.sub("", text)
    text = _STYLE_RE.sub("", text)
    text = _strip_event_handlers(text)
    text = _JS_URI_RE.sub("", text)
    return text.strip()
