from __future__ import annotations

import re
from html import unescape


_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

SPEECH_MAX_CHARS = 1400


def strip_html(text: str) -> str:
    """Remove HTML tags and decode HTML entities in a string."""
    if not text:
        return ""
    unescaped = unescape(text)
    return _TAG_RE.sub("", unescaped)


def sanitize_for_speech(text: str, max_chars: int = SPEECH_MAX_CHARS) -> str:
    """Collapse whitespace, drop control characters and cap the length for TTS input."""
    if not text:
        return ""
    collapsed = _WHITESPACE_RE.sub(" ", strip_html(text))
    return _CONTROL_RE.sub("", collapsed).strip()[:max_chars]


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence some models add around JSON."""
    return _FENCE_RE.sub("", text.strip()).strip()
