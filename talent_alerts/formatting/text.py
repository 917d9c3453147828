"""HTML stripping and truncation for email excerpts."""

import re

_TAG_RE = re.compile(r"<[^>]*>?")

DEFAULT_MAX_LENGTH = 300
ELLIPSIS = "..."


def strip_tags(text: str | None) -> str:
    return _TAG_RE.sub("", text or "")


def truncate_description(text: str | None, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Strip tags, then cut to ``max_length`` visible characters plus an ellipsis."""
    stripped = strip_tags(text)
    if len(stripped) <= max_length:
        return stripped
    return stripped[:max_length].strip() + ELLIPSIS
