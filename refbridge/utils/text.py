"""Text processing utilities."""

import re

_INVISIBLE_CHARS = re.compile("[\\u200b\\u00ad]")
_WHITESPACE_RUN = re.compile(r"\s+")


def normalise_spaces(s: str) -> str:
    """
    Collapse consecutive whitespace characters into single spaces.

    Zero-width spaces and soft hyphens are dropped first so that text copied
    out of rendered pages compares equal to what a reader sees.

    Args:
        s: Input string

    Returns:
        String with normalized whitespace
    """
    if not s:
        return ""

    return _WHITESPACE_RUN.sub(" ", _INVISIBLE_CHARS.sub("", s))


def clean_text(text: str) -> str:
    """
    Clean text for display and comparison.

    Args:
        text: Raw text to clean

    Returns:
        Cleaned text
    """
    if not text:
        return ""

    cleaned = text.replace('\0', '')
    cleaned = normalise_spaces(cleaned)

    return cleaned.strip()


def truncate(text: str, limit: int) -> str:
    """Cut text down to at most ``limit`` characters, marking the cut."""
    if len(text) <= limit:
        return text
    return text[: max(limit - 1, 0)].rstrip() + "…"


def quote(value: str) -> str:
    """Wrap a value in double quotes, escaping embedded quotes."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
