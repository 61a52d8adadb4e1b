"""Escaping and shortening of strings embedded in the XML report."""

import re
from typing import Iterable, Optional

XML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    "&": "&amp;",
    '"': "&quot;",
    "'": "&apos;",
}
_XML_SPECIAL = re.compile(r"[<>&\"']")
_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9]+")
_LINE_BREAK = re.compile(r"\r?\n")

MAX_ID_LENGTH = 220

# Frames from the runner's internals and third-party code
DEFAULT_STACK_FILTERS = (
    "node_modules",
    "playwright/lib",
    "internal/",
    "site-packages",
    "dist-packages",
)


def escape_xml(text: Optional[str]) -> str:
    """Escape the five XML special characters."""
    if not text:
        return ""
    if not _XML_SPECIAL.search(text):
        return text
    return _XML_SPECIAL.sub(lambda m: XML_ESCAPES[m.group(0)], text)


def escape_cdata(text: str) -> str:
    """Split any ``]]>`` so the text can sit inside one CDATA section."""
    return text.replace("]]>", "]]]]><![CDATA[>")


def sanitize_id(text: str) -> str:
    """Turn arbitrary text into a filesystem- and XML-safe identifier.

    Runs of non-alphanumeric characters collapse to a single underscore and
    the result is capped at MAX_ID_LENGTH. Sanitizing an already sanitized
    identifier returns it unchanged.
    """
    return _NON_IDENTIFIER.sub("_", text)[:MAX_ID_LENGTH]


def identity_for(title_path: Iterable[str]) -> str:
    """Stable identity of a test, derived from its title path."""
    return sanitize_id("_".join(title_path))


def clean_stack(stack: Optional[str], max_frames: Optional[int] = None,
                filters: Iterable[str] = DEFAULT_STACK_FILTERS) -> str:
    """Drop blank lines and framework/dependency frames, keep at most max_frames lines.

    max_frames=None keeps every remaining frame.
    """
    if not stack:
        return ""
    filters = tuple(filters)
    kept = []
    for line in _LINE_BREAK.split(stack):
        if max_frames is not None and len(kept) >= max_frames:
            break
        trimmed = line.strip()
        if not trimmed:
            continue
        if any(marker in trimmed for marker in filters):
            continue
        kept.append(line)
    return "\n".join(kept)
