"""Text normalization utilities for article text.

Two concerns live here:

1. **Embedding input preparation** -- collapse whitespace, trim and cap the
   length of any text before an embedding backend sees it.  The cap guards
   against pathological feed items and model context limits.

2. **Article text assembly** -- RSS items carry a plain-text snippet, an
   HTML ``content`` body, or both.  The same ``"{title} {body}"`` string is
   used for indexing and for the semantic duplicate check, so both paths
   must build it identically.
"""

import re

from bs4 import BeautifulSoup

_WHITESPACE_RE = re.compile(r"\s+")

DEFAULT_MAX_EMBEDDING_CHARS = 512


def collapse_whitespace(text: str) -> str:
    """Replace every whitespace run with a single space and trim the ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def prepare_embedding_text(text: str | None, max_chars: int = DEFAULT_MAX_EMBEDDING_CHARS) -> str:
    """Normalize *text* for an embedding backend.

    ``None`` is treated as the empty string.  Truncation happens after
    whitespace collapsing so the character budget is spent on content.
    """
    if not text:
        return ""
    cleaned = collapse_whitespace(text)
    if max_chars > 0 and len(cleaned) > max_chars:
        cleaned = cleaned[:max_chars].rstrip()
    return cleaned


def strip_markup(text: str | None) -> str:
    """Drop HTML tags and unescape entities from a feed ``content`` body."""
    if not text:
        return ""
    soup = BeautifulSoup(text, "html.parser")
    return collapse_whitespace(soup.get_text(separator=" "))


def article_body(description: str | None, content: str | None) -> str:
    """Pick the body text for an article: the snippet, else the stripped content."""
    snippet = collapse_whitespace(description or "")
    if snippet:
        return snippet
    return strip_markup(content)


def build_article_text(title: str | None, body_text: str | None) -> str:
    """Join title and body the way both indexing and dedup embed articles."""
    return f"{title or ''} {body_text or ''}".strip()
