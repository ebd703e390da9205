"""Excerpt extraction and matched-span markup for search results."""

from __future__ import annotations

import re

from unisearch.retrieval.types import Highlights, VideoWithAuthor

MARK_OPEN = "<mark>"
MARK_CLOSE = "</mark>"


def _pattern(query: str) -> re.Pattern[str]:
    # User input is escaped so metacharacters match literally.
    return re.compile(re.escape(query), re.IGNORECASE)


def highlight_text(text: str, query: str) -> str:
    """Wrap every case-insensitive occurrence of ``query`` in mark tags, keeping original casing."""
    if not query:
        return text
    return _pattern(query).sub(lambda m: f"{MARK_OPEN}{m.group(0)}{MARK_CLOSE}", text)


def excerpt_around(text: str, query: str, context_chars: int = 100) -> str | None:
    """Marked excerpt spanning ``context_chars`` either side of the first match, or None."""
    match = _pattern(query).search(text) if query else None
    if match is None:
        return None
    start = max(0, match.start() - context_chars)
    end = min(len(text), match.end() + context_chars)
    return highlight_text(text[start:end], query)


def preview(text: str | None, length: int = 200) -> str | None:
    """Unmarked leading slice of ``text``."""
    if not text:
        return None
    return text[:length]


def content_highlights(
    query: str,
    title: str | None,
    body: str | None,
    context_chars: int = 100,
    preview_chars: int = 200,
) -> Highlights:
    return _build(query, title, [body], context_chars, preview_chars)


def video_highlights(
    query: str,
    video: VideoWithAuthor,
    context_chars: int = 100,
    preview_chars: int = 200,
) -> Highlights:
    """Highlights for a video; the transcript is preferred over the description as body."""
    return _build(query, video.title, [video.transcript, video.description], context_chars, preview_chars)


def _build(
    query: str,
    title: str | None,
    bodies: list[str | None],
    context_chars: int,
    preview_chars: int,
) -> Highlights:
    highlights = Highlights()
    pattern = _pattern(query)

    if title and pattern.search(title):
        highlights.title = highlight_text(title, query)

    present = [b for b in bodies if b]
    for body in present:
        excerpt = excerpt_around(body, query, context_chars)
        if excerpt is not None:
            highlights.content = excerpt
            break
    else:
        if present:
            highlights.content = preview(present[0], preview_chars)

    return highlights
