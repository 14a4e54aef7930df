from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Sequence

from .post import Post


@dataclass(frozen=True)
class TimelinePage:
    """One normalized response: posts in API order plus the cursor to resume from."""

    posts: tuple[Post, ...] = ()
    next_cursor: str = ""
    skipped: int = 0


PageFetcher = Callable[[str, int, str], TimelinePage]
ThreadFetcher = Callable[[str], TimelinePage]


def cursor_token(value: Any) -> str | None:
    """Return a cursor exactly as received, or None when it is missing or blank."""
    if isinstance(value, str) and value.strip():
        return value
    return None


def resolve_next_cursor(bottom_cursor: str | None, request_cursor: str) -> str:
    """
    Return the cursor to continue from, or "" when the timeline is exhausted.

    Cursors are opaque and passed back unchanged. A bottom cursor that points
    back at the request cursor would loop forever, so it is treated the same
    as no cursor at all.
    """
    value = cursor_token(bottom_cursor)
    if value is None:
        return ""
    if value == (request_cursor or ""):
        return ""
    return value


def build_page(posts: Sequence[Post], *, next_cursor: str, skipped: int) -> TimelinePage:
    ordered = tuple(replace(post, position=i) for i, post in enumerate(posts))
    return TimelinePage(posts=ordered, next_cursor=next_cursor, skipped=int(skipped))
