from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterator

from .config_schema import API_PAGE_SIZE_LIMIT
from .dedupe import SeenIds
from .page import PageFetcher
from .post import Post
from .run_log import RunLogger
from .stall import CursorTracker


@dataclass
class StreamStats:
    """Running counters for one stream, readable while it is being consumed."""

    pages: int = 0
    emitted: int = 0
    skipped_entries: int = 0
    duplicates: int = 0
    stop_reason: str | None = None


def iter_timeline(
    fetch_page: PageFetcher,
    owner_id: str,
    target_count: int,
    *,
    max_page_size: int = API_PAGE_SIZE_LIMIT,
    cancel: threading.Event | None = None,
    logger: RunLogger | None = None,
    stats: StreamStats | None = None,
) -> Iterator[Post]:
    """
    Lazily yield up to `target_count` posts from an owner's timeline.

    Pages are requested in cursor order, each capped at `max_page_size` (and at
    the API limit). Nothing is fetched until the consumer asks for the next
    post. The stream stops when the target is reached, a page comes back
    empty, the cursor runs out or repeats, or `cancel` is set. Cancellation is
    checked before every request and every yielded post and ends the stream
    quietly. Fetch errors propagate to the consumer unchanged.
    """
    st = stats if stats is not None else StreamStats()
    if target_count <= 0:
        st.stop_reason = "target_reached"
        return

    ceiling = min(int(max_page_size), API_PAGE_SIZE_LIMIT)
    if ceiling < 1:
        raise ValueError("max_page_size must be >= 1")

    tracker = CursorTracker()
    seen = SeenIds()

    def _cancelled() -> bool:
        if cancel is None or not cancel.is_set():
            return False
        st.stop_reason = "cancelled"
        if logger is not None:
            logger.info("stream_cancelled", pages=st.pages, emitted=st.emitted)
        return True

    def _stop(reason: str, **data: object) -> None:
        st.stop_reason = reason
        if logger is not None:
            logger.info(f"stream_{reason}", pages=st.pages, emitted=st.emitted, **data)

    while st.emitted < target_count:
        if _cancelled():
            return

        page_size = min(target_count - st.emitted, ceiling)
        cursor = tracker.current
        page = fetch_page(owner_id, page_size, cursor)
        st.pages += 1
        st.skipped_entries += page.skipped

        if logger is not None:
            logger.info(
                "page_fetched",
                page=st.pages,
                page_size=page_size,
                posts=len(page.posts),
                has_cursor=bool(cursor),
                has_next_cursor=bool(page.next_cursor),
            )
            if page.skipped:
                logger.warning("page_entries_skipped", page=st.pages, skipped=page.skipped)

        for post in page.posts:
            if st.emitted >= target_count:
                break
            if seen.has_post(post):
                st.duplicates += 1
                continue
            if _cancelled():
                return
            seen.add_post(post)
            st.emitted += 1
            yield post

        if st.emitted >= target_count:
            break

        if not page.posts:
            _stop("exhausted", cause="empty_page")
            return

        status = tracker.check(page.next_cursor)
        if status == "exhausted":
            _stop("exhausted", cause="no_cursor")
            return
        if status == "stalled":
            _stop("stalled", cursor=cursor)
            return
        tracker.advance(page.next_cursor)

    _stop("target_reached")


class TimelineStream:
    """
    Iterator over a timeline with an explicit cancel switch.

    `cancel()` may be called from any thread; the stream stops at its next
    check. `close()` is for the consuming thread and also releases the
    underlying generator.
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        owner_id: str,
        target_count: int,
        *,
        max_page_size: int = API_PAGE_SIZE_LIMIT,
        logger: RunLogger | None = None,
    ) -> None:
        self._cancel = threading.Event()
        self.stats = StreamStats()
        self._posts = iter_timeline(
            fetch_page,
            owner_id,
            target_count,
            max_page_size=max_page_size,
            cancel=self._cancel,
            logger=logger,
            stats=self.stats,
        )

    def __iter__(self) -> "TimelineStream":
        return self

    def __next__(self) -> Post:
        return next(self._posts)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        self._cancel.set()

    def close(self) -> None:
        self._cancel.set()
        self._posts.close()

    def __enter__(self) -> "TimelineStream":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()
