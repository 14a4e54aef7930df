from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from .graph_timeline import normalize_conversation_page, normalize_graph_page
from .page import TimelinePage

_OFFLINE_USER_ID = "1000"
_OFFLINE_SCREEN_NAME = "offline_user"
_FIRST_POST_ID = 1_900_000_000_000_000_000
_EPOCH = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def offline_post_id(index: int) -> str:
    """ID of the index-th (0-based, newest first) offline post."""
    return str(_FIRST_POST_ID - index)


def _tweet_result(index: int, *, user_id: str) -> dict[str, Any]:
    post_id = offline_post_id(index)
    created = _EPOCH - timedelta(hours=index)
    return {
        "__typename": "Tweet",
        "rest_id": post_id,
        "core": {
            "user_results": {
                "result": {
                    "__typename": "User",
                    "rest_id": user_id,
                    "legacy": {"screen_name": _OFFLINE_SCREEN_NAME, "name": "Offline User"},
                }
            }
        },
        "views": {"count": str(100 + index)},
        "legacy": {
            "id_str": post_id,
            "user_id_str": user_id,
            "conversation_id_str": post_id,
            "created_at": created.strftime("%a %b %d %H:%M:%S +0000 %Y"),
            "full_text": f"Offline post number {index} #offline",
            "lang": "en",
            "favorite_count": index % 7,
            "reply_count": index % 3,
            "retweet_count": index % 5,
            "quote_count": 0,
            "entities": {"hashtags": [{"text": "offline"}], "user_mentions": [], "urls": []},
        },
    }


def _tweet_entry(index: int, *, user_id: str) -> dict[str, Any]:
    post_id = offline_post_id(index)
    return {
        "entryId": f"tweet-{post_id}",
        "sortIndex": post_id,
        "content": {
            "entryType": "TimelineTimelineItem",
            "itemContent": {
                "itemType": "TimelineTweet",
                "tweetDisplayType": "Tweet",
                "tweet_results": {"result": _tweet_result(index, user_id=user_id)},
            },
        },
    }


def _tombstone_entry(tag: str) -> dict[str, Any]:
    return {
        "entryId": f"tweet-tombstone-{tag}",
        "content": {
            "entryType": "TimelineTimelineItem",
            "itemContent": {
                "itemType": "TimelineTweet",
                "tweet_results": {
                    "result": {
                        "__typename": "TweetTombstone",
                        "tombstone": {"text": {"text": "This Post is unavailable."}},
                    }
                },
            },
        },
    }


def _cursor_entry(kind: str, value: str) -> dict[str, Any]:
    return {
        "entryId": f"cursor-{kind.lower()}-{value}",
        "content": {"entryType": "TimelineTimelineCursor", "cursorType": kind, "value": value},
    }


@dataclass
class OfflineTimelineFetcher:
    """
    Network-free page fetcher for smoke checks.

    Serves `total_posts` synthetic posts as graph-query payloads, with one
    tombstone per page, and runs them through the real graph normalizer.
    """

    total_posts: int = 450
    calls: list[tuple[str, int, str]] = field(default_factory=list)

    def raw_page(self, owner_id: str, page_size: int, cursor: str) -> dict[str, Any]:
        start = int(cursor.split(":", 1)[1]) if cursor.startswith("offset:") else 0
        end = min(self.total_posts, start + max(0, page_size))

        entries: list[dict[str, Any]] = [_cursor_entry("Top", f"top:{start}")]
        entries.extend(_tweet_entry(i, user_id=owner_id) for i in range(start, end))
        if end > start:
            entries.insert(1 + (end - start) // 2, _tombstone_entry(str(start)))
        # Past the end the API keeps returning the same bottom cursor.
        entries.append(_cursor_entry("Bottom", f"offset:{end}"))

        return {
            "data": {
                "user": {
                    "result": {
                        "__typename": "User",
                        "timeline_v2": {
                            "timeline": {
                                "instructions": [
                                    {"type": "TimelineClearCache"},
                                    {"type": "TimelineAddEntries", "entries": entries},
                                ]
                            }
                        },
                    }
                }
            }
        }

    def __call__(self, owner_id: str, page_size: int, cursor: str) -> TimelinePage:
        self.calls.append((owner_id, page_size, cursor))
        return normalize_graph_page(self.raw_page(owner_id, page_size, cursor), request_cursor=cursor)


@dataclass
class OfflineThreadFetcher:
    """Serves a two-post conversation for any ID that belongs to the offline timeline."""

    total_posts: int = 450
    calls: list[str] = field(default_factory=list)

    def __call__(self, post_id: str) -> TimelinePage:
        self.calls.append(post_id)

        entries: list[dict[str, Any]] = []
        try:
            index = _FIRST_POST_ID - int(post_id)
        except ValueError:
            index = -1
        if 0 <= index < self.total_posts:
            entries.append(_tweet_entry(index, user_id=_OFFLINE_USER_ID))
            if index + 1 < self.total_posts:
                entries.append(_tweet_entry(index + 1, user_id=_OFFLINE_USER_ID))

        payload = {
            "data": {
                "threaded_conversation_with_injections_v2": {
                    "instructions": [{"type": "TimelineAddEntries", "entries": entries}]
                }
            }
        }
        return normalize_conversation_page(payload)
