from __future__ import annotations

from typing import Any, Mapping

from .errors import MalformedResponseError
from .normalize import _coerce_id, _coerce_str, _list, _mapping, post_from_legacy_tweet
from .page import TimelinePage, build_page, cursor_token, resolve_next_cursor
from .post import Post


def _bottom_cursor(content: Mapping[str, Any]) -> str | None:
    cursor = _mapping(_mapping(content.get("operation")).get("cursor"))
    if _coerce_str(cursor.get("cursorType")) != "Bottom":
        return None
    return cursor_token(cursor.get("value"))


def _entry_tweet_id(entry: Mapping[str, Any]) -> str | None:
    content = _mapping(entry.get("content"))
    tweet = _mapping(_mapping(_mapping(content.get("item")).get("content")).get("tweet"))
    return _coerce_id(tweet.get("id"))


def _resolve_post(
    tweet_id: str,
    tweets: Mapping[str, Any],
    users: Mapping[str, Any],
    *,
    is_pinned: bool = False,
    sort_index: str | None = None,
) -> Post | None:
    tweet = tweets.get(tweet_id)
    if not isinstance(tweet, Mapping):
        return None

    user_id = _coerce_id(tweet.get("user_id_str"))
    author = users.get(user_id) if user_id else None
    if not isinstance(author, Mapping):
        return None

    return post_from_legacy_tweet(tweet, author, is_pinned=is_pinned, sort_index=sort_index)


def normalize_legacy_page(payload: Any, *, request_cursor: str = "") -> TimelinePage:
    """
    Normalize a legacy (flat) timeline response.

    Posts live in `globalObjects.tweets` and are referenced by ID from the
    `timeline.instructions` entries; authors are looked up in
    `globalObjects.users`. Entries that cannot be resolved are skipped and
    counted. A pinned post is placed first when the page has other posts.
    """
    if not isinstance(payload, Mapping):
        raise MalformedResponseError("Legacy timeline response must be a JSON object")

    global_objects = payload.get("globalObjects")
    timeline = payload.get("timeline")
    if not isinstance(global_objects, Mapping) or not isinstance(timeline, Mapping):
        raise MalformedResponseError(
            "Legacy timeline response is missing `globalObjects` or `timeline`"
        )

    tweets = _mapping(global_objects.get("tweets"))
    users = _mapping(global_objects.get("users"))

    ordered: list[Post] = []
    pinned: Post | None = None
    skipped = 0
    bottom: str | None = None

    for raw_instruction in _list(timeline.get("instructions")):
        instruction = _mapping(raw_instruction)

        pin_entry = _mapping(_mapping(instruction.get("pinEntry")).get("entry"))
        if pin_entry:
            pin_id = _entry_tweet_id(pin_entry)
            if pin_id:
                post = _resolve_post(pin_id, tweets, users, is_pinned=True)
                if post is None:
                    skipped += 1
                else:
                    pinned = post

        for raw_entry in _list(_mapping(instruction.get("addEntries")).get("entries")):
            entry = _mapping(raw_entry)
            content = _mapping(entry.get("content"))

            cursor_value = _bottom_cursor(content)
            if cursor_value is not None:
                bottom = cursor_value
                continue

            tweet_id = _entry_tweet_id(entry)
            if tweet_id is None:
                continue

            post = _resolve_post(
                tweet_id,
                tweets,
                users,
                sort_index=_coerce_str(entry.get("sortIndex")),
            )
            if post is None:
                skipped += 1
                continue
            ordered.append(post)

        replace_entry = _mapping(_mapping(instruction.get("replaceEntry")).get("entry"))
        cursor_value = _bottom_cursor(_mapping(replace_entry.get("content")))
        if cursor_value is not None:
            bottom = cursor_value

    # A pinned post alone does not make a page non-empty.
    if pinned is not None and ordered:
        ordered.insert(0, pinned)

    return build_page(
        ordered,
        next_cursor=resolve_next_cursor(bottom, request_cursor),
        skipped=skipped,
    )
