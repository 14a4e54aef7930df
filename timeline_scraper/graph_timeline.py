from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Union

from .errors import MalformedResponseError
from .normalize import _coerce_id, _coerce_int, _coerce_str, _list, _mapping, post_from_legacy_tweet
from .page import TimelinePage, build_page, cursor_token, resolve_next_cursor
from .post import Post

_PIN_INSTRUCTION = "TimelinePinEntry"
_SELF_THREAD = "SelfThread"
_TOMBSTONE_TYPES = frozenset({"TweetTombstone", "TweetUnavailable"})


@dataclass(frozen=True)
class PlainTweet:
    node: Mapping[str, Any]


@dataclass(frozen=True)
class LimitedTweet:
    """A tweet wrapped in visibility / limited-actions metadata."""

    node: Mapping[str, Any]
    limited_actions: Mapping[str, Any]


@dataclass(frozen=True)
class Tombstone:
    typename: str
    reason: str | None = None


@dataclass(frozen=True)
class UnknownResult:
    typename: str | None


TweetResult = Union[PlainTweet, LimitedTweet, Tombstone, UnknownResult]


def classify_result(result: Any) -> TweetResult:
    """Classify a `tweet_results.result` node by its `__typename`."""
    node = _mapping(result)
    typename = _coerce_str(node.get("__typename"))

    if typename == "Tweet":
        return PlainTweet(node)

    if typename == "TweetWithVisibilityResults":
        inner = node.get("tweet")
        if isinstance(inner, Mapping):
            return LimitedTweet(inner, _mapping(node.get("limitedActionResults")))
        return UnknownResult(typename)

    if typename in _TOMBSTONE_TYPES:
        tombstone = _mapping(node.get("tombstone"))
        text = _mapping(tombstone.get("text"))
        reason = _coerce_str(text.get("text")) or _coerce_str(node.get("reason"))
        return Tombstone(typename, reason)

    # Older payloads omit __typename on plain tweets.
    if typename is None and isinstance(node.get("legacy"), Mapping) and node.get("rest_id"):
        return PlainTweet(node)

    return UnknownResult(typename)


def unwrap_tweet(result: Any) -> Mapping[str, Any] | None:
    """Return the tweet node inside a result wrapper, or None for tombstones and unknowns."""
    variant = classify_result(result)
    if isinstance(variant, PlainTweet):
        return variant.node
    if isinstance(variant, LimitedTweet):
        return variant.node
    if isinstance(variant, Tombstone):
        return None
    if isinstance(variant, UnknownResult):
        return None
    raise TypeError(f"unhandled tweet result variant: {variant!r}")


def _author(node: Mapping[str, Any]) -> Mapping[str, Any] | None:
    user = _mapping(_mapping(_mapping(node.get("core")).get("user_results")).get("result"))
    if not user:
        return None

    user_id = _coerce_id(user.get("rest_id"))
    legacy = _mapping(user.get("legacy"))
    core = _mapping(user.get("core"))
    if user_id is None:
        user_id = _coerce_id(legacy.get("id_str"))
    if user_id is None:
        return None

    return {
        "id_str": user_id,
        "screen_name": _coerce_str(core.get("screen_name")) or _coerce_str(legacy.get("screen_name")),
        "name": _coerce_str(core.get("name")) or _coerce_str(legacy.get("name")),
    }


def _referenced_id(result: Any) -> str | None:
    node = unwrap_tweet(result)
    if node is None:
        return None
    return _coerce_id(node.get("rest_id")) or _coerce_id(_mapping(node.get("legacy")).get("id_str"))


def post_from_graph_result(
    result: Any,
    *,
    is_pinned: bool = False,
    is_self_thread: bool = False,
    sort_index: str | None = None,
) -> Post | None:
    node = unwrap_tweet(result)
    if node is None:
        return None

    legacy = dict(_mapping(node.get("legacy")))
    if not legacy:
        return None
    if not _coerce_id(legacy.get("id_str")):
        rest_id = _coerce_id(node.get("rest_id"))
        if rest_id is None:
            return None
        legacy["id_str"] = rest_id

    note = _mapping(_mapping(_mapping(node.get("note_tweet")).get("note_tweet_results")).get("result"))
    long_text = _coerce_str(note.get("text"))

    quoted = _mapping(node.get("quoted_status_result")).get("result")
    retweeted = _mapping(legacy.get("retweeted_status_result")).get("result")

    return post_from_legacy_tweet(
        legacy,
        _author(node),
        text=long_text,
        views=_coerce_int(_mapping(node.get("views")).get("count")),
        quoted_id=_referenced_id(quoted) if quoted is not None else None,
        retweeted_id=_referenced_id(retweeted) if retweeted is not None else None,
        is_pinned=is_pinned,
        is_self_thread=is_self_thread,
        sort_index=sort_index,
    )


@dataclass(frozen=True)
class _TweetItem:
    result: Any
    display_type: str | None
    is_pinned: bool
    sort_index: str | None


def _item_cursor(item_content: Mapping[str, Any]) -> tuple[str | None, str | None]:
    return _coerce_str(item_content.get("cursorType")), cursor_token(item_content.get("value"))


def _walk_entry(
    entry: Mapping[str, Any],
    *,
    is_pinned: bool,
    cursors: list[str],
) -> Iterator[_TweetItem]:
    """Yield tweet items from one entry in order, collecting bottom cursors on the way."""
    content = _mapping(entry.get("content"))
    sort_index = _coerce_str(entry.get("sortIndex"))

    cursor_type, value = _item_cursor(content)
    if cursor_type is not None:
        if cursor_type == "Bottom" and value:
            cursors.append(value)
        return

    yield from _walk_content(content, is_pinned=is_pinned, sort_index=sort_index, cursors=cursors)


def _walk_content(
    content: Mapping[str, Any],
    *,
    is_pinned: bool,
    sort_index: str | None,
    cursors: list[str],
) -> Iterator[_TweetItem]:
    item_content = _mapping(content.get("itemContent"))
    if item_content:
        cursor_type, value = _item_cursor(item_content)
        if cursor_type is not None:
            if cursor_type == "Bottom" and value:
                cursors.append(value)
        elif "tweet_results" in item_content:
            yield _TweetItem(
                result=_mapping(item_content.get("tweet_results")).get("result"),
                display_type=_coerce_str(item_content.get("tweetDisplayType")),
                is_pinned=is_pinned,
                sort_index=sort_index,
            )

    # Conversation modules nest further items; flatten them in order.
    for raw_item in _list(content.get("items")):
        item = _mapping(_mapping(raw_item).get("item"))
        if item:
            yield from _walk_content(item, is_pinned=is_pinned, sort_index=sort_index, cursors=cursors)


def _iter_instruction_entries(
    instructions: list[Any],
) -> Iterator[tuple[Mapping[str, Any], bool]]:
    for raw_instruction in instructions:
        instruction = _mapping(raw_instruction)
        is_pin = _coerce_str(instruction.get("type")) == _PIN_INSTRUCTION

        for raw_entry in _list(instruction.get("entries")):
            yield _mapping(raw_entry), is_pin

        single = instruction.get("entry")
        if isinstance(single, Mapping):
            yield single, is_pin


def _normalize_instructions(instructions: list[Any], *, request_cursor: str) -> TimelinePage:
    posts: list[Post] = []
    cursors: list[str] = []
    skipped = 0

    for entry, is_pin in _iter_instruction_entries(instructions):
        for item in _walk_entry(entry, is_pinned=is_pin, cursors=cursors):
            post = post_from_graph_result(
                item.result,
                is_pinned=item.is_pinned,
                is_self_thread=item.display_type == _SELF_THREAD,
                sort_index=item.sort_index,
            )
            if post is None:
                skipped += 1
                continue
            posts.append(post)

    # A pinned post alone does not make a page non-empty.
    if posts and all(p.is_pinned for p in posts):
        posts = []

    bottom = cursors[-1] if cursors else None
    return build_page(
        posts,
        next_cursor=resolve_next_cursor(bottom, request_cursor),
        skipped=skipped,
    )


def _require_data(payload: Any, *, what: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise MalformedResponseError(f"{what} response must be a JSON object")

    data = payload.get("data")
    if isinstance(data, Mapping):
        return data

    errors = _list(payload.get("errors"))
    if errors:
        message = _coerce_str(_mapping(errors[0]).get("message")) or "unknown error"
        raise MalformedResponseError(f"{what} response returned errors: {message}")
    raise MalformedResponseError(f"{what} response is missing `data`")


def normalize_graph_page(payload: Any, *, request_cursor: str = "") -> TimelinePage:
    """
    Normalize a graph-query user timeline response.

    Posts are found under `data.user.result.timeline_v2.timeline.instructions`
    (`timeline` instead of `timeline_v2` in newer payloads), wrapped in result
    nodes that are classified before extraction. Tombstones and unknown
    wrappers are skipped and counted. Only the bottom cursor is kept.
    """
    data = _require_data(payload, what="Graph timeline")

    user_result = _mapping(_mapping(data.get("user")).get("result"))
    timeline_container = _mapping(user_result.get("timeline_v2")) or _mapping(user_result.get("timeline"))
    instructions = _list(_mapping(timeline_container.get("timeline")).get("instructions"))

    return _normalize_instructions(instructions, request_cursor=request_cursor)


def normalize_conversation_page(payload: Any) -> TimelinePage:
    """Normalize a graph-query thread detail response (the focal post and its context)."""
    data = _require_data(payload, what="Thread detail")

    conversation = _mapping(data.get("threaded_conversation_with_injections_v2"))
    instructions = _list(conversation.get("instructions"))

    return _normalize_instructions(instructions, request_cursor="")
