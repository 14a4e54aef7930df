from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from .post import Media, Post

# Ruby-style timestamps, e.g. "Thu Apr 24 08:31:28 +0000 2025".
_CREATED_AT_FORMAT = "%a %b %d %H:%M:%S %z %Y"


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        s = value.strip()
        return s if s else None
    return None


def _coerce_id(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        v = value.strip()
        return v if v else None
    if isinstance(value, int):
        return str(value)
    return None


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def parse_created_at(value: Any) -> datetime | None:
    s = _coerce_str(value)
    if s is None:
        return None
    try:
        return datetime.strptime(s, _CREATED_AT_FORMAT)
    except ValueError:
        return None


def _dedupe_terms(values: list[str]) -> tuple[str, ...]:
    out: list[str] = []
    seen: set[str] = set()
    for item in values:
        term = (item or "").strip()
        if not term:
            continue
        key = term.casefold()
        if key in seen:
            continue
        seen.add(key)
        out.append(term)
    return tuple(out)


def _entity_values(entities: Mapping[str, Any], kind: str, field: str) -> list[str]:
    out: list[str] = []
    for item in _list(entities.get(kind)):
        value = _coerce_str(_mapping(item).get(field))
        if value:
            out.append(value)
    return out


def _best_video_url(media: Mapping[str, Any]) -> str | None:
    best_url: str | None = None
    best_bitrate = -1
    for variant in _list(_mapping(media.get("video_info")).get("variants")):
        v = _mapping(variant)
        if _coerce_str(v.get("content_type")) != "video/mp4":
            continue
        url = _coerce_str(v.get("url"))
        if url is None:
            continue
        bitrate = _coerce_int(v.get("bitrate")) or 0
        if bitrate > best_bitrate:
            best_bitrate = bitrate
            best_url = url
    return best_url


def extract_media(tweet: Mapping[str, Any]) -> tuple[Media, ...]:
    """Collect attached media in the order the API lists them."""
    items = _list(_mapping(tweet.get("extended_entities")).get("media"))
    if not items:
        items = _list(_mapping(tweet.get("entities")).get("media"))

    out: list[Media] = []
    for raw in items:
        m = _mapping(raw)
        media_id = _coerce_id(m.get("id_str")) or _coerce_id(m.get("id"))
        kind = _coerce_str(m.get("type"))
        if media_id is None or kind is None:
            continue
        video_url = _best_video_url(m) if kind in ("video", "animated_gif") else None
        out.append(
            Media(
                media_id=media_id,
                kind=kind,
                url=_coerce_str(m.get("media_url_https")) or _coerce_str(m.get("media_url")),
                video_url=video_url,
            )
        )
    return tuple(out)


def post_from_legacy_tweet(
    tweet: Mapping[str, Any],
    author: Mapping[str, Any] | None,
    *,
    text: str | None = None,
    views: int | None = None,
    quoted_id: str | None = None,
    retweeted_id: str | None = None,
    is_pinned: bool = False,
    is_self_thread: bool = False,
    sort_index: str | None = None,
) -> Post | None:
    """
    Build a Post from a legacy tweet object and its author's user object.

    Both response shapes carry the same legacy tweet fields, so the graph
    normalizer reuses this after unwrapping. Returns None when the tweet has no
    ID or no author ID can be found on either object.
    """
    post_id = _coerce_id(tweet.get("id_str")) or _coerce_id(tweet.get("id"))
    if post_id is None:
        return None

    # Without a user object the tweet's own user_id_str still identifies the author.
    author = author or {}
    author_id = (
        _coerce_id(author.get("id_str"))
        or _coerce_id(author.get("id"))
        or _coerce_id(tweet.get("user_id_str"))
    )
    if author_id is None:
        return None

    entities = _mapping(tweet.get("entities"))
    body = text if text is not None else (
        _coerce_str(tweet.get("full_text")) or _coerce_str(tweet.get("text")) or ""
    )

    if views is None:
        views = _coerce_int(_mapping(tweet.get("ext_views")).get("count"))

    return Post(
        post_id=post_id,
        author_id=author_id,
        username=_coerce_str(author.get("screen_name")),
        name=_coerce_str(author.get("name")),
        created_at=parse_created_at(tweet.get("created_at")),
        text=body,
        conversation_id=_coerce_id(tweet.get("conversation_id_str")),
        lang=_coerce_str(tweet.get("lang")),
        reply_count=_coerce_int(tweet.get("reply_count")) or 0,
        like_count=_coerce_int(tweet.get("favorite_count")) or 0,
        retweet_count=_coerce_int(tweet.get("retweet_count")) or 0,
        quote_count=_coerce_int(tweet.get("quote_count")) or 0,
        views=views,
        in_reply_to_id=_coerce_id(tweet.get("in_reply_to_status_id_str")),
        quoted_id=quoted_id or _coerce_id(tweet.get("quoted_status_id_str")),
        retweeted_id=retweeted_id or _coerce_id(tweet.get("retweeted_status_id_str")),
        hashtags=_dedupe_terms(_entity_values(entities, "hashtags", "text")),
        mentions=_dedupe_terms(_entity_values(entities, "user_mentions", "screen_name")),
        urls=tuple(_entity_values(entities, "urls", "expanded_url")),
        media=extract_media(tweet),
        is_pinned=is_pinned,
        is_self_thread=is_self_thread,
        sensitive=tweet.get("possibly_sensitive") is True,
        sort_index=sort_index,
    )
