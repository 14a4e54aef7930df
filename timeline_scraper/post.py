from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence


@dataclass(frozen=True)
class Media:
    media_id: str
    kind: str
    url: str | None = None
    video_url: str | None = None


@dataclass(frozen=True)
class Post:
    """A normalized timeline post, independent of the response shape it came from."""

    post_id: str
    author_id: str

    username: str | None = None
    name: str | None = None
    created_at: datetime | None = None
    text: str = ""
    conversation_id: str | None = None
    lang: str | None = None

    reply_count: int = 0
    like_count: int = 0
    retweet_count: int = 0
    quote_count: int = 0
    views: int | None = None

    # References are IDs only; the referenced posts are never embedded.
    in_reply_to_id: str | None = None
    quoted_id: str | None = None
    retweeted_id: str | None = None

    hashtags: Sequence[str] = ()
    mentions: Sequence[str] = ()
    urls: Sequence[str] = ()
    media: Sequence[Media] = ()

    is_pinned: bool = False
    is_self_thread: bool = False
    sensitive: bool = False

    position: int = 0
    sort_index: str | None = None

    @property
    def permalink(self) -> str | None:
        if not self.username:
            return None
        return f"https://twitter.com/{self.username}/status/{self.post_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "post_id": self.post_id,
            "author_id": self.author_id,
            "username": self.username,
            "name": self.name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "text": self.text,
            "conversation_id": self.conversation_id,
            "lang": self.lang,
            "reply_count": self.reply_count,
            "like_count": self.like_count,
            "retweet_count": self.retweet_count,
            "quote_count": self.quote_count,
            "views": self.views,
            "in_reply_to_id": self.in_reply_to_id,
            "quoted_id": self.quoted_id,
            "retweeted_id": self.retweeted_id,
            "hashtags": list(self.hashtags),
            "mentions": list(self.mentions),
            "urls": list(self.urls),
            "media": [
                {
                    "media_id": m.media_id,
                    "kind": m.kind,
                    "url": m.url,
                    "video_url": m.video_url,
                }
                for m in self.media
            ],
            "is_pinned": self.is_pinned,
            "is_self_thread": self.is_self_thread,
            "sensitive": self.sensitive,
            "position": self.position,
            "sort_index": self.sort_index,
            "permalink": self.permalink,
        }
