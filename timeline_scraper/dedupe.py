from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .post import Post


@dataclass
class SeenIds:
    """Post IDs already handed out during one pagination session."""

    ids: set[str] = field(default_factory=set)

    def has(self, post_id: str) -> bool:
        return post_id in self.ids

    def add(self, post_id: str) -> None:
        self.ids.add(post_id)

    def has_post(self, post: Post) -> bool:
        return self.has(post.post_id)

    def add_post(self, post: Post) -> None:
        self.add(post.post_id)

    def update(self, posts: Iterable[Post]) -> None:
        for post in posts:
            self.add_post(post)

    def __len__(self) -> int:
        return len(self.ids)
