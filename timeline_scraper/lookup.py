from __future__ import annotations

from .page import ThreadFetcher
from .post import Post
from .run_log import RunLogger


def find_by_id(
    fetch_thread: ThreadFetcher,
    post_id: str,
    *,
    logger: RunLogger | None = None,
) -> Post | None:
    """
    Fetch the single page holding a post's thread and return the post, or None.

    The API returns a whole conversation for one post, so exactly one request
    is made and absence from that page is a normal negative result.
    """
    target = (post_id or "").strip()
    if not target:
        raise ValueError("post_id must be a non-empty string")

    page = fetch_thread(target)

    for post in page.posts:
        if post.post_id == target:
            if logger is not None:
                logger.info("lookup_found", post_id=target, thread_posts=len(page.posts))
            return post

    if logger is not None:
        logger.info("lookup_not_found", post_id=target, thread_posts=len(page.posts))
    return None
