from __future__ import annotations

from typing import Literal

from .client import TimelineClient
from .graph_timeline import normalize_conversation_page, normalize_graph_page
from .legacy_timeline import normalize_legacy_page
from .page import PageFetcher, ThreadFetcher, TimelinePage

AccountMode = Literal["legacy", "graph"]


class LegacyTimelineFetcher:
    """Page fetcher for open accounts served by the flat legacy timeline."""

    def __init__(self, client: TimelineClient) -> None:
        self._client = client

    def __call__(self, owner_id: str, page_size: int, cursor: str) -> TimelinePage:
        raw = self._client.fetch_user_tweets_legacy(owner_id, page_size, cursor)
        return normalize_legacy_page(raw, request_cursor=cursor)


class GraphTimelineFetcher:
    """Page fetcher for session accounts served by the graph-query timeline."""

    def __init__(self, client: TimelineClient) -> None:
        self._client = client

    def __call__(self, owner_id: str, page_size: int, cursor: str) -> TimelinePage:
        raw = self._client.fetch_user_tweets_graph(owner_id, page_size, cursor)
        return normalize_graph_page(raw, request_cursor=cursor)


class LegacyThreadFetcher:
    def __init__(self, client: TimelineClient) -> None:
        self._client = client

    def __call__(self, post_id: str) -> TimelinePage:
        return normalize_legacy_page(self._client.fetch_conversation_legacy(post_id))


class GraphThreadFetcher:
    def __init__(self, client: TimelineClient) -> None:
        self._client = client

    def __call__(self, post_id: str) -> TimelinePage:
        return normalize_conversation_page(self._client.fetch_tweet_detail(post_id))


def make_timeline_fetcher(client: TimelineClient, mode: AccountMode) -> PageFetcher:
    if mode == "legacy":
        return LegacyTimelineFetcher(client)
    if mode == "graph":
        return GraphTimelineFetcher(client)
    raise ValueError(f"unknown account mode: {mode!r}")


def make_thread_fetcher(client: TimelineClient, mode: AccountMode) -> ThreadFetcher:
    if mode == "legacy":
        return LegacyThreadFetcher(client)
    if mode == "graph":
        return GraphThreadFetcher(client)
    raise ValueError(f"unknown account mode: {mode!r}")
