from __future__ import annotations

from .config import config_sha256, load_config, resolve_runtime_secrets
from .config_schema import AppConfig
from .errors import ConfigError, MalformedResponseError, TransportError
from .graph_timeline import normalize_conversation_page, normalize_graph_page
from .legacy_timeline import normalize_legacy_page
from .lookup import find_by_id
from .page import TimelinePage
from .pagination import StreamStats, TimelineStream, iter_timeline
from .post import Media, Post

__all__ = [
    "AppConfig",
    "ConfigError",
    "MalformedResponseError",
    "Media",
    "Post",
    "StreamStats",
    "TimelinePage",
    "TimelineStream",
    "TransportError",
    "config_sha256",
    "find_by_id",
    "iter_timeline",
    "load_config",
    "normalize_conversation_page",
    "normalize_graph_page",
    "normalize_legacy_page",
    "resolve_runtime_secrets",
]
