from __future__ import annotations

import json
from typing import Any, Mapping

import requests

from .config import RuntimeSecrets
from .config_schema import ApiConfig
from .errors import MalformedResponseError, TransportError
from .retry import RetryEvent, RetryPolicy, SleepFn, call_with_retries
from .run_log import RunLogger

_USER_TWEETS_FEATURES: dict[str, bool] = {
    "rweb_lists_timeline_redesign_enabled": True,
    "responsive_web_graphql_exclude_directive_enabled": True,
    "verified_phone_label_enabled": False,
    "creator_subscriptions_tweet_preview_api_enabled": True,
    "responsive_web_graphql_timeline_navigation_enabled": True,
    "responsive_web_graphql_skip_user_profile_image_extensions_enabled": False,
    "tweetypie_unmention_optimization_enabled": True,
    "vibe_api_enabled": True,
    "responsive_web_edit_tweet_api_enabled": True,
    "graphql_is_translatable_rweb_tweet_is_translatable_enabled": True,
    "view_counts_everywhere_api_enabled": True,
    "longform_notetweets_consumption_enabled": True,
    "tweet_awards_web_tipping_enabled": False,
    "freedom_of_speech_not_reach_fetch_enabled": True,
    "standardized_nudges_misinfo": True,
    "tweet_with_visibility_results_prefer_gql_limited_actions_policy_enabled": False,
    "interactive_text_enabled": True,
    "responsive_web_text_conversations_enabled": False,
    "longform_notetweets_rich_text_read_enabled": True,
    "longform_notetweets_inline_media_enabled": False,
    "responsive_web_enhance_cards_enabled": False,
}

_TWEET_DETAIL_FEATURES: dict[str, bool] = {
    **{
        k: v
        for k, v in _USER_TWEETS_FEATURES.items()
        if k not in ("vibe_api_enabled", "interactive_text_enabled", "responsive_web_text_conversations_enabled")
    },
    "longform_notetweets_inline_media_enabled": True,
}


def _compact_json(value: Mapping[str, Any]) -> str:
    return json.dumps(value, separators=(",", ":"))


class TimelineClient:
    """
    Thin HTTP wrapper around the timeline endpoints.

    It only builds requests and decodes JSON; normalizing the payloads is the
    fetchers' job. Every GET goes through the retry policy, and failures
    surface as TransportError or MalformedResponseError.
    """

    def __init__(
        self,
        secrets: RuntimeSecrets,
        *,
        api: ApiConfig | None = None,
        retry: RetryPolicy | None = None,
        session: requests.Session | None = None,
        logger: RunLogger | None = None,
        sleep_fn: SleepFn | None = None,
    ) -> None:
        self._api = api or ApiConfig()
        self._retry = retry or RetryPolicy()
        self._session = session or requests.Session()
        self._logger = logger
        self._sleep_fn = sleep_fn

        self._headers: dict[str, str] = {"Authorization": f"Bearer {secrets.bearer_token}"}
        self._cookies: dict[str, str] = {}
        if secrets.csrf_token:
            self._headers["x-csrf-token"] = secrets.csrf_token
            self._cookies["ct0"] = secrets.csrf_token
        if secrets.auth_token:
            self._headers["x-twitter-auth-type"] = "OAuth2Session"
            self._cookies["auth_token"] = secrets.auth_token

    def _clamp(self, count: int) -> int:
        return max(1, min(int(count), self._api.max_page_size))

    def _on_retry(self, event: RetryEvent) -> None:
        if self._logger is None:
            return
        self._logger.warning(
            "http_retry",
            operation=event.operation,
            attempt=event.failure_attempt,
            max_attempts=event.max_attempts,
            delay_seconds=round(event.delay_seconds, 3),
            reason=event.reason,
            error_type=event.error_type,
        )

    def get_json(self, url: str, params: Mapping[str, Any] | None = None, *, operation: str) -> Any:
        def _do_get() -> requests.Response:
            response = self._session.get(
                url,
                params=dict(params or {}),
                headers=self._headers,
                cookies=self._cookies,
                timeout=self._api.timeout_seconds,
            )
            response.raise_for_status()
            return response

        try:
            response = call_with_retries(
                _do_get,
                policy=self._retry,
                operation=operation,
                on_retry=self._on_retry,
                sleep_fn=self._sleep_fn,
            )
        except requests.HTTPError as e:
            code = e.response.status_code if e.response is not None else None
            raise TransportError(f"{operation} failed with HTTP {code}: {e}", status_code=code) from e
        except requests.RequestException as e:
            raise TransportError(f"{operation} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"{operation} returned a body that is not JSON") from e

    def fetch_user_tweets_legacy(self, user_id: str, count: int, cursor: str = "") -> Any:
        params: dict[str, Any] = {"count": str(self._clamp(count)), "userId": user_id}
        if cursor:
            params["cursor"] = cursor
        url = f"{self._api.legacy_base_url}/timeline/profile/{user_id}.json"
        return self.get_json(url, params, operation="legacy.timeline.profile")

    def fetch_conversation_legacy(self, tweet_id: str) -> Any:
        url = f"{self._api.legacy_base_url}/timeline/conversation/{tweet_id}.json"
        return self.get_json(url, operation="legacy.timeline.conversation")

    def fetch_user_tweets_graph(self, user_id: str, count: int, cursor: str = "") -> Any:
        variables: dict[str, Any] = {
            "userId": user_id,
            "count": self._clamp(count),
            "includePromotedContent": False,
            "withQuickPromoteEligibilityTweetFields": False,
            "withVoice": True,
            "withV2Timeline": True,
        }
        if cursor:
            variables["cursor"] = cursor

        url = f"{self._api.graph_base_url}/{self._api.user_tweets_query_id}/UserTweets"
        params = {
            "variables": _compact_json(variables),
            "features": _compact_json(_USER_TWEETS_FEATURES),
        }
        return self.get_json(url, params, operation="graph.UserTweets")

    def fetch_tweet_detail(self, tweet_id: str) -> Any:
        variables: dict[str, Any] = {
            "focalTweetId": tweet_id,
            "with_rux_injections": False,
            "includePromotedContent": True,
            "withCommunity": True,
            "withQuickPromoteEligibilityTweetFields": True,
            "withBirdwatchNotes": True,
            "withVoice": True,
            "withV2Timeline": True,
        }
        url = f"{self._api.graph_base_url}/{self._api.tweet_detail_query_id}/TweetDetail"
        params = {
            "variables": _compact_json(variables),
            "features": _compact_json(_TWEET_DETAIL_FEATURES),
        }
        return self.get_json(url, params, operation="graph.TweetDetail")
