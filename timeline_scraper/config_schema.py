from __future__ import annotations

import re
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .retry import RetryPolicy

_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Largest page the timeline endpoints return for a single call.
API_PAGE_SIZE_LIMIT = 200


def _validate_env_var_name(value: str) -> str:
    name = (value or "").strip()
    if not _ENV_NAME_RE.fullmatch(name):
        raise ValueError("must be a valid environment variable name")
    return name


def _strip_slash(value: str) -> str:
    url = (value or "").strip().rstrip("/")
    if not url.startswith(("http://", "https://")):
        raise ValueError("must be an http(s) URL")
    return url


PositiveInt = Annotated[int, Field(ge=1)]
NonNegativeFloat = Annotated[float, Field(ge=0.0)]


class ApiConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    # "legacy" accounts use the flat v2 REST timeline; everything else uses graph queries.
    account_mode: Literal["legacy", "graph"] = "graph"
    legacy_base_url: str = "https://api.twitter.com/2"
    graph_base_url: str = "https://twitter.com/i/api/graphql"
    user_tweets_query_id: str = "UGi7tjRPr-d_U3bCPIko5Q"
    tweet_detail_query_id: str = "VWFGPVAGkZMGRKGe3GFFnA"
    max_page_size: int = Field(API_PAGE_SIZE_LIMIT, ge=1, le=API_PAGE_SIZE_LIMIT)
    timeout_seconds: float = Field(30.0, gt=0.0)

    @field_validator("legacy_base_url", "graph_base_url")
    @classmethod
    def _urls_must_be_http(cls, v: str) -> str:
        return _strip_slash(v)

    @field_validator("user_tweets_query_id", "tweet_detail_query_id")
    @classmethod
    def _query_ids_non_empty(cls, v: str) -> str:
        s = (v or "").strip()
        if not s:
            raise ValueError("must be non-empty")
        return s


class AuthConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    bearer_token_env: str = "TIMELINE_BEARER_TOKEN"
    auth_token_env: str = "TIMELINE_AUTH_TOKEN"
    csrf_token_env: str = "TIMELINE_CSRF_TOKEN"

    @field_validator("bearer_token_env", "auth_token_env", "csrf_token_env")
    @classmethod
    def _env_names_must_be_valid(cls, v: str) -> str:
        return _validate_env_var_name(v)


class RetryConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_attempts: PositiveInt = 4
    base_delay_seconds: NonNegativeFloat = 1.0
    max_delay_seconds: NonNegativeFloat = 30.0
    jitter_ratio: float = Field(0.25, ge=0.0, le=1.0)
    retry_after_cap_seconds: NonNegativeFloat = 60.0

    @model_validator(mode="after")
    def _max_delay_covers_base(self) -> "RetryConfig":
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        return self

    def policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay_seconds=self.base_delay_seconds,
            max_delay_seconds=self.max_delay_seconds,
            jitter_ratio=self.jitter_ratio,
            retry_after_cap_seconds=self.retry_after_cap_seconds,
        )


class StreamConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    default_count: PositiveInt = 100


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    api: ApiConfig = Field(default_factory=ApiConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
