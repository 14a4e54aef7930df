from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml
from pydantic import ValidationError

from .config_schema import AppConfig
from .errors import ConfigError


@dataclass(frozen=True)
class RuntimeSecrets:
    bearer_token: str
    auth_token: str | None = None
    csrf_token: str | None = None


def load_config(path: str | Path) -> AppConfig:
    """
    Load a YAML config file and validate it into a typed AppConfig.

    Raises ConfigError with a readable validation message on failure.
    """
    p = Path(path)

    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")

    try:
        raw_text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {p}") from e

    try:
        data = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {p}: {e}") from e

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigError(f"Top-level YAML in {p} must be a mapping/object")

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(_format_pydantic_errors(e, p)) from e


def resolve_runtime_secrets(
    config: AppConfig, *, environ: Mapping[str, str] | None = None
) -> RuntimeSecrets:
    """
    Read API credentials from the environment.

    The bearer token is always required. Graph-query accounts also need the
    session auth token and its CSRF token.
    """
    env = os.environ if environ is None else environ
    auth = config.auth

    def _get(name: str) -> str | None:
        return (env.get(name) or "").strip() or None

    bearer = _get(auth.bearer_token_env)
    auth_token = _get(auth.auth_token_env)
    csrf_token = _get(auth.csrf_token_env)

    missing: list[str] = []
    if bearer is None:
        missing.append(auth.bearer_token_env)
    if config.api.account_mode == "graph":
        if auth_token is None:
            missing.append(auth.auth_token_env)
        if csrf_token is None:
            missing.append(auth.csrf_token_env)

    if bearer is not None and not missing:
        return RuntimeSecrets(bearer_token=bearer, auth_token=auth_token, csrf_token=csrf_token)

    joined = ", ".join(missing)
    raise ConfigError(f"Missing required environment variables: {joined}")


def config_sha256(config: AppConfig) -> str:
    payload = json.dumps(
        config.model_dump(mode="json"),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def _format_pydantic_errors(err: ValidationError, path: Path) -> str:
    lines: list[str] = [f"Invalid configuration in {path}:"]
    for item in err.errors():
        loc = ".".join(str(part) for part in item.get("loc", [])) or "<root>"
        msg = item.get("msg", "invalid value")
        lines.append(f"- {loc}: {msg}")
    return "\n".join(lines)
