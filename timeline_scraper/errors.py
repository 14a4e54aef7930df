from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class TransportError(RuntimeError):
    """Raised when a page request fails at the network or HTTP level."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(RuntimeError):
    """Raised when a response payload cannot be decoded or has the wrong top-level shape."""
