"""Configuration types for resilient HTTP clients."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx
from httpx_retries import Retry

if TYPE_CHECKING:
    from collections.abc import Mapping

ResponseHook = Callable[[httpx.Response], Awaitable[None] | None]


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport-level retry settings.

    Only idempotent verbs are retried by default: block validation is a POST and
    must not be replayed behind the caller's back.
    """

    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = field(
        default_factory=lambda: frozenset({"GET", "HEAD", "OPTIONS", "PUT"})
    )
    status_forcelist: frozenset[int] = field(
        default_factory=lambda: frozenset({429, 502, 503, 504})
    )
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )
    backoff_jitter: float = 1.0

    def build(self) -> Retry:
        return Retry(
            total=self.total,
            backoff_factor=self.backoff_factor,
            max_backoff_wait=self.max_backoff_wait,
            respect_retry_after_header=self.respect_retry_after_header,
            allowed_methods=tuple(self.allowed_methods),
            status_forcelist=tuple(self.status_forcelist),
            retry_on_exceptions=self.retry_on_exceptions,
            backoff_jitter=self.backoff_jitter,
        )


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 15.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    response_hooks: tuple[ResponseHook, ...] = field(default_factory=tuple)
    default_headers: Mapping[str, str] | None = None
