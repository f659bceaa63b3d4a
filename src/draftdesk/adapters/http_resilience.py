from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypedDict, Unpack

import httpx
from aiolimiter import AsyncLimiter
from httpx_retries import RetryTransport

from draftdesk.config.http_resilience import (
    RateLimit,
    ResilienceConfig,
    ResponseHook,
    RetryPolicy,
)

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._client import UseClientDefault
    from httpx._types import (
        AuthTypes,
        HeaderTypes,
        QueryParamTypes,
        RequestContent,
        RequestExtensions,
        TimeoutTypes,
        URLTypes,
    )

__all__ = [
    "RateLimit",
    "RequestOptions",
    "ResilienceConfig",
    "ResilientClient",
    "RetryPolicy",
]


class RequestOptions(TypedDict, total=False):
    content: RequestContent | None
    json: object
    params: QueryParamTypes | None
    headers: HeaderTypes | None
    auth: AuthTypes | UseClientDefault | None
    follow_redirects: bool | UseClientDefault
    timeout: TimeoutTypes | UseClientDefault
    extensions: RequestExtensions | None


class AsyncClientOptions(TypedDict, total=False):
    base_url: str
    timeout: TimeoutTypes
    headers: HeaderTypes
    event_hooks: dict[str, list[ResponseHook]]
    transport: httpx.AsyncBaseTransport


class ResilientClient:
    """``httpx.AsyncClient`` behind a retrying transport and an optional rate limiter."""

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )

        retry_transport = RetryTransport(retry=config.retry.build())
        headers = dict(config.default_headers) if config.default_headers else None
        event_hooks = {"response": list(config.response_hooks)} if config.response_hooks else None

        client_kwargs: AsyncClientOptions = {
            "timeout": config.timeout_seconds,
            "transport": retry_transport,
        }
        if config.base_url is not None:
            client_kwargs["base_url"] = config.base_url
        if headers is not None:
            client_kwargs["headers"] = headers
        if event_hooks is not None:
            client_kwargs["event_hooks"] = event_hooks

        self._client = httpx.AsyncClient(**client_kwargs)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        async def do_request() -> httpx.Response:
            return await self._client.request(method, url, **kwargs)

        return await self._send(do_request)

    async def get(self, url: URLTypes, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def put(self, url: URLTypes, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def post(self, url: URLTypes, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def _send(self, func: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
        if self._limiter is None:
            return await func()
        async with self._limiter:
            return await func()
