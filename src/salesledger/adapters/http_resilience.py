"""Rate-limited, retrying httpx client shared by the OData services.

Responses are cached through hishel only when a service's ``CacheConfig`` enables
it. By default only successful OData envelopes are stored.
"""

from __future__ import annotations

import json
import time
from logging import getLogger
from typing import TYPE_CHECKING, TypedDict

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from httpx._types import TimeoutTypes

    from salesledger.config.http_resilience import (
        CacheConfig,
        ResilienceConfig,
        RetryPolicy,
        ShouldCacheHook,
    )

log = getLogger(__name__)


class _ClientOptions(TypedDict, total=False):
    base_url: str
    timeout: TimeoutTypes
    headers: dict[str, str]
    transport: httpx.AsyncBaseTransport


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        backoff_jitter=policy.backoff_jitter,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
    )


def is_odata_envelope(payload: object) -> bool:
    """Default cache predicate: a ``{"d": ...}`` body without an ``error`` member."""

    return isinstance(payload, dict) and "d" in payload and "error" not in payload


class ResilientClient:
    """httpx ``AsyncClient`` behind a retry transport and an optional rate limiter.

    ``transport`` replaces the network transport underneath the retry layer, which
    keeps retries and rate limiting active when tests plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.requests_sent = 0
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )
        retry_transport = RetryTransport(transport=transport, retry=build_retry(config.retry))
        self._client = _build_client(config, retry_transport)

    @property
    def name(self) -> str:
        return self.config.name

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

    async def get(
        self,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        started = time.perf_counter()
        if self._limiter is None:
            response = await self._client.get(url, params=params, headers=headers)
        else:
            async with self._limiter:
                response = await self._client.get(url, params=params, headers=headers)
        self.requests_sent += 1
        log.debug(
            "%s GET %s -> %d (%.2fs)",
            self.name,
            response.request.url.path,
            response.status_code,
            time.perf_counter() - started,
        )
        return response


def _build_client(
    config: ResilienceConfig, transport: httpx.AsyncBaseTransport
) -> httpx.AsyncClient:
    options: _ClientOptions = {"timeout": config.timeout_seconds, "transport": transport}
    if config.base_url is not None:
        options["base_url"] = config.base_url
    if config.default_headers:
        options["headers"] = dict(config.default_headers)

    if config.cache is None or not config.cache.enabled:
        return httpx.AsyncClient(**options)

    storage, policy = _build_cache_components(config.cache)
    log.info(f"Caching {config.name} responses ({config.cache.backend} backend)")
    return AsyncCacheClient(**options, storage=storage, policy=policy)


class _ShouldCacheResponseFilter(BaseFilter[HishelCacheResponse]):
    """Hishel response filter that delegates to a JSON payload predicate."""

    def __init__(self, predicate: ShouldCacheHook) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if body is None:
            return False
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return False
        return bool(self._predicate(payload))


def _build_cache_components(config: CacheConfig) -> tuple[AsyncSqliteStorage, FilterPolicy]:
    if config.backend == "sqlite":
        if not config.sqlite_path:
            raise ValueError("sqlite cache backend requires sqlite_path")
        database_path = config.sqlite_path
    elif config.backend == "memory":
        database_path = ":memory:"
    else:
        raise ValueError(f"Unsupported cache backend: {config.backend}")

    storage = AsyncSqliteStorage(
        database_path=database_path,
        default_ttl=config.default_ttl_seconds,
        refresh_ttl_on_access=config.refresh_ttl_on_access,
    )
    predicate = config.should_cache or is_odata_envelope
    policy = FilterPolicy(response_filters=[_ShouldCacheResponseFilter(predicate)])
    return storage, policy


__all__ = ["ResilientClient", "build_retry", "is_odata_envelope"]
