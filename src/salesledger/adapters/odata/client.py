"""HTTP client for OData v2 services."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from salesledger.adapters.http_resilience import ResilientClient
from salesledger.domain.errors import SalesLedgerError

from .schema import ErrorResponse, ODataEnvelope

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from salesledger.config.http_resilience import ResilienceConfig
    from salesledger.config.odata import ODataServiceConfig

    from .schema import ODataCollection, RecordT

log = getLogger(__name__)

_ERROR_BODY_PREVIEW = 200


class ODataServiceError(SalesLedgerError):
    """Raised for non-2xx responses and payloads that do not match the schema."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class ODataClient:
    """Thin wrapper that fetches and validates ``d.results`` collections."""

    def __init__(
        self,
        config: ODataServiceConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
    ) -> None:
        self.config = config
        self._client_factory = client_factory
        self._client: ResilientClient | None = None

    @property
    def name(self) -> str:
        return self.config.resilience.name

    async def __aenter__(self) -> ODataClient:
        self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> ResilientClient:
        if self._client is None:
            self._client = self._client_factory(self.config.resilience)
        return self._client

    async def fetch_collection(
        self,
        path: str,
        params: Mapping[str, str],
        record_type: type[RecordT],
    ) -> ODataCollection[RecordT]:
        client = self._ensure_client()
        log.debug(f"GET {self.name}{path} {dict(params)}")
        try:
            response = await client.get(path, params=dict(params))
        except httpx.HTTPError as exc:
            raise ODataServiceError(f"{self.name}: request to {path} failed: {exc}") from exc

        if response.is_error:
            message, code = _error_details(response)
            log.error(f"{self.name} returned {response.status_code} for {path}: {message}")
            raise ODataServiceError(
                f"{self.name}: HTTP {response.status_code}: {message}",
                status_code=response.status_code,
                code=code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ODataServiceError(
                f"{self.name}: response for {path} is not JSON",
                status_code=response.status_code,
            ) from exc

        try:
            envelope = ODataEnvelope[record_type].model_validate(payload)
        except ValidationError as exc:
            raise ODataServiceError(
                f"{self.name}: unexpected payload for {path}: {exc.error_count()} validation errors",
                status_code=response.status_code,
            ) from exc
        return envelope.d


def _error_details(response: httpx.Response) -> tuple[str, str | None]:
    try:
        error = ErrorResponse.model_validate(response.json()).error
    except (ValueError, ValidationError):
        return response.text[:_ERROR_BODY_PREVIEW] or response.reason_phrase, None
    return error.message.value or response.reason_phrase, error.code or None


__all__ = ["ODataClient", "ODataServiceError"]
