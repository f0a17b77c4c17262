"""OData service configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from .env import require_env_vars
from .errors import ConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig

SALES_REGISTER_PATH: Final[str] = "/YY1_SALESREGISTER"
SALES_ORDER_ITEM_TEXT_PATH: Final[str] = (
    "/A_SalesOrderItem(SalesOrder='{sales_order}',SalesOrderItem='{sales_order_item}')/to_Text"
)
LEDGER_PATH: Final[str] = "/YY1_EO_ODATA_API"
TAX_ITEM_PATH: Final[str] = "/YY1_GSTTAXAMOUNT_API"

ODATA_TIMEOUT_SECONDS: Final[float] = 60.0
TEXT_LANGUAGE: Final[str] = "EN"

_JSON_HEADERS: Final[dict[str, str]] = {"Accept": "application/json"}

HTTP_CACHE_ENV: Final[str] = "SALESLEDGER_HTTP_CACHE"


@dataclass(frozen=True, slots=True)
class ODataServiceConfig:
    """Location and client settings for one OData service root."""

    service_url: str
    resilience: ResilienceConfig


def get_http_cache_config() -> CacheConfig | None:
    """Parse ``SALESLEDGER_HTTP_CACHE``: unset or ``off``, ``memory``, or ``sqlite:<path>``."""

    raw = (os.getenv(HTTP_CACHE_ENV) or "").strip()
    if not raw or raw.lower() == "off":
        return None
    if raw.lower() == "memory":
        return CacheConfig(enabled=True, backend="memory")
    backend, _, path = raw.partition(":")
    if backend.lower() == "sqlite" and path.strip():
        return CacheConfig(enabled=True, backend="sqlite", sqlite_path=path.strip())
    raise ConfigurationError(
        f"{HTTP_CACHE_ENV} must be 'off', 'memory' or 'sqlite:<path>', got {raw!r}"
    )


def _service_config(name: str, service_url: str, *, max_calls: int) -> ODataServiceConfig:
    base_url = service_url.rstrip("/")
    return ODataServiceConfig(
        service_url=base_url,
        resilience=ResilienceConfig(
            name=name,
            base_url=base_url,
            timeout_seconds=ODATA_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=max_calls, per_seconds=1.0),
            cache=get_http_cache_config(),
            default_headers=_JSON_HEADERS,
        ),
    )


def get_sales_register_config() -> ODataServiceConfig:
    values = require_env_vars(("SALESLEDGER_SALES_REGISTER_URL",))
    return _service_config(
        "sales-register", values["SALESLEDGER_SALES_REGISTER_URL"], max_calls=4
    )


def get_sales_order_config() -> ODataServiceConfig:
    values = require_env_vars(("SALESLEDGER_SALES_ORDER_URL",))
    # Text lookups fan out one request per key in a batch.
    return _service_config("sales-order", values["SALESLEDGER_SALES_ORDER_URL"], max_calls=10)


def get_ledger_config() -> ODataServiceConfig:
    values = require_env_vars(("SALESLEDGER_LEDGER_URL",))
    return _service_config("ledger", values["SALESLEDGER_LEDGER_URL"], max_calls=4)


def get_tax_item_config() -> ODataServiceConfig:
    values = require_env_vars(("SALESLEDGER_TAX_ITEM_URL",))
    return _service_config("tax-items", values["SALESLEDGER_TAX_ITEM_URL"], max_calls=4)
