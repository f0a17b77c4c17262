"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_int, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .odata import (
    ODataServiceConfig,
    get_http_cache_config,
    get_ledger_config,
    get_sales_order_config,
    get_sales_register_config,
    get_tax_item_config,
)
from .report import ReportConfig, get_report_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "MissingConfigurationError",
    "ODataServiceConfig",
    "RateLimit",
    "ReportConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "configure_logging",
    "get_http_cache_config",
    "get_ledger_config",
    "get_report_config",
    "get_sales_order_config",
    "get_sales_register_config",
    "get_tax_item_config",
    "optional_env_int",
    "require_env_vars",
]
