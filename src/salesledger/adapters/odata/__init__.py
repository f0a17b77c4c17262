"""OData adapters for the sales register, sales order texts, ledger and tax item services."""

from __future__ import annotations

from .client import ODataClient, ODataServiceError
from .fetcher import LedgerPageSource, SalesOrderTextLookup, SalesRegisterPageSource, TaxItemSource
from .query import ledger_filter, sales_register_filter, tax_item_filter
from .translator import to_primary_line, to_raw_line_item, to_secondary_item, to_text_entries

__all__ = [
    "LedgerPageSource",
    "ODataClient",
    "ODataServiceError",
    "SalesOrderTextLookup",
    "SalesRegisterPageSource",
    "TaxItemSource",
    "ledger_filter",
    "sales_register_filter",
    "tax_item_filter",
    "to_primary_line",
    "to_raw_line_item",
    "to_secondary_item",
    "to_text_entries",
]
