"""OData implementations of the domain fetching and lookup ports."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from salesledger.config.odata import (
    LEDGER_PATH,
    SALES_ORDER_ITEM_TEXT_PATH,
    SALES_REGISTER_PATH,
    TAX_ITEM_PATH,
    TEXT_LANGUAGE,
)
from salesledger.domain.filters import LedgerFilters, SalesRegisterFilters
from salesledger.domain.ports.fetching import FetchedPage

from .query import (
    LEDGER_ORDERBY,
    LEDGER_SELECT,
    SALES_REGISTER_ORDERBY,
    SALES_REGISTER_SELECT,
    TAX_ITEM_ORDERBY,
    TAX_ITEM_PAGE_SIZE,
    TAX_ITEM_SELECT,
    TEXT_SELECT,
    eq,
    ledger_filter,
    paging_params,
    sales_register_filter,
    tax_item_filter,
)
from .schema import LedgerRecord, SalesRegisterRecord, TaxItemRecord, TextEntryPayload
from .translator import to_primary_line, to_raw_line_item, to_secondary_item, to_text_entries

if TYPE_CHECKING:
    from collections.abc import Sequence

    from salesledger.domain.types import (
        DocumentKey,
        PrimaryLine,
        RawLineItem,
        SecondaryItem,
        TextEntry,
        TextKey,
    )

    from .client import ODataClient

log = getLogger(__name__)


def _expect[T](filters: object | None, expected: type[T]) -> T | None:
    if filters is None or isinstance(filters, expected):
        return filters
    raise TypeError(f"Expected {expected.__name__} filters, got {type(filters).__name__}")


@dataclass(slots=True)
class SalesRegisterPageSource:
    client: ODataClient

    async def __call__(
        self,
        *,
        skip: int,
        page_size: int,
        filters: object | None = None,
    ) -> FetchedPage[RawLineItem]:
        params = paging_params(
            skip=skip,
            top=page_size,
            select=SALES_REGISTER_SELECT,
            orderby=SALES_REGISTER_ORDERBY,
            filter_expression=sales_register_filter(_expect(filters, SalesRegisterFilters)),
        )
        collection = await self.client.fetch_collection(
            SALES_REGISTER_PATH, params, SalesRegisterRecord
        )
        return FetchedPage(
            records=[to_raw_line_item(record) for record in collection.results],
            total_count=collection.count,
        )


@dataclass(slots=True)
class SalesOrderTextLookup:
    client: ODataClient

    async def __call__(self, key: TextKey) -> Sequence[TextEntry]:
        path = SALES_ORDER_ITEM_TEXT_PATH.format(
            sales_order=key.sales_order,
            sales_order_item=key.sales_order_item,
        )
        params = {
            "$format": "json",
            "$select": ",".join(TEXT_SELECT),
            "$filter": eq("Language", TEXT_LANGUAGE),
        }
        collection = await self.client.fetch_collection(path, params, TextEntryPayload)
        return to_text_entries(collection.results)


@dataclass(slots=True)
class LedgerPageSource:
    client: ODataClient

    async def __call__(
        self,
        *,
        skip: int,
        page_size: int,
        filters: object | None = None,
    ) -> FetchedPage[PrimaryLine]:
        params = paging_params(
            skip=skip,
            top=page_size,
            select=LEDGER_SELECT,
            orderby=LEDGER_ORDERBY,
            filter_expression=ledger_filter(_expect(filters, LedgerFilters)),
        )
        collection = await self.client.fetch_collection(LEDGER_PATH, params, LedgerRecord)
        return FetchedPage(
            records=[to_primary_line(record) for record in collection.results],
            total_count=collection.count,
        )


@dataclass(slots=True)
class TaxItemSource:
    client: ODataClient
    page_size: int = TAX_ITEM_PAGE_SIZE

    async def __call__(self, keys: Sequence[DocumentKey]) -> Sequence[SecondaryItem]:
        filter_expression = tax_item_filter(keys)
        if filter_expression is None:
            return []

        items: list[SecondaryItem] = []
        skip = 0
        while True:
            params = paging_params(
                skip=skip,
                top=self.page_size,
                select=TAX_ITEM_SELECT,
                orderby=TAX_ITEM_ORDERBY,
                filter_expression=filter_expression,
            )
            collection = await self.client.fetch_collection(TAX_ITEM_PATH, params, TaxItemRecord)
            items.extend(to_secondary_item(record) for record in collection.results)
            skip += len(collection.results)
            if len(collection.results) < self.page_size:
                break
            if collection.count is not None and skip >= collection.count:
                break
        log.debug(f"Fetched {len(items)} tax items for {len(keys)} documents")
        return items


__all__ = ["LedgerPageSource", "SalesOrderTextLookup", "SalesRegisterPageSource", "TaxItemSource"]
