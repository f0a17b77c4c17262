"""Application orchestration entry points."""

from __future__ import annotations

from contextlib import AsyncExitStack
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from salesledger.adapters.odata import (
    LedgerPageSource,
    ODataClient,
    SalesOrderTextLookup,
    SalesRegisterPageSource,
    TaxItemSource,
)
from salesledger.config import (
    ReportConfig,
    get_ledger_config,
    get_report_config,
    get_sales_order_config,
    get_sales_register_config,
    get_tax_item_config,
)
from salesledger.domain.aggregation import SALES_DOCUMENT_ITEM, AggregationResult, aggregate
from salesledger.domain.enrichment import (
    EnrichmentReport,
    TextEnrichmentService,
    attach_text,
    text_keys_for,
)
from salesledger.domain.pagination import PaginationCoordinator
from salesledger.domain.reconciliation import (
    ReconciliationResult,
    SecondaryFeedCollector,
    reconcile,
)
from salesledger.domain.statistics import summarize_documents, summarize_groups
from salesledger.domain.taxonomy import SALES_REGISTER_TAXONOMY

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Sequence

    from salesledger.domain.aggregation import GroupingMode
    from salesledger.domain.filters import LedgerFilters, SalesRegisterFilters
    from salesledger.domain.pagination import LoadSnapshot, ProgressObserver
    from salesledger.domain.ports.enrichment import TextLookup
    from salesledger.domain.ports.fetching import PageFetcher, SecondaryFetcher
    from salesledger.domain.statistics import LedgerSummary, RegisterSummary
    from salesledger.domain.taxonomy import ConditionTaxonomy
    from salesledger.domain.types import PrimaryLine, RawLineItem

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SalesRegisterReport:
    snapshot: LoadSnapshot[AggregationResult]
    summary: RegisterSummary
    enrichment: EnrichmentReport | None = None

    @property
    def result(self) -> AggregationResult:
        return self.snapshot.result or AggregationResult()


@dataclass(slots=True, frozen=True)
class GstTaxReport:
    snapshot: LoadSnapshot[ReconciliationResult]
    summary: LedgerSummary

    @property
    def result(self) -> ReconciliationResult:
        return self.snapshot.result or ReconciliationResult()


def build_sales_register_coordinator(
    source: PageFetcher[RawLineItem],
    *,
    text_service: TextEnrichmentService | None = None,
    taxonomy: ConditionTaxonomy = SALES_REGISTER_TAXONOMY,
    mode: GroupingMode = SALES_DOCUMENT_ITEM,
    page_size: int,
    filters: SalesRegisterFilters | None = None,
) -> PaginationCoordinator[RawLineItem, AggregationResult]:
    def aggregate_lines(items: Sequence[RawLineItem]) -> AggregationResult:
        return aggregate(items, taxonomy, mode)

    if text_service is None:
        return PaginationCoordinator(
            source, aggregate_lines, page_size=page_size, filters=filters
        )

    async def enrich_lines(
        items: Sequence[RawLineItem], cancel: asyncio.Event
    ) -> Sequence[RawLineItem]:
        records = await text_service.enrich(text_keys_for(items), cancel=cancel)
        return attach_text(items, records)

    return PaginationCoordinator(
        source, aggregate_lines, enrich_lines, page_size=page_size, filters=filters
    )


def build_gst_tax_coordinator(
    ledger_source: PageFetcher[PrimaryLine],
    tax_source: SecondaryFetcher,
    *,
    page_size: int,
    chunk_size: int,
    filters: LedgerFilters | None = None,
) -> PaginationCoordinator[PrimaryLine, ReconciliationResult]:
    collector = SecondaryFeedCollector(tax_source, chunk_size=chunk_size)

    async def collect_tax_items(
        lines: Sequence[PrimaryLine], cancel: asyncio.Event
    ) -> Sequence[PrimaryLine]:
        if not cancel.is_set():
            await collector.collect(lines)
        return lines

    def reconcile_lines(lines: Sequence[PrimaryLine]) -> ReconciliationResult:
        return reconcile(lines, collector.items)

    return PaginationCoordinator(
        ledger_source, reconcile_lines, collect_tax_items, page_size=page_size, filters=filters
    )


async def load_sales_register(
    filters: SalesRegisterFilters,
    *,
    config: ReportConfig | None = None,
    source: PageFetcher[RawLineItem] | None = None,
    text_lookup: TextLookup | None = None,
    with_texts: bool = True,
    mode: GroupingMode = SALES_DOCUMENT_ITEM,
    load_all: bool = False,
    max_pages: int | None = None,
    observer: ProgressObserver | None = None,
) -> SalesRegisterReport:
    """Load (and aggregate) the sales register for ``filters``."""

    filters.validate()
    effective_config = config or get_report_config()

    async with AsyncExitStack() as stack:
        if source is None:
            client = await stack.enter_async_context(ODataClient(get_sales_register_config()))
            source = SalesRegisterPageSource(client)
        if with_texts and text_lookup is None:
            text_client = await stack.enter_async_context(ODataClient(get_sales_order_config()))
            text_lookup = SalesOrderTextLookup(text_client)

        text_service = (
            TextEnrichmentService(
                text_lookup,
                batch_size=effective_config.text_batch_size,
                batch_delay=effective_config.text_batch_delay_seconds,
            )
            if with_texts
            else None
        )
        coordinator = build_sales_register_coordinator(
            source,
            text_service=text_service,
            mode=mode,
            page_size=effective_config.page_size,
            filters=filters,
        )
        if observer is not None:
            coordinator.subscribe(observer)

        log.info(f"Loading sales register (mode={mode.name}, page_size={coordinator.page_size})")
        if load_all:
            snapshot = await coordinator.load_all(max_pages=max_pages)
        else:
            snapshot = await coordinator.load()

    groups = snapshot.result.groups if snapshot.result is not None else []
    summary = summarize_groups(groups, SALES_REGISTER_TAXONOMY)
    log.info(
        f"Sales register loaded: {summary.total_groups} groups from {snapshot.loaded} lines, "
        f"has_more={snapshot.has_more}"
    )
    return SalesRegisterReport(
        snapshot=snapshot,
        summary=summary,
        enrichment=text_service.last_report if text_service is not None else None,
    )


async def load_gst_tax_report(
    filters: LedgerFilters,
    *,
    config: ReportConfig | None = None,
    ledger_source: PageFetcher[PrimaryLine] | None = None,
    tax_source: SecondaryFetcher | None = None,
    load_all: bool = False,
    max_pages: int | None = None,
    observer: ProgressObserver | None = None,
) -> GstTaxReport:
    """Load ledger lines for ``filters`` and reconcile them with their tax items."""

    filters.validate()
    effective_config = config or get_report_config()

    async with AsyncExitStack() as stack:
        if ledger_source is None:
            client = await stack.enter_async_context(ODataClient(get_ledger_config()))
            ledger_source = LedgerPageSource(client)
        if tax_source is None:
            tax_client = await stack.enter_async_context(ODataClient(get_tax_item_config()))
            tax_source = TaxItemSource(tax_client)

        coordinator = build_gst_tax_coordinator(
            ledger_source,
            tax_source,
            page_size=effective_config.page_size,
            chunk_size=effective_config.secondary_keys_per_request,
            filters=filters,
        )
        if observer is not None:
            coordinator.subscribe(observer)

        log.info(
            "Loading GST tax report: company_code=%s, fiscal_year=%s",
            filters.company_code,
            filters.fiscal_year,
        )
        if load_all:
            snapshot = await coordinator.load_all(max_pages=max_pages)
        else:
            snapshot = await coordinator.load()

    documents = snapshot.result.documents if snapshot.result is not None else []
    summary = summarize_documents(documents)
    log.info(
        f"GST tax report loaded: {summary.documents} documents from {snapshot.loaded} lines, "
        f"has_more={snapshot.has_more}"
    )
    return GstTaxReport(snapshot=snapshot, summary=summary)


__all__ = [
    "GstTaxReport",
    "SalesRegisterReport",
    "build_gst_tax_coordinator",
    "build_sales_register_coordinator",
    "load_gst_tax_report",
    "load_sales_register",
]
