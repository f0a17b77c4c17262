from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from salesledger.app import (
    GstTaxReport,
    SalesRegisterReport,
    load_gst_tax_report,
    load_sales_register,
)
from salesledger.config import ReportConfig
from salesledger.domain.aggregation import BILLING_DOCUMENT
from salesledger.domain.errors import FilterValidationError
from salesledger.domain.filters import LedgerFilters, SalesRegisterFilters
from salesledger.domain.pagination import LoadSnapshot, LoadState, Progress
from salesledger.domain.ports.fetching import FetchedPage
from salesledger.domain.statistics import summarize_documents, summarize_groups
from salesledger.domain.taxonomy import SALES_REGISTER_TAXONOMY
from salesledger.domain.types import SecondaryItem, TextEntry

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from salesledger.domain.aggregation import AggregationResult
    from salesledger.domain.reconciliation import ReconciliationResult
    from salesledger.domain.types import DocumentKey, PrimaryLine, RawLineItem, TextKey

CONFIG = ReportConfig(page_size=2, text_batch_size=2, text_batch_delay_ms=0)


class ListSource[T]:
    def __init__(self, records: Sequence[T]) -> None:
        self.records = list(records)
        self.filters: list[object | None] = []

    async def __call__(
        self, *, skip: int, page_size: int, filters: object | None = None
    ) -> FetchedPage[T]:
        self.filters.append(filters)
        return FetchedPage(self.records[skip : skip + page_size], len(self.records))


class FakeTextLookup:
    def __init__(self) -> None:
        self.keys: list[TextKey] = []

    async def __call__(self, key: TextKey) -> Sequence[TextEntry]:
        self.keys.append(key)
        return [TextEntry("ZXT4", f"CONTRACT-{key.sales_order[-1]}")]


class FakeTaxSource:
    def __init__(self, tax_amounts: dict[str, str]) -> None:
        self.tax_amounts = tax_amounts
        self.requested: list[DocumentKey] = []

    async def __call__(self, keys: Sequence[DocumentKey]) -> Sequence[SecondaryItem]:
        self.requested.extend(keys)
        return [
            SecondaryItem(
                company_code=key.company_code,
                accounting_document=key.accounting_document,
                fiscal_year=key.fiscal_year,
                tax_code="G1",
                tax_amount=self.tax_amounts[key.accounting_document],
            )
            for key in keys
            if key.accounting_document in self.tax_amounts
        ]


def test_load_sales_register_enriches_and_aggregates(
    make_line: Callable[..., RawLineItem],
) -> None:
    lines = [
        make_line("0000100001", "000010", "PPR0", "100"),
        make_line("0000100001", "000010", "JOIG", "18"),
        make_line("0000100002", "000010", "PPR0", "50", contract_id="FROM-SOURCE"),
    ]
    source = ListSource(lines)
    lookup = FakeTextLookup()
    updates: list[Progress] = []
    filters = SalesRegisterFilters(regions=("MH",))

    report = asyncio.run(
        load_sales_register(
            filters,
            config=CONFIG,
            source=source,
            text_lookup=lookup,
            load_all=True,
            observer=updates.append,
        )
    )

    groups = {group.key: group for group in report.result.groups}
    assert report.snapshot.loaded == 3
    assert not report.snapshot.has_more
    assert source.filters == [filters, filters]
    assert groups["0000100001_000010"].invoice_amount == Decimal("118.00")
    assert groups["0000100001_000010"].text.contract_id == "CONTRACT-1"
    assert groups["0000100002_000010"].attributes["contract_id"] == "FROM-SOURCE"
    assert report.summary.total_invoice_amount == Decimal("168.00")
    assert report.enrichment is not None
    assert report.enrichment.requested == 2
    assert [str(key) for key in lookup.keys] == ["0000100001_000010", "0000100002_000010"]
    assert updates[-1].total_steps == 3
    assert not updates[-1].loading


def test_load_sales_register_without_texts(make_line: Callable[..., RawLineItem]) -> None:
    lines = [
        make_line("0000100001", billing_document="0090000001", product="A"),
        make_line("0000100002", billing_document="0090000001", product="B"),
    ]

    report = asyncio.run(
        load_sales_register(
            SalesRegisterFilters(),
            config=CONFIG,
            source=ListSource(lines),
            with_texts=False,
            mode=BILLING_DOCUMENT,
        )
    )

    assert report.enrichment is None
    assert [group.key for group in report.result.groups] == ["0090000001"]
    assert report.result.groups[0].quantity == Decimal("2")


def test_load_sales_register_validates_before_loading() -> None:
    source = ListSource([])

    with pytest.raises(FilterValidationError):
        asyncio.run(
            load_sales_register(
                SalesRegisterFilters(sales_order="ABC"),
                config=CONFIG,
                source=source,
                with_texts=False,
            )
        )

    assert source.filters == []


def test_load_gst_tax_report_reconciles_across_pages(
    make_ledger_line: Callable[..., PrimaryLine],
) -> None:
    lines = [
        make_ledger_line("1800000001", "100", ledger_line_item="000001"),
        make_ledger_line("1800000001", "200", ledger_line_item="000002"),
        make_ledger_line("1800000001", "300", ledger_line_item="000003"),
        make_ledger_line("1800000002", "40", is_reversal=True),
    ]
    tax_source = FakeTaxSource({"1800000001": "50"})

    report = asyncio.run(
        load_gst_tax_report(
            LedgerFilters(company_code="1000", fiscal_year="2024"),
            config=CONFIG,
            ledger_source=ListSource(lines),
            tax_source=tax_source,
            load_all=True,
        )
    )

    documents = {d.key.accounting_document: d for d in report.result.documents}
    assert report.snapshot.loaded == 4
    assert documents["1800000001"].taxable_amount == Decimal("600.00")
    assert documents["1800000001"].total_tax_amount == Decimal("50.00")
    assert documents["1800000001"].record_count == 3
    assert documents["1800000002"].compliance_issues == ["No GST Data"]
    assert [key.accounting_document for key in tax_source.requested] == [
        "1800000001",
        "1800000002",
    ]
    assert report.summary.reversed_documents == 1
    assert report.summary.grand_total == Decimal("690.00")


def test_load_gst_tax_report_first_page_only(
    make_ledger_line: Callable[..., PrimaryLine],
) -> None:
    lines = [make_ledger_line(f"180000000{index}") for index in range(1, 6)]

    report = asyncio.run(
        load_gst_tax_report(
            LedgerFilters(company_code="1000", fiscal_year="2024"),
            config=CONFIG,
            ledger_source=ListSource(lines),
            tax_source=FakeTaxSource({}),
        )
    )

    assert report.snapshot.loaded == 2
    assert report.snapshot.has_more
    assert report.snapshot.state is LoadState.HAS_MORE


def test_load_gst_tax_report_requires_company_and_year() -> None:
    with pytest.raises(FilterValidationError, match="Company Code is mandatory"):
        asyncio.run(
            load_gst_tax_report(
                LedgerFilters(fiscal_year="2024"),
                config=CONFIG,
                ledger_source=ListSource([]),
                tax_source=FakeTaxSource({}),
            )
        )


def test_empty_snapshot_results_default_to_empty() -> None:
    snapshot: LoadSnapshot[AggregationResult] = LoadSnapshot(
        result=None, loaded=0, total_count=None, has_more=False, state=LoadState.IDLE
    )
    ledger_snapshot: LoadSnapshot[ReconciliationResult] = LoadSnapshot(
        result=None, loaded=0, total_count=None, has_more=False, state=LoadState.IDLE
    )

    register = SalesRegisterReport(
        snapshot=snapshot, summary=summarize_groups([], SALES_REGISTER_TAXONOMY)
    )
    ledger = GstTaxReport(snapshot=ledger_snapshot, summary=summarize_documents([]))

    assert register.result.groups == []
    assert ledger.result.documents == []
