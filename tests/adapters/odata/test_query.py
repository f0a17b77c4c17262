from __future__ import annotations

from datetime import date

from salesledger.adapters.odata.query import (
    contains,
    datetime_literal,
    document_range_clauses,
    eq,
    ledger_filter,
    paging_params,
    quote,
    sales_register_filter,
    tax_item_filter,
)
from salesledger.domain.filters import DocumentRange, LedgerFilters, SalesRegisterFilters
from salesledger.domain.types import DocumentKey


def test_literals_escape_quotes() -> None:
    assert quote("O'Brien") == "'O''Brien'"
    assert eq("CustomerFullName_1", "O'Brien") == "CustomerFullName_1 eq 'O''Brien'"
    assert contains("Product", "STEEL") == "substringof('STEEL',Product)"
    assert datetime_literal(date(2024, 4, 1)) == "datetime'2024-04-01T00:00:00'"


def test_sales_register_filter_composes_clauses() -> None:
    filters = SalesRegisterFilters(
        sales_order="100001",
        material="TMT",
        regions=("MH", " ", "KA"),
        billing_document_type="F2",
        from_date=date(2024, 4, 1),
        to_date=date(2024, 4, 30),
    )

    assert sales_register_filter(filters) == (
        "SalesDocument eq '100001'"
        " and substringof('TMT',Product)"
        " and (Region eq 'MH' or Region eq 'KA')"
        " and BillingDocumentType eq 'F2'"
        " and BillingDocumentDate ge datetime'2024-04-01T00:00:00'"
        " and BillingDocumentDate le datetime'2024-04-30T00:00:00'"
    )


def test_sales_register_filter_empty() -> None:
    assert sales_register_filter(None) is None
    assert sales_register_filter(SalesRegisterFilters()) is None
    assert sales_register_filter(SalesRegisterFilters(regions=("KA",))) == "Region eq 'KA'"


def test_ledger_filter_excludes_zero_amounts_without_range() -> None:
    filters = LedgerFilters(company_code="1000", fiscal_year="2024")

    assert ledger_filter(filters) == (
        "CompanyCode eq '1000' and FiscalYear eq '2024' and TaxableAmount ne '0'"
    )


def test_exact_document_matches_padded_or_raw_number() -> None:
    clauses = document_range_clauses(DocumentRange("18001", "18001"))

    assert clauses == ["(AccountingDocument eq '0000018001' or AccountingDocument eq '18001')"]
    assert document_range_clauses(DocumentRange("1800000001", "1800000001")) == [
        "AccountingDocument eq '1800000001'"
    ]


def test_document_range_uses_padded_bounds() -> None:
    filters = LedgerFilters(
        company_code="1000",
        fiscal_year="2024",
        from_date=date(2024, 4, 1),
        document_range=DocumentRange("1", "500"),
    )

    assert ledger_filter(filters) == (
        "CompanyCode eq '1000' and FiscalYear eq '2024'"
        " and PostingDate ge datetime'2024-04-01T00:00:00'"
        " and AccountingDocument ge '0000000001'"
        " and AccountingDocument le '0000000500'"
    )


def test_tax_item_filter_shapes() -> None:
    first = DocumentKey("1000", "1800000001", "2024")
    second = DocumentKey("1000", "1800000002", "2024")

    assert tax_item_filter([]) is None
    assert tax_item_filter([first]) == (
        "CompanyCode eq '1000' and AccountingDocument eq '1800000001' and FiscalYear eq '2024'"
    )
    assert tax_item_filter([first, second]) == (
        "(CompanyCode eq '1000' and AccountingDocument eq '1800000001' and FiscalYear eq '2024')"
        " or "
        "(CompanyCode eq '1000' and AccountingDocument eq '1800000002' and FiscalYear eq '2024')"
    )


def test_paging_params() -> None:
    first = paging_params(skip=0, top=500, select=("A", "B"), orderby="A asc")
    later = paging_params(
        skip=500, top=500, select=("A",), filter_expression="A eq '1'", inline_count=False
    )

    assert first == {
        "$format": "json",
        "$select": "A,B",
        "$top": "500",
        "$orderby": "A asc",
        "$inlinecount": "allpages",
    }
    assert later == {
        "$format": "json",
        "$select": "A",
        "$top": "500",
        "$skip": "500",
        "$filter": "A eq '1'",
    }
