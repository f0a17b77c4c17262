"""Query option builders (``$filter``, ``$select``, paging) for the OData services."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from salesledger.domain.filters import normalize_document_number

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import date

    from salesledger.domain.filters import DocumentRange, LedgerFilters, SalesRegisterFilters
    from salesledger.domain.types import DocumentKey

SALES_REGISTER_SELECT: Final[tuple[str, ...]] = (
    "BillingDocument",
    "BillingDocumentDate",
    "BillingDocumentItem",
    "BillingDocumentType",
    "SalesDocument",
    "SalesDocumentItem",
    "Product",
    "BillingDocumentItemText",
    "TotalNetAmount",
    "TransactionCurrency",
    "BillingQuantity",
    "BillingQuantityUnit",
    "CustomerFullName_1",
    "PayerParty_1",
    "Region",
    "GLAccount",
    "TaxCode",
    "ProfitCenter",
    "BillToParty",
    "Plant",
    "Division",
    "IN_EDocEInvcEWbillNmbr",
    "IN_EDocEWbillStatus",
    "PurchaseOrderByShipToParty",
    "ConditionType",
    "ConditionAmount",
)
SALES_REGISTER_ORDERBY: Final[str] = "SalesDocument asc, SalesDocumentItem asc, BillingDocument asc"

TEXT_SELECT: Final[tuple[str, ...]] = (
    "SalesOrder",
    "SalesOrderItem",
    "Language",
    "LongTextID",
    "LongText",
)

LEDGER_SELECT: Final[tuple[str, ...]] = (
    "CompanyCode",
    "AccountingDocument",
    "FiscalYear",
    "LedgerGLLineItem",
    "PostingDate",
    "DocumentDate",
    "TransactionCurrency",
    "Customer",
    "CustomerName",
    "AccountingDocumentTypeName_1",
    "AccountingDocumentType_1",
    "IsReversal",
    "ReversalReferenceDocument",
    "Region",
    "BusinessPlace",
    "BPTaxNumber",
    "IN_GSTPlaceOfSupply",
    "TaxableAmount",
)
LEDGER_ORDERBY: Final[str] = (
    "CompanyCode asc,FiscalYear desc,PostingDate desc,AccountingDocument asc"
)

TAX_ITEM_SELECT: Final[tuple[str, ...]] = (
    "CompanyCode",
    "AccountingDocument",
    "FiscalYear",
    "TaxItem",
    "TaxCode",
    "TaxBaseAmountInTransCrcy",
    "TaxAmountInTransCrcy",
    "TransactionCurrency",
)
TAX_ITEM_ORDERBY: Final[str] = "CompanyCode asc,AccountingDocument asc,FiscalYear asc,TaxItem asc"
TAX_ITEM_PAGE_SIZE: Final[int] = 5000


def quote(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def eq(name: str, value: str) -> str:
    return f"{name} eq {quote(value)}"


def datetime_literal(value: date) -> str:
    return f"datetime'{value.isoformat()}T00:00:00'"


def contains(name: str, value: str) -> str:
    return f"substringof({quote(value)},{name})"


def any_of(clauses: Sequence[str]) -> str:
    if len(clauses) == 1:
        return clauses[0]
    return "(" + " or ".join(clauses) + ")"


def all_of(clauses: Iterable[str]) -> str:
    return " and ".join(clauses)


def sales_register_filter(filters: SalesRegisterFilters | None) -> str | None:
    if filters is None:
        return None
    clauses: list[str] = []
    if sales_order := (filters.sales_order or "").strip():
        clauses.append(eq("SalesDocument", sales_order))
    if billing_document := (filters.billing_document or "").strip():
        clauses.append(eq("BillingDocument", billing_document))
    if material := (filters.material or "").strip():
        clauses.append(contains("Product", material))
    if customer := (filters.customer or "").strip():
        clauses.append(contains("CustomerFullName_1", customer))
    regions = [region.strip() for region in filters.regions if region.strip()]
    if regions:
        clauses.append(any_of([eq("Region", region) for region in regions]))
    if document_type := (filters.billing_document_type or "").strip():
        clauses.append(eq("BillingDocumentType", document_type))
    if filters.from_date is not None:
        clauses.append(f"BillingDocumentDate ge {datetime_literal(filters.from_date)}")
    if filters.to_date is not None:
        clauses.append(f"BillingDocumentDate le {datetime_literal(filters.to_date)}")
    return all_of(clauses) or None


def document_range_clauses(document_range: DocumentRange) -> list[str]:
    start = (document_range.start or "").strip()
    end = (document_range.end or "").strip()
    if document_range.is_exact:
        padded = normalize_document_number(start)
        variants = [eq("AccountingDocument", padded)]
        if padded != start:
            variants.append(eq("AccountingDocument", start))
        return [any_of(variants)]

    clauses: list[str] = []
    if start:
        clauses.append(f"AccountingDocument ge {quote(normalize_document_number(start))}")
    if end:
        clauses.append(f"AccountingDocument le {quote(normalize_document_number(end))}")
    return clauses


def ledger_filter(filters: LedgerFilters | None) -> str | None:
    if filters is None:
        return None
    clauses: list[str] = []
    if company_code := (filters.company_code or "").strip():
        clauses.append(eq("CompanyCode", company_code))
    if fiscal_year := (filters.fiscal_year or "").strip():
        clauses.append(eq("FiscalYear", fiscal_year))
    if filters.from_date is not None:
        clauses.append(f"PostingDate ge {datetime_literal(filters.from_date)}")
    if filters.to_date is not None:
        clauses.append(f"PostingDate le {datetime_literal(filters.to_date)}")
    if filters.document_range.is_empty:
        clauses.append("TaxableAmount ne '0'")
    else:
        clauses.extend(document_range_clauses(filters.document_range))
    return all_of(clauses) or None


def tax_item_filter(keys: Sequence[DocumentKey]) -> str | None:
    groups = [
        all_of(
            (
                eq("CompanyCode", key.company_code),
                eq("AccountingDocument", key.accounting_document),
                eq("FiscalYear", key.fiscal_year),
            )
        )
        for key in keys
    ]
    if not groups:
        return None
    if len(groups) == 1:
        return groups[0]
    return " or ".join(f"({group})" for group in groups)


def paging_params(
    *,
    skip: int,
    top: int,
    select: Sequence[str],
    orderby: str | None = None,
    filter_expression: str | None = None,
    inline_count: bool = True,
) -> dict[str, str]:
    params: dict[str, str] = {
        "$format": "json",
        "$select": ",".join(select),
        "$top": str(top),
    }
    if skip > 0:
        params["$skip"] = str(skip)
    if orderby:
        params["$orderby"] = orderby
    if filter_expression:
        params["$filter"] = filter_expression
    if inline_count:
        params["$inlinecount"] = "allpages"
    return params


__all__ = [
    "LEDGER_ORDERBY",
    "LEDGER_SELECT",
    "SALES_REGISTER_ORDERBY",
    "SALES_REGISTER_SELECT",
    "TAX_ITEM_ORDERBY",
    "TAX_ITEM_PAGE_SIZE",
    "TAX_ITEM_SELECT",
    "TEXT_SELECT",
    "document_range_clauses",
    "ledger_filter",
    "paging_params",
    "sales_register_filter",
    "tax_item_filter",
]
