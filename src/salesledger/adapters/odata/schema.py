"""Pydantic models describing the OData v2 payloads."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

RecordT = TypeVar("RecordT", bound=BaseModel)


def _none_to_blank(value: object) -> object:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return value


class ODataBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ODataCollection(ODataBaseModel, Generic[RecordT]):
    results: list[RecordT] = Field(default_factory=list)
    count: int | None = Field(default=None, alias="__count")
    next_link: str | None = Field(default=None, alias="__next")

    @field_validator("count", mode="before")
    @classmethod
    def _parse_count(cls, value: int | str | None) -> int | None:
        if value is None or value == "":
            return None
        return int(value)


class ODataEnvelope(ODataBaseModel, Generic[RecordT]):
    d: ODataCollection[RecordT]


class ErrorMessage(ODataBaseModel):
    lang: str | None = None
    value: str = ""


class ErrorDetail(ODataBaseModel):
    code: str = ""
    message: ErrorMessage = Field(default_factory=ErrorMessage)


class ErrorResponse(ODataBaseModel):
    error: ErrorDetail


# ---------------------------------------------------------------------------
# Entity sets
# ---------------------------------------------------------------------------


class SalesRegisterRecord(ODataBaseModel):
    billing_document: str = Field(default="", alias="BillingDocument")
    billing_document_item: str = Field(default="", alias="BillingDocumentItem")
    billing_document_date: str = Field(default="", alias="BillingDocumentDate")
    billing_document_type: str = Field(default="", alias="BillingDocumentType")
    sales_document: str = Field(default="", alias="SalesDocument")
    sales_document_item: str = Field(default="", alias="SalesDocumentItem")
    product: str = Field(default="", alias="Product")
    item_text: str = Field(default="", alias="BillingDocumentItemText")
    total_net_amount: str | float | None = Field(default=None, alias="TotalNetAmount")
    transaction_currency: str = Field(default="", alias="TransactionCurrency")
    billing_quantity: str | float | None = Field(default=None, alias="BillingQuantity")
    billing_quantity_unit: str = Field(default="", alias="BillingQuantityUnit")
    customer_full_name: str = Field(default="", alias="CustomerFullName_1")
    customer_display: str = Field(default="", alias="CustomerDisplay")
    payer_party: str = Field(default="", alias="PayerParty")
    payer_party_alt: str = Field(default="", alias="PayerParty_1")
    region: str = Field(default="", alias="Region")
    gl_account: str = Field(default="", alias="GLAccount")
    tax_code: str = Field(default="", alias="TaxCode")
    profit_center: str = Field(default="", alias="ProfitCenter")
    bill_to_party: str = Field(default="", alias="BillToParty")
    plant: str = Field(default="", alias="Plant")
    division: str = Field(default="", alias="Division")
    eway_bill_number: str = Field(default="", alias="IN_EDocEInvcEWbillNmbr")
    eway_bill_status: str = Field(default="", alias="IN_EDocEWbillStatus")
    purchase_order: str = Field(default="", alias="PurchaseOrderByShipToParty")
    condition_type: str | None = Field(default=None, alias="ConditionType")
    condition_amount: str | float | None = Field(default=None, alias="ConditionAmount")

    _blank_strings = field_validator(
        "billing_document",
        "billing_document_item",
        "billing_document_date",
        "billing_document_type",
        "sales_document",
        "sales_document_item",
        "product",
        "item_text",
        "transaction_currency",
        "billing_quantity_unit",
        "customer_full_name",
        "customer_display",
        "payer_party",
        "payer_party_alt",
        "region",
        "gl_account",
        "tax_code",
        "profit_center",
        "bill_to_party",
        "plant",
        "division",
        "eway_bill_number",
        "eway_bill_status",
        "purchase_order",
        mode="before",
    )(_none_to_blank)

    @field_validator("condition_type", mode="before")
    @classmethod
    def _blank_condition(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value


class TextEntryPayload(ODataBaseModel):
    sales_order: str = Field(default="", alias="SalesOrder")
    sales_order_item: str = Field(default="", alias="SalesOrderItem")
    language: str = Field(default="", alias="Language")
    long_text_id: str = Field(default="", alias="LongTextID")
    long_text: str = Field(default="", alias="LongText")

    _blank_strings = field_validator("long_text", "long_text_id", mode="before")(_none_to_blank)


class LedgerRecord(ODataBaseModel):
    company_code: str = Field(default="", alias="CompanyCode")
    accounting_document: str = Field(default="", alias="AccountingDocument")
    fiscal_year: str = Field(default="", alias="FiscalYear")
    ledger_gl_line_item: str = Field(default="", alias="LedgerGLLineItem")
    posting_date: str = Field(default="", alias="PostingDate")
    document_date: str = Field(default="", alias="DocumentDate")
    transaction_currency: str = Field(default="", alias="TransactionCurrency")
    customer: str = Field(default="", alias="Customer")
    customer_name: str = Field(default="", alias="CustomerName")
    document_type: str = Field(default="", alias="AccountingDocumentType_1")
    document_type_name: str = Field(default="", alias="AccountingDocumentTypeName_1")
    is_reversal: bool = Field(default=False, alias="IsReversal")
    reversal_reference: str = Field(default="", alias="ReversalReferenceDocument")
    region: str = Field(default="", alias="Region")
    business_place: str = Field(default="", alias="BusinessPlace")
    bp_tax_number: str = Field(default="", alias="BPTaxNumber")
    place_of_supply: str = Field(default="", alias="IN_GSTPlaceOfSupply")
    taxable_amount: str | float | None = Field(default=None, alias="TaxableAmount")

    _blank_strings = field_validator(
        "company_code",
        "accounting_document",
        "fiscal_year",
        "ledger_gl_line_item",
        "posting_date",
        "document_date",
        "transaction_currency",
        "customer",
        "customer_name",
        "document_type",
        "document_type_name",
        "reversal_reference",
        "region",
        "business_place",
        "bp_tax_number",
        "place_of_supply",
        mode="before",
    )(_none_to_blank)

    @field_validator("is_reversal", mode="before")
    @classmethod
    def _parse_flag(cls, value: object) -> object:
        if value is None or value == "":
            return False
        if isinstance(value, str):
            return value.strip().lower() in {"true", "x", "1"}
        return value


class TaxItemRecord(ODataBaseModel):
    company_code: str = Field(default="", alias="CompanyCode")
    accounting_document: str = Field(default="", alias="AccountingDocument")
    fiscal_year: str = Field(default="", alias="FiscalYear")
    tax_item: str = Field(default="", alias="TaxItem")
    tax_code: str = Field(default="", alias="TaxCode")
    tax_base_amount: str | float | None = Field(default=None, alias="TaxBaseAmountInTransCrcy")
    tax_amount: str | float | None = Field(default=None, alias="TaxAmountInTransCrcy")
    transaction_currency: str = Field(default="", alias="TransactionCurrency")

    _blank_strings = field_validator(
        "company_code",
        "accounting_document",
        "fiscal_year",
        "tax_item",
        "tax_code",
        "transaction_currency",
        mode="before",
    )(_none_to_blank)


__all__ = [
    "ErrorResponse",
    "LedgerRecord",
    "ODataCollection",
    "ODataEnvelope",
    "SalesRegisterRecord",
    "TaxItemRecord",
    "TextEntryPayload",
]
