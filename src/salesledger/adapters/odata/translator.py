"""Translate OData payloads into domain records."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from salesledger.config.odata import TEXT_LANGUAGE
from salesledger.domain.types import PrimaryLine, RawLineItem, SecondaryItem, TextEntry

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .schema import LedgerRecord, SalesRegisterRecord, TaxItemRecord, TextEntryPayload

_ODATA_DATE = re.compile(r"^/Date\((?P<millis>-?\d+)(?:[+-]\d{4})?\)/$")


def parse_odata_date(value: str) -> str:
    """Render ``/Date(ms)/`` literals as ISO dates; other values pass through."""

    match = _ODATA_DATE.match(value.strip()) if value else None
    if match is None:
        return value
    moment = datetime.fromtimestamp(int(match.group("millis")) / 1000, tz=UTC)
    return moment.date().isoformat()


def _compact(values: dict[str, str]) -> dict[str, str]:
    return {name: value for name, value in values.items() if value}


def to_raw_line_item(record: SalesRegisterRecord) -> RawLineItem:
    attributes = _compact(
        {
            "billing_document_date": parse_odata_date(record.billing_document_date),
            "billing_document_type": record.billing_document_type,
            "product": record.product,
            "item_text": record.item_text,
            "transaction_currency": record.transaction_currency,
            "quantity_unit": record.billing_quantity_unit,
            "customer_name": record.customer_full_name or record.customer_display,
            "payer": record.payer_party or record.payer_party_alt,
            "region": record.region,
            "gl_account": record.gl_account,
            "tax_code": record.tax_code,
            "profit_center": record.profit_center,
            "bill_to_party": record.bill_to_party,
            "plant": record.plant,
            "division": record.division,
            "eway_bill_number": record.eway_bill_number,
            "eway_bill_status": record.eway_bill_status,
            "purchase_order": record.purchase_order,
        }
    )
    return RawLineItem(
        billing_document=record.billing_document,
        billing_document_item=record.billing_document_item,
        sales_document=record.sales_document,
        sales_document_item=record.sales_document_item,
        condition_type=record.condition_type,
        condition_amount=record.condition_amount,
        billing_quantity=record.billing_quantity,
        attributes=attributes,
    )


def to_text_entries(payloads: Iterable[TextEntryPayload]) -> list[TextEntry]:
    return [
        TextEntry(long_text_id=payload.long_text_id, long_text=payload.long_text)
        for payload in payloads
        if not payload.language or payload.language.upper() == TEXT_LANGUAGE
    ]


def to_primary_line(record: LedgerRecord) -> PrimaryLine:
    attributes = _compact(
        {
            "posting_date": parse_odata_date(record.posting_date),
            "document_date": parse_odata_date(record.document_date),
            "transaction_currency": record.transaction_currency,
            "customer": record.customer,
            "customer_name": record.customer_name,
            "document_type": record.document_type,
            "document_type_name": record.document_type_name,
            "region": record.region,
            "business_place": record.business_place,
        }
    )
    return PrimaryLine(
        company_code=record.company_code,
        accounting_document=record.accounting_document,
        fiscal_year=record.fiscal_year,
        ledger_line_item=record.ledger_gl_line_item,
        taxable_amount=record.taxable_amount,
        is_reversal=record.is_reversal,
        reversal_reference=record.reversal_reference,
        bp_tax_number=record.bp_tax_number,
        place_of_supply=record.place_of_supply,
        attributes=attributes,
    )


def to_secondary_item(record: TaxItemRecord) -> SecondaryItem:
    return SecondaryItem(
        company_code=record.company_code,
        accounting_document=record.accounting_document,
        fiscal_year=record.fiscal_year,
        tax_item=record.tax_item,
        tax_code=record.tax_code,
        tax_amount=record.tax_amount,
        tax_base_amount=record.tax_base_amount,
    )


__all__ = [
    "parse_odata_date",
    "to_primary_line",
    "to_raw_line_item",
    "to_secondary_item",
    "to_text_entries",
]
