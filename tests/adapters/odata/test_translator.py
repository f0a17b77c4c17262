from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from salesledger.adapters.odata.schema import (
    LedgerRecord,
    ODataEnvelope,
    SalesRegisterRecord,
    TaxItemRecord,
    TextEntryPayload,
)
from salesledger.adapters.odata.translator import (
    parse_odata_date,
    to_primary_line,
    to_raw_line_item,
    to_secondary_item,
    to_text_entries,
)
from salesledger.domain.amounts import parse_amount


@pytest.fixture
def register_payload() -> dict[str, object]:
    return {
        "BillingDocument": "0090000001",
        "BillingDocumentItem": "000010",
        "BillingDocumentDate": "/Date(1711929600000)/",
        "BillingDocumentType": "F2",
        "SalesDocument": "0000100001",
        "SalesDocumentItem": "000010",
        "Product": "TMT-12",
        "BillingQuantity": "12.500",
        "CustomerFullName_1": None,
        "CustomerDisplay": "Acme Steel ",
        "PayerParty_1": "C100",
        "Region": "MH",
        "Plant": "",
        "ConditionType": " ",
        "ConditionAmount": "1,250.00",
        "__metadata": {"type": "YY1_SALESREGISTER.Item"},
    }


def test_parse_odata_date() -> None:
    assert parse_odata_date("/Date(1711929600000)/") == "2024-04-01"
    assert parse_odata_date("/Date(1711929600000+0530)/") == "2024-04-01"
    assert parse_odata_date("2024-04-01") == "2024-04-01"
    assert parse_odata_date("") == ""


def test_sales_register_record_translation(register_payload: dict[str, object]) -> None:
    record = SalesRegisterRecord.model_validate(register_payload)

    item = to_raw_line_item(record)

    assert item.sales_document == "0000100001"
    assert item.condition_type is None
    assert parse_amount(item.condition_amount) == Decimal("1250.00")
    assert item.attributes["billing_document_date"] == "2024-04-01"
    assert item.attributes["customer_name"] == "Acme Steel"
    assert item.attributes["payer"] == "C100"
    assert "plant" not in item.attributes


def test_envelope_parses_inline_count(register_payload: dict[str, object]) -> None:
    envelope = ODataEnvelope[SalesRegisterRecord].model_validate(
        {"d": {"results": [register_payload], "__count": "42"}}
    )

    assert envelope.d.count == 42
    assert envelope.d.next_link is None
    assert len(envelope.d.results) == 1


def test_envelope_rejects_non_collection_payload() -> None:
    with pytest.raises(ValidationError):
        ODataEnvelope[SalesRegisterRecord].model_validate({"d": {"results": "nope"}})


def test_text_entries_keep_english_only() -> None:
    payloads = [
        TextEntryPayload.model_validate({"Language": "EN", "LongTextID": "ZXT1", "LongText": "WH1"}),
        TextEntryPayload.model_validate({"Language": "DE", "LongTextID": "ZXT1", "LongText": "LG"}),
        TextEntryPayload.model_validate({"LongTextID": "ZXT4", "LongText": None}),
    ]

    entries = to_text_entries(payloads)

    assert [(entry.long_text_id, entry.long_text) for entry in entries] == [
        ("ZXT1", "WH1"),
        ("ZXT4", ""),
    ]


@pytest.mark.parametrize(
    ("flag", "expected"),
    [("true", True), ("X", True), ("", False), (None, False), (True, True), ("false", False)],
)
def test_ledger_reversal_flag(flag: object, expected: bool) -> None:
    record = LedgerRecord.model_validate({"IsReversal": flag})

    assert record.is_reversal is expected


def test_ledger_and_tax_translation() -> None:
    ledger = LedgerRecord.model_validate(
        {
            "CompanyCode": "1000",
            "AccountingDocument": "1800000001",
            "FiscalYear": "2024",
            "LedgerGLLineItem": "000001",
            "PostingDate": "/Date(1711929600000)/",
            "BPTaxNumber": "27ABCDE1234F1Z5",
            "IN_GSTPlaceOfSupply": None,
            "TaxableAmount": "100.00",
        }
    )
    tax = TaxItemRecord.model_validate(
        {
            "CompanyCode": "1000",
            "AccountingDocument": "1800000001",
            "FiscalYear": "2024",
            "TaxItem": "000001",
            "TaxCode": "G1",
            "TaxAmountInTransCrcy": "18.00",
            "TaxBaseAmountInTransCrcy": "100.00",
        }
    )

    line = to_primary_line(ledger)
    item = to_secondary_item(tax)

    assert line.document_key == item.document_key
    assert line.place_of_supply == ""
    assert line.attributes["posting_date"] == "2024-04-01"
    assert item.tax_amount == "18.00"
