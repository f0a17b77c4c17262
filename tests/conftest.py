from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from salesledger.domain.types import PrimaryLine, RawLineItem, SecondaryItem

if TYPE_CHECKING:
    from collections.abc import Callable


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_line() -> Callable[..., RawLineItem]:
    def factory(
        sales_document: str = "0000100001",
        sales_document_item: str = "000010",
        condition_type: str | None = "PPR0",
        condition_amount: object = "100.00",
        *,
        billing_document: str = "0090000001",
        billing_document_item: str = "000010",
        billing_quantity: object = "1.000",
        **attributes: str,
    ) -> RawLineItem:
        return RawLineItem(
            billing_document=billing_document,
            billing_document_item=billing_document_item,
            sales_document=sales_document,
            sales_document_item=sales_document_item,
            condition_type=condition_type,
            condition_amount=condition_amount,
            billing_quantity=billing_quantity,
            attributes=attributes,
        )

    return factory


@pytest.fixture
def make_ledger_line() -> Callable[..., PrimaryLine]:
    def factory(
        accounting_document: str = "1800000001",
        taxable_amount: object = "100.00",
        *,
        company_code: str = "1000",
        fiscal_year: str = "2024",
        ledger_line_item: str = "000001",
        is_reversal: bool = False,
        reversal_reference: str = "",
        bp_tax_number: str = "27ABCDE1234F1Z5",
        place_of_supply: str = "27",
    ) -> PrimaryLine:
        return PrimaryLine(
            company_code=company_code,
            accounting_document=accounting_document,
            fiscal_year=fiscal_year,
            ledger_line_item=ledger_line_item,
            taxable_amount=taxable_amount,
            is_reversal=is_reversal,
            reversal_reference=reversal_reference,
            bp_tax_number=bp_tax_number,
            place_of_supply=place_of_supply,
        )

    return factory


@pytest.fixture
def make_tax_item() -> Callable[..., SecondaryItem]:
    def factory(
        accounting_document: str = "1800000001",
        tax_amount: object = "18.00",
        *,
        tax_base_amount: object = "100.00",
        tax_code: str = "G1",
        tax_item: str = "000001",
        company_code: str = "1000",
        fiscal_year: str = "2024",
    ) -> SecondaryItem:
        return SecondaryItem(
            company_code=company_code,
            accounting_document=accounting_document,
            fiscal_year=fiscal_year,
            tax_item=tax_item,
            tax_code=tax_code,
            tax_amount=tax_amount,
            tax_base_amount=tax_base_amount,
        )

    return factory
