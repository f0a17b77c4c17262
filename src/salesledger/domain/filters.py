"""Typed report filters and their validation rules."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import FilterValidationError

if TYPE_CHECKING:
    from datetime import date

DOCUMENT_NUMBER_WIDTH = 10
MAX_DOCUMENT_RANGE_SPAN = 10_000

_DIGITS = re.compile(r"^\d+$")
_FOUR_DIGITS = re.compile(r"^\d{4}$")


def normalize_document_number(value: str) -> str:
    """Left-pad a document number to the width the backend stores."""

    return value.strip().zfill(DOCUMENT_NUMBER_WIDTH)


def _clean(value: str | None) -> str:
    return value.strip() if value else ""


def _date_errors(from_date: date | None, to_date: date | None) -> list[str]:
    if from_date is not None and to_date is not None and from_date > to_date:
        return ["From Date cannot be later than To Date"]
    return []


@dataclass(slots=True, frozen=True)
class SalesRegisterFilters:
    sales_order: str | None = None
    billing_document: str | None = None
    billing_document_type: str | None = None
    material: str | None = None
    customer: str | None = None
    regions: tuple[str, ...] = field(default_factory=tuple)
    from_date: date | None = None
    to_date: date | None = None

    def errors(self) -> list[str]:
        errors: list[str] = []
        billing_document = _clean(self.billing_document)
        if billing_document and not _DIGITS.match(billing_document):
            errors.append("Billing Document must be numeric")
        sales_order = _clean(self.sales_order)
        if sales_order and not _DIGITS.match(sales_order):
            errors.append("Sales Order must be numeric")
        errors.extend(_date_errors(self.from_date, self.to_date))
        return errors

    def validate(self) -> SalesRegisterFilters:
        errors = self.errors()
        if errors:
            raise FilterValidationError(errors)
        return self


@dataclass(slots=True, frozen=True)
class DocumentRange:
    start: str | None = None
    end: str | None = None

    @property
    def is_empty(self) -> bool:
        return not _clean(self.start) and not _clean(self.end)

    @property
    def is_exact(self) -> bool:
        start = _clean(self.start)
        return bool(start) and start == _clean(self.end)

    def errors(self) -> list[str]:
        errors: list[str] = []
        start = _clean(self.start)
        end = _clean(self.end)
        if start and not _DIGITS.match(start):
            errors.append("From Document must be a numeric value.")
        if end and not _DIGITS.match(end):
            errors.append("To Document must be a numeric value.")

        if _DIGITS.match(start) and _DIGITS.match(end):
            low, high = int(start), int(end)
            if low > high:
                errors.append("From Document cannot be greater than To Document.")
            if high - low > MAX_DOCUMENT_RANGE_SPAN:
                errors.append(
                    "Document range is very large (>10,000). "
                    "Consider using smaller ranges for better performance."
                )

        if start and len(start) > 12:
            errors.append("From Document should be 1-12 digits.")
        if end and len(end) > 12:
            errors.append("To Document should be 1-12 digits.")
        return errors


@dataclass(slots=True, frozen=True)
class LedgerFilters:
    company_code: str | None = None
    fiscal_year: str | None = None
    from_date: date | None = None
    to_date: date | None = None
    document_range: DocumentRange = field(default_factory=DocumentRange)

    def errors(self) -> list[str]:
        errors: list[str] = []
        company_code = _clean(self.company_code)
        fiscal_year = _clean(self.fiscal_year)
        if not company_code:
            errors.append("Company Code is mandatory.")
        elif not _FOUR_DIGITS.match(company_code):
            errors.append("Company Code must be 4 digits")
        if not fiscal_year:
            errors.append("Fiscal Year is mandatory.")
        elif not _FOUR_DIGITS.match(fiscal_year):
            errors.append("Fiscal Year must be 4 digits")
        errors.extend(_date_errors(self.from_date, self.to_date))
        errors.extend(self.document_range.errors())
        return errors

    def validate(self) -> LedgerFilters:
        errors = self.errors()
        if errors:
            raise FilterValidationError(errors)
        return self


__all__ = [
    "DOCUMENT_NUMBER_WIDTH",
    "MAX_DOCUMENT_RANGE_SPAN",
    "DocumentRange",
    "LedgerFilters",
    "SalesRegisterFilters",
    "normalize_document_number",
]
