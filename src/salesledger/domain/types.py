"""Domain value types shared by the aggregation, enrichment and reconciliation code."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar, NamedTuple

from .amounts import ZERO

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .taxonomy import ConditionTaxonomy

KEY_SEPARATOR = "_"


# ---------------------------------------------------------------------------
# Sales register lines
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class RawLineItem:
    """One denormalized billing line carrying at most one pricing condition.

    ``condition_amount`` and ``billing_quantity`` are kept exactly as delivered by
    the source; coercion happens when the line is folded into a group.
    """

    billing_document: str = ""
    billing_document_item: str = ""
    sales_document: str = ""
    sales_document_item: str = ""
    condition_type: str | None = None
    condition_amount: object = None
    billing_quantity: object = None
    attributes: Mapping[str, str] = field(default_factory=dict)

    def attribute(self, name: str) -> str:
        return self.attributes.get(name, "")


@dataclass(slots=True, frozen=True)
class TextEntry:
    long_text_id: str
    long_text: str


@dataclass(slots=True, frozen=True)
class TextRecord:
    """Descriptive texts maintained on a sales order item."""

    TEXT_ID_FIELDS: ClassVar[Mapping[str, str]] = {
        "ZXT1": "warehouse_code",
        "ZXT3": "warehouse_location",
        "ZXT4": "contract_id",
        "ZXT5": "service_period",
        "ZXT6": "material_description",
        "ZXT7": "cluster_flag",
        "ZXT8": "item_number",
    }

    warehouse_code: str = ""
    warehouse_location: str = ""
    contract_id: str = ""
    service_period: str = ""
    material_description: str = ""
    cluster_flag: str = ""
    item_number: str = ""

    @classmethod
    def from_entries(cls, entries: Iterable[TextEntry]) -> TextRecord:
        values: dict[str, str] = {}
        for entry in entries:
            field_name = cls.TEXT_ID_FIELDS.get(entry.long_text_id)
            if field_name is None or field_name in values:
                continue
            values[field_name] = (entry.long_text or "").strip()
        return cls(**values)

    def as_dict(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in self.TEXT_ID_FIELDS.values()}

    def is_empty(self) -> bool:
        return not any(self.as_dict().values())


EMPTY_TEXT = TextRecord()


@dataclass(slots=True, frozen=True)
class TextKey:
    sales_order: str
    sales_order_item: str

    @property
    def cache_key(self) -> str:
        return f"{self.sales_order}{KEY_SEPARATOR}{self.sales_order_item}"

    def __str__(self) -> str:
        return self.cache_key


@dataclass(slots=True, frozen=True)
class SkippedItem:
    """Diagnostic for an input record that could not be grouped."""

    index: int
    reason: str


@dataclass(slots=True)
class AggregatedGroup:
    key: str
    key_values: tuple[str, ...]
    mode: str
    attributes: dict[str, str] = field(default_factory=dict)
    conditions: dict[str, Decimal] = field(default_factory=dict)
    net_amount: Decimal = ZERO
    invoice_amount: Decimal = ZERO
    quantity: Decimal = ZERO
    details: list[RawLineItem] = field(default_factory=list)

    @property
    def record_count(self) -> int:
        return len(self.details)

    @property
    def text(self) -> TextRecord:
        return TextRecord(
            **{
                name: self.attributes.get(name, "")
                for name in TextRecord.TEXT_ID_FIELDS.values()
            }
        )

    def condition_breakdown(self, taxonomy: ConditionTaxonomy) -> list[tuple[str, str, Decimal]]:
        """Non-zero condition slots as ``(code, description, amount)`` in taxonomy order."""

        return [
            (code, taxonomy.describe(code), amount)
            for code in taxonomy
            if (amount := self.conditions.get(code, ZERO)) != ZERO
        ]


# ---------------------------------------------------------------------------
# Ledger / tax reconciliation
# ---------------------------------------------------------------------------


class DocumentKey(NamedTuple):
    company_code: str
    accounting_document: str
    fiscal_year: str

    def __str__(self) -> str:
        return KEY_SEPARATOR.join(self)


class DocumentStatus(StrEnum):
    ACTIVE = "Active"
    REVERSED = "Reversed"
    HAS_REVERSAL = "Has Reversal"


@dataclass(slots=True, frozen=True)
class PrimaryLine:
    """One journal-entry line from the ledger feed."""

    company_code: str = ""
    accounting_document: str = ""
    fiscal_year: str = ""
    ledger_line_item: str = ""
    taxable_amount: object = None
    is_reversal: bool = False
    reversal_reference: str = ""
    bp_tax_number: str = ""
    place_of_supply: str = ""
    attributes: Mapping[str, str] = field(default_factory=dict)

    @property
    def document_key(self) -> DocumentKey | None:
        if not (self.company_code and self.accounting_document and self.fiscal_year):
            return None
        return DocumentKey(self.company_code, self.accounting_document, self.fiscal_year)


@dataclass(slots=True, frozen=True)
class SecondaryItem:
    """One tax item from the tax feed."""

    company_code: str
    accounting_document: str
    fiscal_year: str
    tax_item: str = ""
    tax_code: str = ""
    tax_amount: object = None
    tax_base_amount: object = None

    @property
    def document_key(self) -> DocumentKey:
        return DocumentKey(self.company_code, self.accounting_document, self.fiscal_year)


@dataclass(slots=True)
class ReconciledDocument:
    key: DocumentKey
    attributes: dict[str, str] = field(default_factory=dict)
    taxable_amount: Decimal = ZERO
    record_count: int = 0
    tax_codes: list[str] = field(default_factory=list)
    has_secondary_data: bool = False
    tax_calculated: bool = False
    total_tax_amount: Decimal = ZERO
    total_tax_base_amount: Decimal = ZERO
    tax_item_count: int = 0
    grand_total: Decimal = ZERO
    document_status: DocumentStatus = DocumentStatus.ACTIVE
    compliance_issues: list[str] = field(default_factory=list)
    lines: list[PrimaryLine] = field(default_factory=list)

    @property
    def compliance_status(self) -> str:
        return ", ".join(self.compliance_issues) if self.compliance_issues else "Compliant"


__all__ = [
    "EMPTY_TEXT",
    "KEY_SEPARATOR",
    "AggregatedGroup",
    "DocumentKey",
    "DocumentStatus",
    "PrimaryLine",
    "RawLineItem",
    "ReconciledDocument",
    "SecondaryItem",
    "SkippedItem",
    "TextEntry",
    "TextKey",
    "TextRecord",
]
