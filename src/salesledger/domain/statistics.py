"""Report-level totals over finalized result sets."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .amounts import ZERO, round_money
from .taxonomy import ConditionRole
from .types import DocumentStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from decimal import Decimal

    from .taxonomy import ConditionTaxonomy
    from .types import AggregatedGroup, ReconciledDocument


@dataclass(slots=True, frozen=True)
class RegisterSummary:
    total_groups: int = 0
    total_invoice_amount: Decimal = ZERO
    total_net_amount: Decimal = ZERO
    total_discount: Decimal = ZERO
    total_tax: Decimal = ZERO
    sales_documents: int = 0
    billing_documents: int = 0
    customers: int = 0
    by_billing_document_type: dict[str, int] = field(default_factory=dict)
    by_plant: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class LedgerSummary:
    documents: int = 0
    total_taxable_amount: Decimal = ZERO
    total_tax_amount: Decimal = ZERO
    grand_total: Decimal = ZERO
    reversed_documents: int = 0
    non_compliant_documents: int = 0


def summarize_groups(
    groups: Sequence[AggregatedGroup],
    taxonomy: ConditionTaxonomy,
) -> RegisterSummary:
    discount_codes = taxonomy.codes_for(ConditionRole.DISCOUNT)
    tax_codes = taxonomy.codes_for(ConditionRole.TAX)

    def role_total(codes: Iterable[str]) -> Decimal:
        return sum(
            (group.conditions.get(code, ZERO) for group in groups for code in codes), ZERO
        )

    def distinct(attribute: str) -> int:
        return len({g.attributes[attribute] for g in groups if g.attributes.get(attribute)})

    def counts(attribute: str) -> dict[str, int]:
        counter = Counter(g.attributes[attribute] for g in groups if g.attributes.get(attribute))
        return dict(sorted(counter.items()))

    return RegisterSummary(
        total_groups=len(groups),
        total_invoice_amount=round_money(sum((g.invoice_amount for g in groups), ZERO)),
        total_net_amount=round_money(sum((g.net_amount for g in groups), ZERO)),
        total_discount=round_money(role_total(discount_codes)),
        total_tax=round_money(role_total(tax_codes)),
        sales_documents=distinct("sales_document"),
        billing_documents=distinct("billing_document"),
        customers=distinct("customer_name"),
        by_billing_document_type=counts("billing_document_type"),
        by_plant=counts("plant"),
    )


def summarize_documents(documents: Sequence[ReconciledDocument]) -> LedgerSummary:
    return LedgerSummary(
        documents=len(documents),
        total_taxable_amount=round_money(sum((d.taxable_amount for d in documents), ZERO)),
        total_tax_amount=round_money(sum((d.total_tax_amount for d in documents), ZERO)),
        grand_total=round_money(sum((d.grand_total for d in documents), ZERO)),
        reversed_documents=sum(
            1 for d in documents if d.document_status is DocumentStatus.REVERSED
        ),
        non_compliant_documents=sum(1 for d in documents if d.compliance_issues),
    )


__all__ = ["LedgerSummary", "RegisterSummary", "summarize_documents", "summarize_groups"]
