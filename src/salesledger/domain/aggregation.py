"""Grouping and aggregation of sales register lines.

Source feeds deliver one line per pricing condition, so a single invoice item is
spread across many records. ``aggregate`` folds those records into one
``AggregatedGroup`` per grouping key:

* condition amounts are accumulated per taxonomy code, once per source line;
* descriptive attributes are filled first-non-empty-wins;
* derived totals are computed only after every line of a group has been folded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from .amounts import ZERO, parse_amount, round_money
from .types import KEY_SEPARATOR, AggregatedGroup, SkippedItem

if TYPE_CHECKING:
    from collections.abc import Iterable
    from decimal import Decimal

    from .taxonomy import ConditionTaxonomy
    from .types import RawLineItem

log = getLogger(__name__)

ITEM_SENTINEL = "000010"
QUANTITY_MATERIAL_ATTRIBUTE = "product"


class SummationPolicy(StrEnum):
    """How billing quantities of the lines of one group combine."""

    SUM = "sum"
    FIRST_LINE = "first_line"
    SUM_DISTINCT_MATERIALS = "sum_distinct_materials"


@dataclass(slots=True, frozen=True)
class GroupingMode:
    name: str
    key_fields: tuple[str, ...]
    item_sentinel: str = ITEM_SENTINEL
    clamp_non_negative: bool = False
    quantity_policy: SummationPolicy = SummationPolicy.FIRST_LINE
    policy_confirmed: bool = True

    def __post_init__(self) -> None:
        if not 1 <= len(self.key_fields) <= 2:
            raise ValueError(f"Grouping mode {self.name!r} needs one or two key fields")

    def key_values(self, item: RawLineItem) -> tuple[str, ...] | None:
        """Return the key tuple, or ``None`` when the primary key field is missing."""

        primary = (getattr(item, self.key_fields[0], "") or "").strip()
        if not primary:
            return None
        if len(self.key_fields) == 1:
            return (primary,)
        secondary = (getattr(item, self.key_fields[1], "") or "").strip()
        return (primary, secondary or self.item_sentinel)


SALES_DOCUMENT_ITEM = GroupingMode(
    name="sales_document_item",
    key_fields=("sales_document", "sales_document_item"),
    clamp_non_negative=True,
    quantity_policy=SummationPolicy.FIRST_LINE,
    policy_confirmed=False,
)
BILLING_DOCUMENT_ITEM = GroupingMode(
    name="billing_document_item",
    key_fields=("billing_document", "billing_document_item"),
    quantity_policy=SummationPolicy.FIRST_LINE,
)
BILLING_DOCUMENT = GroupingMode(
    name="billing_document",
    key_fields=("billing_document",),
    quantity_policy=SummationPolicy.SUM_DISTINCT_MATERIALS,
)

GROUPING_MODES: dict[str, GroupingMode] = {
    mode.name: mode for mode in (SALES_DOCUMENT_ITEM, BILLING_DOCUMENT_ITEM, BILLING_DOCUMENT)
}


@dataclass(slots=True)
class AggregationResult:
    groups: list[AggregatedGroup] = field(default_factory=list)
    skipped: list[SkippedItem] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.groups)


@dataclass(slots=True)
class _QuantityAccumulator:
    policy: SummationPolicy
    total: Decimal = ZERO
    seen_lines: int = 0
    seen_materials: set[str] = field(default_factory=set)

    def add(self, item: RawLineItem) -> None:
        quantity = parse_amount(item.billing_quantity)
        if self.policy is SummationPolicy.SUM:
            self.total += quantity
        elif self.policy is SummationPolicy.FIRST_LINE:
            if self.seen_lines == 0:
                self.total = quantity
        else:
            material = item.attribute(QUANTITY_MATERIAL_ATTRIBUTE)
            if material not in self.seen_materials:
                self.seen_materials.add(material)
                self.total += quantity
        self.seen_lines += 1


def aggregate(
    items: Iterable[RawLineItem],
    taxonomy: ConditionTaxonomy,
    mode: GroupingMode = SALES_DOCUMENT_ITEM,
) -> AggregationResult:
    """Fold ``items`` into finalized groups ordered lexically by key."""

    if not mode.policy_confirmed:
        log.debug(
            "Grouping mode %s uses unconfirmed quantity policy %s",
            mode.name,
            mode.quantity_policy,
        )

    groups: dict[str, AggregatedGroup] = {}
    quantities: dict[str, _QuantityAccumulator] = {}
    skipped: list[SkippedItem] = []

    for index, item in enumerate(items):
        key_values = mode.key_values(item)
        if key_values is None:
            reason = f"missing {mode.key_fields[0]}"
            skipped.append(SkippedItem(index=index, reason=reason))
            log.debug(f"Skipping line {index}: {reason}")
            continue

        key = KEY_SEPARATOR.join(key_values)
        group = groups.get(key)
        if group is None:
            group = AggregatedGroup(
                key=key,
                key_values=key_values,
                mode=mode.name,
                conditions=dict.fromkeys(taxonomy, ZERO),
            )
            groups[key] = group
            quantities[key] = _QuantityAccumulator(mode.quantity_policy)

        code = item.condition_type
        if code is not None and code in taxonomy:
            group.conditions[code] += parse_amount(item.condition_amount)

        _fill_attributes(group.attributes, item)
        quantities[key].add(item)
        group.details.append(item)

    for key, group in groups.items():
        _finalize(group, taxonomy, mode)
        group.quantity = quantities[key].total

    ordered = sorted(groups.values(), key=lambda group: group.key_values)
    if skipped:
        log.info(f"Aggregated {len(ordered)} groups; skipped {len(skipped)} malformed lines")
    return AggregationResult(groups=ordered, skipped=skipped)


def _fill_attributes(target: dict[str, str], item: RawLineItem) -> None:
    key_fields = {
        "billing_document": item.billing_document,
        "billing_document_item": item.billing_document_item,
        "sales_document": item.sales_document,
        "sales_document_item": item.sales_document_item,
    }
    for name, value in (*key_fields.items(), *item.attributes.items()):
        if not value or target.get(name):
            continue
        target[name] = value


def _finalize(group: AggregatedGroup, taxonomy: ConditionTaxonomy, mode: GroupingMode) -> None:
    conditions = group.conditions
    net = abs(conditions[taxonomy.base_code])
    additions = sum((conditions[code] for code in taxonomy.additive_codes), ZERO)
    deductions = sum((conditions[code] for code in taxonomy.subtractive_codes), ZERO)
    invoice = net + additions - deductions

    if mode.clamp_non_negative:
        net = max(net, ZERO)
        invoice = max(invoice, ZERO)

    group.net_amount = round_money(net)
    group.invoice_amount = round_money(invoice)
    group.conditions = {code: round_money(amount) for code, amount in conditions.items()}


__all__ = [
    "BILLING_DOCUMENT",
    "BILLING_DOCUMENT_ITEM",
    "GROUPING_MODES",
    "ITEM_SENTINEL",
    "SALES_DOCUMENT_ITEM",
    "AggregationResult",
    "GroupingMode",
    "SummationPolicy",
    "aggregate",
]
