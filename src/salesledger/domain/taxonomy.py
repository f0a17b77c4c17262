"""Pricing condition taxonomy.

A taxonomy maps each condition-type code that can appear on a source line to the
role it plays in the invoice arithmetic. The aggregation engine keeps one
accumulator per code and derives totals from the roles.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ConditionRole(StrEnum):
    BASE_PRICE = "base"
    DISCOUNT = "discount"
    SURCHARGE = "surcharge"
    TAX = "tax"
    COMMISSION = "commission"

    @property
    def sign(self) -> int:
        """``0`` for the base price, ``-1`` for deductions, ``+1`` otherwise."""

        if self is ConditionRole.BASE_PRICE:
            return 0
        if self is ConditionRole.DISCOUNT:
            return -1
        return 1


@dataclass(slots=True, frozen=True)
class ConditionRule:
    code: str
    role: ConditionRole
    description: str


class ConditionTaxonomy(Mapping[str, ConditionRule]):
    """Immutable code -> rule mapping with exactly one base-price code."""

    __slots__ = ("_base_code", "_name", "_rules")

    def __init__(self, name: str, rules: Iterable[ConditionRule]) -> None:
        ordered: dict[str, ConditionRule] = {}
        for rule in rules:
            if rule.code in ordered:
                raise ValueError(f"Duplicate condition code {rule.code!r} in taxonomy {name!r}")
            ordered[rule.code] = rule

        base_codes = [r.code for r in ordered.values() if r.role is ConditionRole.BASE_PRICE]
        if len(base_codes) != 1:
            raise ValueError(
                f"Taxonomy {name!r} needs exactly one base price code, got {base_codes!r}"
            )

        self._name = name
        self._rules: Mapping[str, ConditionRule] = MappingProxyType(ordered)
        self._base_code = base_codes[0]

    def __getitem__(self, code: str) -> ConditionRule:
        return self._rules[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"ConditionTaxonomy({self._name!r}, codes={list(self._rules)!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def base_code(self) -> str:
        return self._base_code

    def describe(self, code: str) -> str:
        rule = self._rules.get(code)
        return rule.description if rule is not None else code

    def codes_for(self, role: ConditionRole) -> tuple[str, ...]:
        return tuple(code for code, rule in self._rules.items() if rule.role is role)

    @property
    def additive_codes(self) -> tuple[str, ...]:
        return tuple(code for code, rule in self._rules.items() if rule.role.sign > 0)

    @property
    def subtractive_codes(self) -> tuple[str, ...]:
        return tuple(code for code, rule in self._rules.items() if rule.role.sign < 0)


_SALES_REGISTER_RULES: tuple[ConditionRule, ...] = (
    ConditionRule("PPR0", ConditionRole.BASE_PRICE, "Rate/MT"),
    ConditionRule("DRV1", ConditionRole.DISCOUNT, "Discount"),
    ConditionRule("ZDV2", ConditionRole.SURCHARGE, "Additional Charges"),
    ConditionRule("JOIG", ConditionRole.TAX, "IGST"),
    ConditionRule("JOCG", ConditionRole.TAX, "CGST"),
    ConditionRule("JOSG", ConditionRole.TAX, "SGST"),
    ConditionRule("ZTCS", ConditionRole.TAX, "TCS"),
    ConditionRule("ZDV4", ConditionRole.SURCHARGE, "Delay Charges"),
    ConditionRule("JTC1", ConditionRole.TAX, "Tax Condition 1"),
    ConditionRule("JTC2", ConditionRole.TAX, "Tax Condition 2"),
    ConditionRule("JTC3", ConditionRole.TAX, "Tax Condition 3"),
    ConditionRule("DRD1", ConditionRole.DISCOUNT, "Additional Discount"),
    ConditionRule("DCD1", ConditionRole.DISCOUNT, "Cash Discount"),
    ConditionRule("PCIP", ConditionRole.COMMISSION, "Commission"),
)

_BILLING_CODES = frozenset({"PPR0", "DRV1", "ZDV2", "JOIG", "JOCG", "JOSG", "ZTCS", "ZDV4"})

SALES_REGISTER_TAXONOMY = ConditionTaxonomy("sales-register", _SALES_REGISTER_RULES)
BILLING_TAXONOMY = ConditionTaxonomy(
    "billing", (rule for rule in _SALES_REGISTER_RULES if rule.code in _BILLING_CODES)
)


__all__ = [
    "BILLING_TAXONOMY",
    "SALES_REGISTER_TAXONOMY",
    "ConditionRole",
    "ConditionRule",
    "ConditionTaxonomy",
]
