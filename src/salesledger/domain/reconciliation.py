"""Reconcile ledger lines with tax items per accounting document.

The ledger feed repeats a document once per GL line while the tax feed is keyed
per document. Tax totals are therefore taken from the tax index once per
document, on its first ledger line, and never re-summed for later lines.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .amounts import ZERO, parse_amount, round_money
from .types import DocumentStatus, ReconciledDocument, SkippedItem

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .ports.fetching import SecondaryFetcher
    from .types import DocumentKey, PrimaryLine, SecondaryItem

log = getLogger(__name__)

SECONDARY_CHUNK_SIZE = 100

MISSING_GST_NUMBER = "Missing GST Number"
MISSING_PLACE_OF_SUPPLY = "Missing Place of Supply"
NO_GST_DATA = "No GST Data"


@dataclass(slots=True)
class ReconciliationResult:
    documents: list[ReconciledDocument] = field(default_factory=list)
    skipped: list[SkippedItem] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.documents)


def build_secondary_index(
    secondary: Iterable[SecondaryItem],
) -> dict[DocumentKey, list[SecondaryItem]]:
    index: dict[DocumentKey, list[SecondaryItem]] = defaultdict(list)
    for item in secondary:
        index[item.document_key].append(item)
    return dict(index)


def reconcile(
    primary: Iterable[PrimaryLine],
    secondary: Iterable[SecondaryItem],
) -> ReconciliationResult:
    index = build_secondary_index(secondary)
    documents: dict[DocumentKey, ReconciledDocument] = {}
    skipped: list[SkippedItem] = []

    for position, line in enumerate(primary):
        key = line.document_key
        if key is None:
            missing = [
                name
                for name in ("company_code", "accounting_document", "fiscal_year")
                if not getattr(line, name)
            ]
            reason = f"missing {', '.join(missing)}"
            skipped.append(SkippedItem(index=position, reason=reason))
            log.debug(f"Skipping ledger line {position}: {reason}")
            continue

        taxable = abs(parse_amount(line.taxable_amount))
        document = documents.get(key)
        if document is None:
            document = _open_document(key, line, index.get(key, []))
            documents[key] = document

        document.taxable_amount += taxable
        document.record_count += 1
        document.lines.append(line)
        for name, value in line.attributes.items():
            if value and not document.attributes.get(name):
                document.attributes[name] = value

        tax_items = index.get(key)
        if tax_items and not document.tax_calculated:
            document.total_tax_amount = sum(
                (abs(parse_amount(item.tax_amount)) for item in tax_items), ZERO
            )
            document.total_tax_base_amount = sum(
                (abs(parse_amount(item.tax_base_amount)) for item in tax_items), ZERO
            )
            document.tax_item_count = len(tax_items)
            document.tax_codes = list(dict.fromkeys(i.tax_code for i in tax_items if i.tax_code))
            document.tax_calculated = True

    for document in documents.values():
        grand_total = document.taxable_amount + document.total_tax_amount
        document.taxable_amount = round_money(document.taxable_amount)
        document.total_tax_amount = round_money(document.total_tax_amount)
        document.total_tax_base_amount = round_money(document.total_tax_base_amount)
        document.grand_total = round_money(grand_total)

    ordered = sorted(documents.values(), key=_sort_key)
    if skipped:
        log.info(f"Reconciled {len(ordered)} documents; skipped {len(skipped)} ledger lines")
    return ReconciliationResult(documents=ordered, skipped=skipped)


def _open_document(
    key: DocumentKey,
    first: PrimaryLine,
    tax_items: Sequence[SecondaryItem],
) -> ReconciledDocument:
    if first.is_reversal:
        status = DocumentStatus.REVERSED
    elif first.reversal_reference.strip():
        status = DocumentStatus.HAS_REVERSAL
    else:
        status = DocumentStatus.ACTIVE

    issues: list[str] = []
    if not first.bp_tax_number.strip():
        issues.append(MISSING_GST_NUMBER)
    if not first.place_of_supply.strip():
        issues.append(MISSING_PLACE_OF_SUPPLY)
    if not tax_items and parse_amount(first.taxable_amount) > ZERO:
        issues.append(NO_GST_DATA)

    attributes = {
        "ledger_line_item": first.ledger_line_item,
        "bp_tax_number": first.bp_tax_number,
        "place_of_supply": first.place_of_supply,
        "reversal_reference": first.reversal_reference,
    }
    return ReconciledDocument(
        key=key,
        attributes={name: value for name, value in attributes.items() if value},
        has_secondary_data=bool(tax_items),
        document_status=status,
        compliance_issues=issues,
    )


def _sort_key(document: ReconciledDocument) -> tuple[str, _Descending, str]:
    key = document.key
    return (key.company_code, _Descending(key.fiscal_year), key.accounting_document)


class _Descending:
    """Invert the ordering of a string inside a sort key."""

    __slots__ = ("value",)

    def __init__(self, value: str) -> None:
        self.value = value

    def __lt__(self, other: _Descending) -> bool:
        return self.value > other.value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _Descending) and self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)


class SecondaryFeedCollector:
    """Accumulate tax items for the documents seen in the ledger feed.

    Each document key is requested at most once per collector. A failed request
    leaves its keys unfetched so the next page retries them.
    """

    def __init__(
        self,
        fetcher: SecondaryFetcher,
        *,
        chunk_size: int = SECONDARY_CHUNK_SIZE,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self._fetcher = fetcher
        self._chunk_size = chunk_size
        self._fetched: set[DocumentKey] = set()
        self._items: list[SecondaryItem] = []

    @property
    def items(self) -> tuple[SecondaryItem, ...]:
        return tuple(self._items)

    def reset(self) -> None:
        self._fetched.clear()
        self._items.clear()

    async def collect(self, lines: Iterable[PrimaryLine]) -> tuple[SecondaryItem, ...]:
        pending = [
            key
            for key in dict.fromkeys(line.document_key for line in lines)
            if key is not None and key not in self._fetched
        ]
        for start in range(0, len(pending), self._chunk_size):
            chunk = pending[start : start + self._chunk_size]
            try:
                fetched = await self._fetcher(chunk)
            except Exception as exc:
                log.warning(
                    f"Tax item fetch failed for {len(chunk)} documents; "
                    f"treating them as without tax data: {exc!r}"
                )
                continue
            self._items.extend(fetched)
            self._fetched.update(chunk)
            log.debug("Fetched %d tax items for %d documents", len(fetched), len(chunk))
        return self.items


__all__ = [
    "MISSING_GST_NUMBER",
    "MISSING_PLACE_OF_SUPPLY",
    "NO_GST_DATA",
    "ReconciliationResult",
    "SecondaryFeedCollector",
    "build_secondary_index",
    "reconcile",
]
