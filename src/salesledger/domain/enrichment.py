"""Batched, cached text enrichment for sales order items."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING

from .aggregation import ITEM_SENTINEL
from .types import EMPTY_TEXT, TextKey, TextRecord

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence

    from .ports.enrichment import TextLookup
    from .types import RawLineItem, TextEntry

log = getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY_SECONDS = 0.2


@dataclass(slots=True, frozen=True)
class CacheStats:
    size: int
    keys: tuple[str, ...]


class TextCache:
    """Process-lifetime cache of looked-up text records."""

    def __init__(self) -> None:
        self._entries: dict[str, TextRecord] = {}

    def get(self, key: TextKey) -> TextRecord | None:
        return self._entries.get(key.cache_key)

    def put(self, key: TextKey, record: TextRecord) -> None:
        self._entries[key.cache_key] = record

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, TextKey) and key.cache_key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> CacheStats:
        return CacheStats(size=len(self._entries), keys=tuple(self._entries))


@dataclass(slots=True, frozen=True)
class EnrichmentReport:
    requested: int = 0
    cache_hits: int = 0
    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0


class TextEnrichmentService:
    """Resolve text records for sales order items.

    Lookups are issued in sequential batches; every lookup of a batch is settled
    before the next batch starts. Per-key failures degrade to an empty record, so
    ``enrich`` always returns an entry for every requested key.
    """

    def __init__(
        self,
        lookup: TextLookup | None = None,
        *,
        cache: TextCache | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._lookup = lookup
        self._cache = cache if cache is not None else TextCache()
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._sleep = sleep
        self.last_report = EnrichmentReport()

    @property
    def cache(self) -> TextCache:
        return self._cache

    def clear_cache(self) -> None:
        self._cache.clear()

    async def enrich(
        self,
        keys: Iterable[TextKey],
        lookup: TextLookup | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> dict[TextKey, TextRecord]:
        active = lookup or self._lookup
        if active is None:
            raise ValueError("No text lookup configured")

        unique = list(dict.fromkeys(keys))
        results: dict[TextKey, TextRecord] = {}
        misses: list[TextKey] = []
        for key in unique:
            cached = self._cache.get(key)
            if cached is not None:
                results[key] = cached
            else:
                misses.append(key)

        cache_hits = len(unique) - len(misses)
        succeeded = failed = cancelled = 0
        batches = [
            misses[start : start + self._batch_size]
            for start in range(0, len(misses), self._batch_size)
        ]
        if batches:
            log.info(
                f"Enriching {len(misses)} items in {len(batches)} batches "
                f"({cache_hits} served from cache)"
            )

        for number, batch in enumerate(batches, start=1):
            if cancel is not None and cancel.is_set():
                remaining = [key for pending in batches[number - 1 :] for key in pending]
                for key in remaining:
                    results[key] = EMPTY_TEXT
                cancelled = len(remaining)
                log.info(f"Text enrichment cancelled; {cancelled} items left without text")
                break

            log.debug("Text batch %d/%d (%d keys)", number, len(batches), len(batch))
            ok, bad = await self._run_batch(active, batch, results)
            succeeded += ok
            failed += bad

            if number < len(batches):
                await self._sleep(self._batch_delay)

        self.last_report = EnrichmentReport(
            requested=len(unique),
            cache_hits=cache_hits,
            succeeded=succeeded,
            failed=failed,
            cancelled=cancelled,
        )
        return {key: results[key] for key in unique}

    async def _run_batch(
        self,
        lookup: TextLookup,
        batch: Sequence[TextKey],
        results: dict[TextKey, TextRecord],
    ) -> tuple[int, int]:
        pending: list[Awaitable[Sequence[TextEntry]]] = []
        try:
            for key in batch:
                pending.append(lookup(key))
        except Exception:
            log.warning(
                "Text lookup dispatch failed for batch %s",
                ", ".join(str(key) for key in batch),
                exc_info=True,
            )
            for awaitable in pending:
                if inspect.iscoroutine(awaitable):
                    awaitable.close()
            for key in batch:
                results[key] = EMPTY_TEXT
            return 0, len(batch)

        settled = await asyncio.gather(
            *(_settle(awaitable) for awaitable in pending), return_exceptions=True
        )

        ok = bad = 0
        for key, outcome in zip(batch, settled, strict=True):
            if isinstance(outcome, BaseException):
                log.warning(f"Text lookup failed for {key}: {outcome!r}")
                results[key] = EMPTY_TEXT
                bad += 1
                continue
            record = TextRecord.from_entries(outcome)
            self._cache.put(key, record)
            results[key] = record
            ok += 1
        return ok, bad


async def _settle(awaitable: Awaitable[Sequence[TextEntry]]) -> Sequence[TextEntry]:
    return await awaitable


def text_key_for(item: RawLineItem) -> TextKey | None:
    if not item.sales_document:
        return None
    return TextKey(item.sales_document, item.sales_document_item or ITEM_SENTINEL)


def text_keys_for(items: Iterable[RawLineItem]) -> list[TextKey]:
    """Distinct text keys of ``items`` in first-seen order."""

    keys = (text_key_for(item) for item in items)
    return list(dict.fromkeys(key for key in keys if key is not None))


def attach_text(
    items: Iterable[RawLineItem],
    records: Mapping[TextKey, TextRecord],
) -> list[RawLineItem]:
    """Return ``items`` with their text fields merged into the attributes.

    Attributes already present on a line are kept.
    """

    attached: list[RawLineItem] = []
    for item in items:
        key = text_key_for(item)
        record = records.get(key) if key is not None else None
        if record is None or record.is_empty():
            attached.append(item)
            continue
        merged = {name: value for name, value in record.as_dict().items() if value}
        merged.update({name: value for name, value in item.attributes.items() if value})
        attached.append(replace(item, attributes=merged))
    return attached


__all__ = [
    "CacheStats",
    "EnrichmentReport",
    "TextCache",
    "TextEnrichmentService",
    "attach_text",
    "text_key_for",
    "text_keys_for",
]
