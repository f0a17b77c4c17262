"""Page-by-page loading of a report.

``PaginationCoordinator`` drives fetch -> enrich -> aggregate cycles against a
``PageFetcher``. The raw records of every fetched page are retained, so each
cycle re-runs enrichment and aggregation over the full history and the result
always equals a one-shot aggregation of everything loaded so far.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import FetchPageError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from .ports.fetching import PageFetcher

log = getLogger(__name__)

DEFAULT_PAGE_SIZE = 500


class LoadState(StrEnum):
    IDLE = "idle"
    FETCHING_PAGE = "fetching_page"
    ENRICHING = "enriching"
    AGGREGATING = "aggregating"
    HAS_MORE = "has_more"
    DONE = "done"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class Progress:
    loading: bool
    current_step: int
    total_steps: int
    operation: str

    @property
    def percent(self) -> int:
        if self.total_steps <= 0:
            return 0
        return round(100 * self.current_step / self.total_steps)


@dataclass(slots=True, frozen=True)
class LoadSnapshot[TResult]:
    result: TResult | None
    loaded: int
    total_count: int | None
    has_more: bool
    state: LoadState


type ProgressObserver = Callable[[Progress], None]
type EnrichStep[TItem] = Callable[[Sequence[TItem], asyncio.Event], Awaitable[Sequence[TItem]]]


class PaginationCoordinator[TItem, TResult]:
    def __init__(
        self,
        fetch_page: PageFetcher[TItem],
        aggregate: Callable[[Sequence[TItem]], TResult],
        enrich: EnrichStep[TItem] | None = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        filters: object | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._fetch_page = fetch_page
        self._aggregate = aggregate
        self._enrich = enrich
        self.page_size = page_size
        self.filters = filters

        self._observers: list[ProgressObserver] = []
        self._cancel = asyncio.Event()
        self._items: list[TItem] = []
        self._result: TResult | None = None
        self._loaded = 0
        self._total: int | None = None
        self._has_more = False
        self._state = LoadState.IDLE

    # -- observation -----------------------------------------------------

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def items(self) -> tuple[TItem, ...]:
        return tuple(self._items)

    def subscribe(self, observer: ProgressObserver) -> Callable[[], None]:
        """Register ``observer`` for progress updates; returns an unsubscribe callable."""

        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def snapshot(self) -> LoadSnapshot[TResult]:
        return LoadSnapshot(
            result=self._result,
            loaded=self._loaded,
            total_count=self._total,
            has_more=self._has_more,
            state=self._state,
        )

    # -- loading -----------------------------------------------------------

    def cancel(self) -> None:
        self._cancel.set()

    async def load(self, *, reset: bool = True) -> LoadSnapshot[TResult]:
        self._cancel.clear()
        if reset:
            self._items = []
            self._result = None
            self._loaded = 0
            self._total = None
            self._has_more = False

        total_steps = 3 if self._enrich is not None else 2
        skip = self._loaded

        self._transition(LoadState.FETCHING_PAGE, 1, total_steps, f"Fetching records from {skip}")
        try:
            page = await self._fetch_page(skip=skip, page_size=self.page_size, filters=self.filters)
        except Exception as exc:
            self._transition(LoadState.ERROR, 1, total_steps, "Fetch failed", loading=False)
            log.error(f"Fetching page at skip={skip} (page size {self.page_size}) failed: {exc}")
            raise FetchPageError(
                f"Failed to fetch page: {exc}",
                skip=skip,
                page_size=self.page_size,
                filters=self.filters,
            ) from exc

        records = list(page.records)
        history = [*self._items, *records]
        log.info(
            f"Fetched {len(records)} records at skip={skip} "
            f"(total {page.total_count if page.total_count is not None else 'unknown'})"
        )

        try:
            prepared: Sequence[TItem] = history
            if self._enrich is not None:
                self._transition(LoadState.ENRICHING, 2, total_steps, "Enriching records")
                prepared = await self._enrich(history, self._cancel)
            self._transition(
                LoadState.AGGREGATING, total_steps, total_steps, "Aggregating records"
            )
            result = self._aggregate(prepared)
        except Exception:
            self._transition(LoadState.ERROR, total_steps, total_steps, "Load failed", loading=False)
            raise

        self._items = history
        self._result = result
        self._loaded += len(records)
        self._total = page.total_count
        self._has_more = self._compute_has_more(len(records))

        final_state = LoadState.HAS_MORE if self._has_more else LoadState.DONE
        self._transition(final_state, total_steps, total_steps, "Loaded", loading=False)
        return self.snapshot()

    async def load_more(self) -> LoadSnapshot[TResult]:
        if not self._has_more:
            return self.snapshot()
        return await self.load(reset=False)

    async def load_all(self, *, max_pages: int | None = None) -> LoadSnapshot[TResult]:
        """Reset, then keep loading until the feed is exhausted, cancelled or capped."""

        snapshot = await self.load(reset=True)
        pages = 1
        while snapshot.has_more:
            if self._cancel.is_set():
                log.info(f"Loading cancelled after {pages} pages")
                break
            if max_pages is not None and pages >= max_pages:
                log.info(f"Stopping after {pages} pages (page cap reached)")
                break
            snapshot = await self.load_more()
            pages += 1
        return snapshot

    def _compute_has_more(self, page_length: int) -> bool:
        if page_length == 0:
            if self._total is not None and self._loaded < self._total:
                log.warning(
                    f"Empty page after {self._loaded} records although the feed reports "
                    f"{self._total}; treating the feed as exhausted"
                )
            return False
        if self._total is not None:
            return self._loaded < self._total
        return page_length == self.page_size

    def _transition(
        self,
        state: LoadState,
        step: int,
        total_steps: int,
        operation: str,
        *,
        loading: bool = True,
    ) -> None:
        self._state = state
        progress = Progress(
            loading=loading, current_step=step, total_steps=total_steps, operation=operation
        )
        for observer in list(self._observers):
            try:
                observer(progress)
            except Exception:
                log.warning("Progress observer %r failed", observer, exc_info=True)


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "LoadSnapshot",
    "LoadState",
    "PaginationCoordinator",
    "Progress",
    "ProgressObserver",
]
