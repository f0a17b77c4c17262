from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from salesledger.domain.aggregation import AggregationResult, aggregate
from salesledger.domain.errors import FetchPageError
from salesledger.domain.pagination import LoadState, PaginationCoordinator, Progress
from salesledger.domain.ports.fetching import FetchedPage
from salesledger.domain.taxonomy import SALES_REGISTER_TAXONOMY
from salesledger.domain.types import RawLineItem

if TYPE_CHECKING:
    from collections.abc import Sequence


def _records(count: int) -> list[RawLineItem]:
    # Two condition lines per sales document item so groups span page boundaries.
    return [
        RawLineItem(
            billing_document=f"009{index // 2:07d}",
            billing_document_item="000010",
            sales_document=f"{index // 2:010d}",
            sales_document_item="000010",
            condition_type="PPR0" if index % 2 == 0 else "JOIG",
            condition_amount=Decimal(100 + index),
            billing_quantity="1",
        )
        for index in range(count)
    ]


class FakePageSource:
    def __init__(
        self,
        records: Sequence[RawLineItem],
        *,
        report_total: bool = True,
        fail_at: int | None = None,
    ) -> None:
        self.records = list(records)
        self.report_total = report_total
        self.fail_at = fail_at
        self.calls: list[tuple[int, int, object | None]] = []

    async def __call__(
        self, *, skip: int, page_size: int, filters: object | None = None
    ) -> FetchedPage[RawLineItem]:
        self.calls.append((skip, page_size, filters))
        await asyncio.sleep(0)
        if self.fail_at is not None and skip >= self.fail_at:
            raise ConnectionError("feed unavailable")
        return FetchedPage(
            records=self.records[skip : skip + page_size],
            total_count=len(self.records) if self.report_total else None,
        )


def _aggregate(items: Sequence[RawLineItem]) -> AggregationResult:
    return aggregate(items, SALES_REGISTER_TAXONOMY)


def _summary(result: AggregationResult | None) -> list[tuple[str, Decimal, int]]:
    assert result is not None
    return [(g.key, g.invoice_amount, g.record_count) for g in result.groups]


def test_appended_pages_equal_one_shot_aggregation() -> None:
    records = _records(20)
    coordinator = PaginationCoordinator(FakePageSource(records), _aggregate, page_size=9)

    async def run() -> None:
        await coordinator.load()
        snapshot = await coordinator.load_more()
        snapshot = await coordinator.load_more()
        assert snapshot.loaded == 20
        assert _summary(snapshot.result) == _summary(_aggregate(records))

    asyncio.run(run())


def test_has_more_tracks_reported_total() -> None:
    source = FakePageSource(_records(25))
    coordinator = PaginationCoordinator(source, _aggregate, page_size=10)

    async def run() -> list[bool]:
        flags = [(await coordinator.load()).has_more]
        flags.append((await coordinator.load_more()).has_more)
        flags.append((await coordinator.load_more()).has_more)
        return flags

    assert asyncio.run(run()) == [True, True, False]
    assert [call[0] for call in source.calls] == [0, 10, 20]
    assert coordinator.state is LoadState.DONE


def test_has_more_without_total_uses_page_length() -> None:
    source = FakePageSource(_records(20), report_total=False)
    coordinator = PaginationCoordinator(source, _aggregate, page_size=10)

    snapshot = asyncio.run(coordinator.load_all())

    # The second page is full, so a third (empty) page is requested.
    assert [call[0] for call in source.calls] == [0, 10, 20]
    assert snapshot.loaded == 20
    assert snapshot.total_count is None
    assert not snapshot.has_more


def test_empty_first_page_reports_done() -> None:
    coordinator = PaginationCoordinator(FakePageSource([]), _aggregate, page_size=10)

    snapshot = asyncio.run(coordinator.load())

    assert snapshot.loaded == 0
    assert not snapshot.has_more
    assert snapshot.state is LoadState.DONE


class OverstatedTotalSource(FakePageSource):
    async def __call__(
        self, *, skip: int, page_size: int, filters: object | None = None
    ) -> FetchedPage[RawLineItem]:
        page = await super().__call__(skip=skip, page_size=page_size, filters=filters)
        return FetchedPage(records=page.records, total_count=len(self.records) + 5)


def test_empty_page_ends_loading_despite_larger_total(
    caplog: pytest.LogCaptureFixture,
) -> None:
    source = OverstatedTotalSource(_records(4))
    coordinator = PaginationCoordinator(source, _aggregate, page_size=4)

    with caplog.at_level(logging.WARNING, logger="salesledger.domain.pagination"):
        snapshot = asyncio.run(coordinator.load_all())

    assert snapshot.loaded == 4
    assert snapshot.total_count == 9
    assert not snapshot.has_more
    assert snapshot.state is LoadState.DONE
    assert [call[0] for call in source.calls] == [0, 4]
    assert "reports 9" in caplog.text


def test_fetch_failure_carries_context_and_keeps_state() -> None:
    filters = {"region": "MH"}
    source = FakePageSource(_records(25), fail_at=10)
    coordinator = PaginationCoordinator(source, _aggregate, page_size=10, filters=filters)

    first = asyncio.run(coordinator.load())
    with pytest.raises(FetchPageError) as excinfo:
        asyncio.run(coordinator.load_more())

    error = excinfo.value
    assert error.skip == 10
    assert error.page_size == 10
    assert error.filters == filters
    assert isinstance(error.__cause__, ConnectionError)
    assert coordinator.state is LoadState.ERROR
    after = coordinator.snapshot()
    assert after.loaded == first.loaded == 10
    assert _summary(after.result) == _summary(first.result)
    assert len(coordinator.items) == 10


def test_load_more_without_more_is_noop() -> None:
    source = FakePageSource(_records(4))
    coordinator = PaginationCoordinator(source, _aggregate, page_size=10)

    async def run() -> None:
        await coordinator.load()
        await coordinator.load_more()

    asyncio.run(run())

    assert len(source.calls) == 1


def test_reset_load_discards_history() -> None:
    source = FakePageSource(_records(25))
    coordinator = PaginationCoordinator(source, _aggregate, page_size=10)

    async def run() -> int:
        await coordinator.load()
        await coordinator.load_more()
        return (await coordinator.load(reset=True)).loaded

    assert asyncio.run(run()) == 10
    assert source.calls[-1][0] == 0


def test_load_all_respects_page_cap() -> None:
    source = FakePageSource(_records(50))
    coordinator = PaginationCoordinator(source, _aggregate, page_size=10)

    snapshot = asyncio.run(coordinator.load_all(max_pages=3))

    assert len(source.calls) == 3
    assert snapshot.loaded == 30
    assert snapshot.has_more


def test_cancel_stops_load_all() -> None:
    source = FakePageSource(_records(50))
    coordinator = PaginationCoordinator(source, _aggregate, page_size=10)

    def cancel_after_first_page(progress: Progress) -> None:
        if not progress.loading:
            coordinator.cancel()

    coordinator.subscribe(cancel_after_first_page)

    snapshot = asyncio.run(coordinator.load_all())

    assert len(source.calls) == 1
    assert snapshot.has_more


def test_enrich_step_sees_full_history_and_cancel_event() -> None:
    seen: list[int] = []

    async def enrich(
        items: Sequence[RawLineItem], cancel: asyncio.Event
    ) -> Sequence[RawLineItem]:
        assert not cancel.is_set()
        seen.append(len(items))
        return items

    coordinator = PaginationCoordinator(
        FakePageSource(_records(15)), _aggregate, enrich, page_size=10
    )

    async def run() -> None:
        await coordinator.load()
        await coordinator.load_more()

    asyncio.run(run())

    assert seen == [10, 15]


def test_aggregation_failure_sets_error_state() -> None:
    def broken(_items: Sequence[RawLineItem]) -> AggregationResult:
        raise ArithmeticError("boom")

    coordinator = PaginationCoordinator(FakePageSource(_records(5)), broken, page_size=10)

    with pytest.raises(ArithmeticError):
        asyncio.run(coordinator.load())

    assert coordinator.state is LoadState.ERROR
    assert coordinator.snapshot().loaded == 0


def test_progress_steps_and_failing_observer() -> None:
    updates: list[Progress] = []

    async def enrich(
        items: Sequence[RawLineItem], _cancel: asyncio.Event
    ) -> Sequence[RawLineItem]:
        return items

    def failing_observer(_progress: Progress) -> None:
        raise RuntimeError("observer broke")

    coordinator = PaginationCoordinator(
        FakePageSource(_records(5)), _aggregate, enrich, page_size=10
    )
    coordinator.subscribe(failing_observer)
    unsubscribe = coordinator.subscribe(updates.append)

    asyncio.run(coordinator.load())
    unsubscribe()
    asyncio.run(coordinator.load())

    assert [(p.current_step, p.total_steps, p.loading) for p in updates] == [
        (1, 3, True),
        (2, 3, True),
        (3, 3, True),
        (3, 3, False),
    ]
    assert updates[-1].percent == 100


def test_page_size_must_be_positive() -> None:
    with pytest.raises(ValueError, match="page_size"):
        PaginationCoordinator(FakePageSource([]), _aggregate, page_size=0)
