"""Ports for fetching paginated source records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Sequence

    from salesledger.domain.types import DocumentKey, SecondaryItem


@dataclass(slots=True, frozen=True)
class FetchedPage[T]:
    """One page of records plus the server-side total when the feed reports it."""

    records: Sequence[T] = field(default_factory=tuple)
    total_count: int | None = None


@runtime_checkable
class PageFetcher[T](Protocol):
    """Callable port returning one page of records starting at ``skip``."""

    def __call__(
        self,
        *,
        skip: int,
        page_size: int,
        filters: object | None = None,
    ) -> Awaitable[FetchedPage[T]]:
        ...


@runtime_checkable
class SecondaryFetcher(Protocol):
    """Callable port returning the tax items of the given documents."""

    def __call__(self, keys: Sequence[DocumentKey]) -> Awaitable[Sequence[SecondaryItem]]:
        ...


__all__ = ["FetchedPage", "PageFetcher", "SecondaryFetcher"]
