"""Ports for descriptive text lookups."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Sequence

    from salesledger.domain.types import TextEntry, TextKey


@runtime_checkable
class TextLookup(Protocol):
    """Fetch the long texts of one sales order item.

    Failures surface as exceptions raised from the awaitable.
    """

    def __call__(self, key: TextKey) -> Awaitable[Sequence[TextEntry]]:
        ...


__all__ = ["TextLookup"]
