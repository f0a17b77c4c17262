"""Errors surfaced by the report pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class SalesLedgerError(RuntimeError):
    """Base class for pipeline errors surfaced to callers."""


class FetchPageError(SalesLedgerError):
    """Raised when a page of the source feed could not be fetched.

    The load cycle is aborted; ``skip``, ``page_size`` and ``filters`` identify the
    request that failed so a caller can report or retry it.
    """

    def __init__(
        self,
        message: str,
        *,
        skip: int,
        page_size: int,
        filters: object | None = None,
    ) -> None:
        super().__init__(message)
        self.skip = skip
        self.page_size = page_size
        self.filters = filters

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (skip={self.skip}, page_size={self.page_size}, filters={self.filters!r})"


class FilterValidationError(SalesLedgerError):
    """Raised before loading when filter values are inconsistent."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = tuple(errors)
        super().__init__("Filter validation failed: " + "; ".join(self.errors))
