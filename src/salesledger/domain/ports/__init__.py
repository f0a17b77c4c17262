"""Domain ports (interfaces) implemented by adapters."""

from __future__ import annotations

from .enrichment import TextLookup
from .fetching import FetchedPage, PageFetcher, SecondaryFetcher

__all__ = ["FetchedPage", "PageFetcher", "SecondaryFetcher", "TextLookup"]
