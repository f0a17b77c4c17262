"""Report loading defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_int

DEFAULT_PAGE_SIZE = 500
DEFAULT_TEXT_BATCH_SIZE = 5
DEFAULT_TEXT_BATCH_DELAY_MS = 200
SECONDARY_KEYS_PER_REQUEST = 100


@dataclass(frozen=True, slots=True)
class ReportConfig:
    page_size: int = DEFAULT_PAGE_SIZE
    text_batch_size: int = DEFAULT_TEXT_BATCH_SIZE
    text_batch_delay_ms: int = DEFAULT_TEXT_BATCH_DELAY_MS
    secondary_keys_per_request: int = SECONDARY_KEYS_PER_REQUEST

    @property
    def text_batch_delay_seconds(self) -> float:
        return self.text_batch_delay_ms / 1000


def get_report_config() -> ReportConfig:
    return ReportConfig(
        page_size=optional_env_int("SALESLEDGER_PAGE_SIZE", DEFAULT_PAGE_SIZE, minimum=1),
        text_batch_size=optional_env_int(
            "SALESLEDGER_TEXT_BATCH_SIZE", DEFAULT_TEXT_BATCH_SIZE, minimum=1
        ),
        text_batch_delay_ms=optional_env_int(
            "SALESLEDGER_TEXT_BATCH_DELAY_MS", DEFAULT_TEXT_BATCH_DELAY_MS
        ),
    )
