"""Per-source settings for the scrapers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class SourceConfig:
    """Connection and fingerprint settings for one upstream site."""

    base_url: str
    timeout: float = 15.0
    retries: int = 3
    backoff_factor: float = 0.5
    max_workers: int = 8
    min_browser_version: int = 110
    max_browser_version: int = 124
    devices: Tuple[str, ...] = ("mobile", "desktop")
    locales: Tuple[str, ...] = ("en-US", "id-ID")

    @property
    def origin(self) -> str:
        return self.base_url.rstrip("/")


OTAKUDESU = SourceConfig(base_url="https://otakudesu.best")
SAMEHADAKU = SourceConfig(base_url="https://v1.samehadaku.how")
