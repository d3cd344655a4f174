"""同期結果の DTO。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum

from release_radar.core.catalog.models import CatalogGame
from release_radar.shared.periods import format_month
from release_radar.shared.types import DTO

__all__ = [
    "ReconcileOutcome",
    "SkipReason",
    "SkippedItem",
    "SyncReport",
]


class SkipReason(StrEnum):
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    FETCH_FAILED = "fetch_failed"


@dataclass(slots=True)
class SkippedItem(DTO):
    """詳細取得に失敗して今回の同期から外れた候補。"""

    external_id: int
    reason: SkipReason
    message: str | None = None


@dataclass(slots=True)
class ReconcileOutcome(DTO):
    """カタログ反映までの結果。スナップショット送出前の中間値。"""

    month: date
    discovered: int
    games: tuple[CatalogGame, ...] = field(default_factory=tuple)
    pruned: int = 0
    skipped: tuple[SkippedItem, ...] = field(default_factory=tuple)

    @property
    def upserted(self) -> int:
        return len(self.games)


@dataclass(slots=True)
class SyncReport(DTO):
    """1 か月分の同期結果。

    `snapshot_error` が入っている場合、カタログはコミット済みだが
    分析ストアへの追記は失敗している (部分的成功)。
    """

    month: date
    discovered: int
    upserted: int
    pruned: int
    skipped: tuple[SkippedItem, ...] = field(default_factory=tuple)
    snapshot_rows: int = 0
    snapshot_error: str | None = None

    @property
    def added_count(self) -> int:
        return self.upserted + self.pruned

    @property
    def is_degraded(self) -> bool:
        return self.snapshot_error is not None

    @property
    def label(self) -> str:
        return format_month(self.month)
