"""カタログ変更をスナップショットとして分析ストアへ送るエミッター。"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

import structlog

from release_radar.core.catalog.models import CatalogGame
from release_radar.core.snapshots.models import SnapshotFactRow, build_fact_rows
from release_radar.shared.exceptions import Result, SinkUnavailableError
from release_radar.shared.logging import get_logger
from release_radar.shared.types import utc_now

BoundLogger = structlog.stdlib.BoundLogger

__all__ = ["SnapshotEmitter", "SnapshotSinkProtocol"]


class SnapshotSinkProtocol(Protocol):
    """スナップショット行を追記できる分析ストア。"""

    def append_snapshot(self, snapshot_utc: datetime, rows: Sequence[SnapshotFactRow]) -> int:
        """行をまとめて追記し、書き込んだ行数を返す。失敗時は SinkUnavailableError。"""


@dataclass(slots=True)
class SnapshotEmitter:
    """ゲーム × タグの行を 1 バッチで追記する。

    書き込みはベストエフォートで、失敗しても例外は送出せず `Result.err` を返す。
    カタログ側の変更は巻き戻さない。
    """

    sink: SnapshotSinkProtocol
    clock: Callable[[], datetime] = utc_now
    logger: BoundLogger = field(
        default_factory=lambda: get_logger(__name__, component="snapshot-emitter")
    )

    def emit(
        self,
        games: Sequence[CatalogGame],
        *,
        snapshot_utc: datetime | None = None,
    ) -> Result[int, SinkUnavailableError]:
        rows = build_fact_rows(games)
        if not rows:
            self.logger.info("snapshot_skipped_empty", games=len(games))
            return Result.ok(0)

        taken_at = snapshot_utc or self.clock()
        try:
            written = self.sink.append_snapshot(taken_at, rows)
        except SinkUnavailableError as exc:
            self.logger.warning(
                "snapshot_emit_failed",
                games=len(games),
                rows=len(rows),
                error=str(exc),
            )
            return Result.err(exc)

        self.logger.info(
            "snapshot_emitted",
            snapshot_utc=taken_at.isoformat(),
            games=len(games),
            rows=written,
        )
        return Result.ok(written)
