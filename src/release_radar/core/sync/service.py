"""月単位の同期ユースケース。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

import structlog

from release_radar.core.snapshots.emitter import SnapshotEmitter
from release_radar.core.sync.lease import MonthLeaseRegistry, default_lease_registry
from release_radar.core.sync.models import SyncReport
from release_radar.core.sync.reconciler import CatalogReconciler
from release_radar.shared.cancellation import CancellationToken
from release_radar.shared.logging import get_logger
from release_radar.shared.periods import format_month, month_start, parse_month

BoundLogger = structlog.stdlib.BoundLogger

__all__ = ["CatalogSynchronizer"]


@dataclass(slots=True)
class CatalogSynchronizer:
    """リースを取ってリコンサイルし、結果をスナップショットとして送る。

    カタログへの反映が終わった後の分析ストア障害は例外にせず、
    `SyncReport.snapshot_error` として報告する。
    """

    reconciler: CatalogReconciler
    emitter: SnapshotEmitter
    leases: MonthLeaseRegistry = field(default_factory=lambda: default_lease_registry)
    lease_timeout_seconds: float = 0.0
    logger: BoundLogger = field(default_factory=lambda: get_logger(__name__, component="sync"))

    def synchronize(
        self,
        month: date | str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> SyncReport:
        target = parse_month(month) if isinstance(month, str) else month_start(month)
        token = cancel_token or CancellationToken()
        self.logger.info("sync_started", month=format_month(target))
        if self.leases.is_held(target):
            self.logger.warning(
                "sync_lease_busy",
                month=format_month(target),
                timeout_seconds=self.lease_timeout_seconds,
            )

        with self.leases.hold(target, timeout=self.lease_timeout_seconds):
            outcome = self.reconciler.reconcile(target, cancel_token=token)
            token.raise_if_cancelled("snapshot")
            emitted = self.emitter.emit(outcome.games)

        report = SyncReport(
            month=target,
            discovered=outcome.discovered,
            upserted=outcome.upserted,
            pruned=outcome.pruned,
            skipped=outcome.skipped,
            snapshot_rows=emitted.value if emitted.is_ok else 0,
            snapshot_error=str(emitted.error) if emitted.is_err else None,
        )
        log_method = self.logger.warning if report.is_degraded else self.logger.info
        log_method(
            "sync_completed",
            month=report.label,
            added=report.added_count,
            upserted=report.upserted,
            pruned=report.pruned,
            skipped=len(report.skipped),
            snapshot_rows=report.snapshot_rows,
            degraded=report.is_degraded,
        )
        return report
