"""カタログ同期 (リコンサイル・リース・結果レポート)。"""

from release_radar.core.sync.lease import MonthLeaseRegistry, default_lease_registry
from release_radar.core.sync.models import ReconcileOutcome, SkippedItem, SkipReason, SyncReport
from release_radar.core.sync.reconciler import CatalogReconciler, CatalogWriterProtocol
from release_radar.core.sync.service import CatalogSynchronizer

__all__ = [
    "CatalogReconciler",
    "CatalogSynchronizer",
    "CatalogWriterProtocol",
    "MonthLeaseRegistry",
    "ReconcileOutcome",
    "SkipReason",
    "SkippedItem",
    "SyncReport",
    "default_lease_registry",
]
