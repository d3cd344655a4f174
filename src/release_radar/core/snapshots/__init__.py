"""スナップショット (分析ストア向けファクト行) の生成と送出。"""

from release_radar.core.snapshots.emitter import SnapshotEmitter, SnapshotSinkProtocol
from release_radar.core.snapshots.models import SnapshotFactRow, build_fact_rows

__all__ = [
    "SnapshotEmitter",
    "SnapshotFactRow",
    "SnapshotSinkProtocol",
    "build_fact_rows",
]
