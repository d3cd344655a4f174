from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, date, datetime, timedelta

import pytest

from release_radar.core.analytics import GenreAnalyticsService, TopGenre
from release_radar.core.snapshots import SnapshotEmitter, SnapshotFactRow
from release_radar.core.sync import CatalogReconciler, CatalogSynchronizer, MonthLeaseRegistry
from release_radar.infra.analytics import DuckDBAnalyticsStore
from release_radar.infra.steam.client import SteamRequestError
from release_radar.shared.exceptions import (
    QueryValidationError,
    SinkUnavailableError,
    SyncInProgressError,
)

FIXED_NOW = datetime(2025, 3, 2, 3, 0, tzinfo=UTC)


class RecordingSink:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.rows: list[SnapshotFactRow] = []

    def append_snapshot(self, snapshot_utc: datetime, rows: Sequence[SnapshotFactRow]) -> int:
        if self.fail:
            raise SinkUnavailableError("analytics store offline")
        self.rows.extend(rows)
        return len(rows)


@pytest.fixture
def leases() -> MonthLeaseRegistry:
    return MonthLeaseRegistry()


def _synchronizer(source, repository, sink, leases) -> CatalogSynchronizer:
    return CatalogSynchronizer(
        reconciler=CatalogReconciler(source=source, repository=repository),
        emitter=SnapshotEmitter(sink=sink, clock=lambda: FIXED_NOW),
        leases=leases,
    )


def test_synchronize_reports_counts_and_snapshot(
    repository, source_cls, make_detail, leases
) -> None:
    repository.upsert_game(make_detail(99))
    source = source_cls(
        [make_detail(1, tags=("Action", "Indie")), make_detail(2, tags=("RPG",))],
        failures={3: SteamRequestError("timeout")},
    )
    sink = RecordingSink()

    report = _synchronizer(source, repository, sink, leases).synchronize("2025-03")

    assert report.month == date(2025, 3, 1)
    assert report.label == "2025-03"
    assert report.discovered == 3
    assert report.upserted == 2
    assert report.pruned == 1
    assert report.added_count == 3
    assert [item.external_id for item in report.skipped] == [3]
    assert report.snapshot_rows == 3
    assert not report.is_degraded
    assert [(row.app_id, row.genre) for row in sink.rows] == [
        (1, "Action"),
        (1, "Indie"),
        (2, "RPG"),
    ]


def test_sink_failure_keeps_catalog_and_marks_degraded(
    repository, source_cls, make_detail, leases
) -> None:
    source = source_cls([make_detail(1), make_detail(2)])

    report = _synchronizer(source, repository, RecordingSink(fail=True), leases).synchronize(
        date(2025, 3, 9)
    )

    assert report.is_degraded
    assert report.snapshot_error == "analytics store offline"
    assert report.snapshot_rows == 0
    assert report.added_count == 2
    assert repository.get_by_external_id(1) is not None
    assert repository.get_by_external_id(2) is not None


def test_synchronize_rejects_month_already_running(
    repository, source_cls, make_detail, leases
) -> None:
    source = source_cls([make_detail(1)])
    synchronizer = _synchronizer(source, repository, RecordingSink(), leases)

    with leases.hold(date(2025, 3, 1)):
        with pytest.raises(SyncInProgressError):
            synchronizer.synchronize("2025-03")
        other = synchronizer.synchronize("2025-04")

    assert source.fetched == [1]
    assert other.label == "2025-04"
    assert not leases.is_held(date(2025, 4, 1))


def test_synchronize_rejects_malformed_month(repository, source_cls, leases) -> None:
    synchronizer = _synchronizer(source_cls([]), repository, RecordingSink(), leases)

    with pytest.raises(QueryValidationError):
        synchronizer.synchronize("2025-13")


def test_analytics_matches_catalog_after_game_is_pruned(
    tmp_path, repository, source_cls, make_detail, leases
) -> None:
    store = DuckDBAnalyticsStore(tmp_path / "facts.duckdb")
    taken = iter([FIXED_NOW, FIXED_NOW + timedelta(hours=1)])

    def _synchronize(source) -> None:
        CatalogSynchronizer(
            reconciler=CatalogReconciler(source=source, repository=repository),
            emitter=SnapshotEmitter(sink=store, clock=lambda: next(taken)),
            leases=leases,
        ).synchronize("2025-03")

    _synchronize(source_cls([make_detail(1), make_detail(2)]))
    _synchronize(source_cls([make_detail(1)]))

    window = (date(2025, 3, 1), date(2025, 4, 1))
    assert store.top_genres(*window, limit=5) == repository.top_genres(*window, limit=5)
    service = GenreAnalyticsService(analytics_store=store, catalog=repository)
    assert service.top_genres("2025-03") == (TopGenre(genre="Action", games=1, avg_followers=10),)
