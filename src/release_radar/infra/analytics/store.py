"""DuckDB を用いた分析ストア (スナップショットの追記専用ファクトテーブル)。"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, date, datetime, time
from pathlib import Path

import duckdb
import structlog

from release_radar.core.analytics.models import GenreAggregate, GenreMonthAggregate
from release_radar.core.snapshots.models import SnapshotFactRow
from release_radar.shared.config import AppSettings, get_settings
from release_radar.shared.exceptions import SinkUnavailableError
from release_radar.shared.logging import get_logger

BoundLogger = structlog.stdlib.BoundLogger

_SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS game_snapshots (
    snapshot_utc TIMESTAMP NOT NULL,
    app_id       INTEGER   NOT NULL,
    name         TEXT      NOT NULL,
    genre        TEXT      NOT NULL,
    followers    INTEGER,
    release_ts   TIMESTAMP
);
"""

_INSERT_SQL = """
INSERT INTO game_snapshots (snapshot_utc, app_id, name, genre, followers, release_ts)
VALUES (?, ?, ?, ?, ?, ?)
"""

# 対象月を含む最新のスナップショット 1 回分だけを集計する。
# 以降の同期で消えたゲームは、古いスナップショットに残っていても数えない。
_TOP_GENRES_SQL = """
WITH in_window AS (
    SELECT snapshot_utc, app_id, genre, followers
    FROM game_snapshots
    WHERE release_ts >= ? AND release_ts < ?
),
latest AS (
    SELECT max(snapshot_utc) AS snapshot_utc FROM in_window
)
SELECT
    w.genre AS genre,
    count(DISTINCT w.app_id) AS games,
    avg(coalesce(w.followers, 0)) AS avg_followers
FROM in_window AS w
JOIN latest AS l ON w.snapshot_utc = l.snapshot_utc
GROUP BY w.genre
ORDER BY games DESC, avg_followers DESC, genre ASC
LIMIT {limit}
"""

_DYNAMICS_SQL = """
SELECT
    genre,
    strftime(snapshot_utc, '%Y-%m') AS snapshot_month,
    count(DISTINCT app_id) AS games,
    avg(coalesce(followers, 0)) AS avg_followers
FROM game_snapshots
WHERE snapshot_utc >= ? AND snapshot_utc < ?
GROUP BY genre, snapshot_month
ORDER BY snapshot_month, genre
"""


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _to_timestamp(value: date | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_naive_utc(value)
    return datetime.combine(value, time.min)


class DuckDBAnalyticsStore:
    """スナップショット行を DuckDB ファイルへ追記し、ジャンル集計を返す。

    呼び出しごとに接続を開閉するため、スレッド間で共有しても安全。
    DuckDB や OS レベルの失敗はすべて `SinkUnavailableError` に変換する。
    """

    def __init__(self, path: Path, *, logger: BoundLogger | None = None) -> None:
        self._path = Path(path).expanduser()
        self._logger = logger or get_logger(__name__, component="analytics-store")

    @property
    def path(self) -> Path:
        return self._path

    def ensure_schema(self) -> None:
        with self._connect():
            pass
        self._logger.debug("analytics_schema_ready", path=str(self._path))

    def append_snapshot(self, snapshot_utc: datetime, rows: Sequence[SnapshotFactRow]) -> int:
        """1 回のスナップショットを 1 トランザクションで追記し、書き込んだ行数を返す。"""

        if not rows:
            return 0
        taken_at = _to_naive_utc(snapshot_utc)
        params = [
            (
                taken_at,
                row.app_id,
                row.name,
                row.genre,
                row.followers,
                _to_timestamp(row.release_date),
            )
            for row in rows
        ]
        with self._connect() as con:
            con.begin()
            try:
                con.executemany(_INSERT_SQL, params)
            except duckdb.Error:
                con.rollback()
                raise
            con.commit()

        self._logger.info(
            "analytics_snapshot_appended",
            snapshot_utc=taken_at.isoformat(),
            rows=len(params),
        )
        return len(params)

    def top_genres(self, start: date, end: date, *, limit: int) -> tuple[GenreAggregate, ...]:
        sql = _TOP_GENRES_SQL.format(limit=int(limit))
        with self._connect() as con:
            rows = con.execute(sql, [_to_timestamp(start), _to_timestamp(end)]).fetchall()
        return tuple(
            GenreAggregate(genre=str(genre), games=int(games), avg_followers=float(avg or 0.0))
            for genre, games, avg in rows
        )

    def genre_dynamics(self, start: date, end: date) -> tuple[GenreMonthAggregate, ...]:
        """スナップショット時刻が `[start, end)` の行を (ジャンル, 月) で集計する。"""

        with self._connect() as con:
            rows = con.execute(_DYNAMICS_SQL, [_to_timestamp(start), _to_timestamp(end)]).fetchall()
        return tuple(
            GenreMonthAggregate(
                genre=str(genre),
                month=str(month),
                games=int(games),
                avg_followers=float(avg or 0.0),
            )
            for genre, month, games, avg in rows
        )

    @contextmanager
    def _connect(self) -> Iterator[duckdb.DuckDBPyConnection]:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            con = duckdb.connect(str(self._path))
        except (duckdb.Error, OSError) as exc:
            self._logger.error("analytics_store_unreachable", path=str(self._path), error=str(exc))
            raise SinkUnavailableError(f"Cannot open analytics store at {self._path}") from exc

        try:
            con.execute(_SCHEMA_DDL)
            yield con
        except duckdb.Error as exc:
            self._logger.error("analytics_store_failed", path=str(self._path), error=str(exc))
            raise SinkUnavailableError(f"Analytics store operation failed: {exc}") from exc
        finally:
            con.close()


def build_analytics_store(
    *,
    settings: AppSettings | None = None,
    logger: BoundLogger | None = None,
) -> DuckDBAnalyticsStore:
    app_settings = settings or get_settings()
    return DuckDBAnalyticsStore(app_settings.analytics.duckdb_path, logger=logger)


__all__ = ["DuckDBAnalyticsStore", "build_analytics_store"]
