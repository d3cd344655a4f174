"""ジャンル集計サービス。"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol

import structlog

from release_radar.core.analytics.models import (
    GenreAggregate,
    GenreDynamics,
    GenreMonthAggregate,
    GenreTrend,
    TopGenre,
)
from release_radar.shared.exceptions import QueryValidationError, SinkUnavailableError
from release_radar.shared.logging import get_logger
from release_radar.shared.periods import (
    add_months,
    format_month,
    month_start,
    month_window,
    parse_month,
    trailing_months,
)
from release_radar.shared.types import utc_now

BoundLogger = structlog.stdlib.BoundLogger

__all__ = [
    "DYNAMICS_MONTHS",
    "DYNAMICS_TOP_GENRES",
    "GenreAnalyticsService",
    "GenreDynamicsSourceProtocol",
    "TopGenresSourceProtocol",
]

DYNAMICS_MONTHS = 3
DYNAMICS_TOP_GENRES = 5


class TopGenresSourceProtocol(Protocol):
    def top_genres(self, start: date, end: date, *, limit: int) -> Sequence[GenreAggregate]:
        """発売日が `[start, end)` のゲームをジャンル別に集計する。"""


class GenreDynamicsSourceProtocol(Protocol):
    def genre_dynamics(self, start: date, end: date) -> Sequence[GenreMonthAggregate]:
        """スナップショット時刻が `[start, end)` の行を (ジャンル, 月) で集計する。"""


class AnalyticsStoreProtocol(TopGenresSourceProtocol, GenreDynamicsSourceProtocol, Protocol):
    pass


def _round_followers(value: float) -> int:
    return int(round(value))


@dataclass(slots=True)
class GenreAnalyticsService:
    """分析ストアを主、カタログストアを従とするジャンル集計。

    TopGenres は分析ストアが失敗または 0 件ならカタログへフォールバックする。
    GenreDynamics はフォールバックせず、分析ストア障害を SinkUnavailableError として送出する。
    """

    analytics_store: AnalyticsStoreProtocol
    catalog: TopGenresSourceProtocol
    clock: Callable[[], datetime] = utc_now
    logger: BoundLogger = field(
        default_factory=lambda: get_logger(__name__, component="genre-analytics")
    )

    def top_genres(self, month: date | str, limit: int = 5) -> tuple[TopGenre, ...]:
        if limit < 1:
            raise QueryValidationError("limit must be >= 1")
        target = parse_month(month) if isinstance(month, str) else month_start(month)
        start, end = month_window(target)

        aggregates: Sequence[GenreAggregate] = ()
        try:
            aggregates = self.analytics_store.top_genres(start, end, limit=limit)
        except SinkUnavailableError as exc:
            self.logger.warning(
                "top_genres_fallback",
                month=format_month(target),
                reason="analytics_unavailable",
                error=str(exc),
            )
        else:
            if not aggregates:
                self.logger.info(
                    "top_genres_fallback",
                    month=format_month(target),
                    reason="analytics_empty",
                )

        source = "analytics"
        if not aggregates:
            aggregates = self.catalog.top_genres(start, end, limit=limit)
            source = "catalog"

        result = tuple(
            TopGenre(
                genre=item.genre,
                games=item.games,
                avg_followers=_round_followers(item.avg_followers),
            )
            for item in list(aggregates)[:limit]
        )
        self.logger.info(
            "top_genres_computed",
            month=format_month(target),
            source=source,
            genres=len(result),
        )
        return result

    def genre_dynamics(self) -> GenreDynamics:
        """当月を含む直近 3 か月のジャンル推移 (上位 5 ジャンル、欠損は 0)。"""

        months = trailing_months(self.clock(), DYNAMICS_MONTHS)
        labels = tuple(format_month(month) for month in months)
        start, end = months[0], add_months(months[-1], 1)

        aggregates = self.analytics_store.genre_dynamics(start, end)

        cells: dict[str, dict[str, GenreMonthAggregate]] = defaultdict(dict)
        for item in aggregates:
            if item.month in labels:
                cells[item.genre][item.month] = item

        totals = {
            genre: sum(cell.games for cell in by_month.values())
            for genre, by_month in cells.items()
        }
        ranked = sorted(totals, key=lambda genre: (-totals[genre], genre))[:DYNAMICS_TOP_GENRES]

        series = []
        for genre in ranked:
            by_month = cells[genre]
            counts = []
            averages = []
            for label in labels:
                cell = by_month.get(label)
                counts.append(cell.games if cell else 0)
                averages.append(_round_followers(cell.avg_followers) if cell else 0)
            series.append(
                GenreTrend(
                    genre=genre,
                    monthly_counts=tuple(counts),
                    monthly_avg_followers=tuple(averages),
                )
            )

        self.logger.info("genre_dynamics_computed", months=list(labels), genres=len(series))
        return GenreDynamics(months=labels, series=tuple(series))
