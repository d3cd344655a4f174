"""月別ゲーム一覧とリリースカレンダーの参照サービス。"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Protocol

import structlog

from release_radar.core.catalog.models import CalendarDay, CatalogGame, GamesQuery, ReleaseCalendar
from release_radar.shared.exceptions import NotFoundError
from release_radar.shared.logging import get_logger
from release_radar.shared.periods import format_month

BoundLogger = structlog.stdlib.BoundLogger

__all__ = ["CatalogReaderProtocol", "GameCatalogService"]


class CatalogReaderProtocol(Protocol):
    """カタログストアの参照系。"""

    def list_games(
        self,
        start: date,
        end: date,
        *,
        platforms: Sequence[str] = (),
        tags: Sequence[str] = (),
    ) -> Sequence[CatalogGame]:
        """発売日が `[start, end)` のゲームを発売日・名前順で返す。"""

    def get_by_external_id(self, external_id: int) -> CatalogGame | None:
        """external id でゲームを 1 件取得する。"""


@dataclass(slots=True)
class GameCatalogService:
    repository: CatalogReaderProtocol
    logger: BoundLogger = field(default_factory=lambda: get_logger(__name__, component="catalog"))

    def get_games(self, query: GamesQuery) -> tuple[CatalogGame, ...]:
        start, end = query.window
        games = tuple(
            self.repository.list_games(
                start,
                end,
                platforms=query.platforms,
                tags=query.normalized_tags,
            )
        )
        self.logger.debug(
            "catalog_games_listed",
            month=format_month(query.month),
            platforms=list(query.platforms),
            tags=list(query.tags),
            count=len(games),
        )
        return games

    def get_calendar(self, query: GamesQuery) -> ReleaseCalendar:
        """`get_games` と同じ条件で、発売日ごとの件数を日付順に返す。"""

        counts = Counter(
            game.release_date for game in self.get_games(query) if game.release_date is not None
        )
        days = tuple(CalendarDay(day=day, count=counts[day]) for day in sorted(counts))
        return ReleaseCalendar(month=query.month, days=days)

    def get_game(self, external_id: int) -> CatalogGame:
        game = self.repository.get_by_external_id(external_id)
        if game is None:
            raise NotFoundError(f"game with external id {external_id} was not found")
        return game
