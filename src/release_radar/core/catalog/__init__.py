"""カタログ参照系のドメインモデルとサービス。"""

from release_radar.core.catalog.models import (
    PLATFORMS,
    CalendarDay,
    CatalogGame,
    GamesQuery,
    ReleaseCalendar,
)
from release_radar.core.catalog.service import CatalogReaderProtocol, GameCatalogService

__all__ = [
    "PLATFORMS",
    "CalendarDay",
    "CatalogGame",
    "CatalogReaderProtocol",
    "GameCatalogService",
    "GamesQuery",
    "ReleaseCalendar",
]
