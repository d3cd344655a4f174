"""ジャンル集計のドメインモデルとサービス。"""

from release_radar.core.analytics.models import (
    GenreAggregate,
    GenreDynamics,
    GenreMonthAggregate,
    GenreTrend,
    TopGenre,
)
from release_radar.core.analytics.service import (
    DYNAMICS_MONTHS,
    DYNAMICS_TOP_GENRES,
    GenreAnalyticsService,
    GenreDynamicsSourceProtocol,
    TopGenresSourceProtocol,
)

__all__ = [
    "DYNAMICS_MONTHS",
    "DYNAMICS_TOP_GENRES",
    "GenreAggregate",
    "GenreAnalyticsService",
    "GenreDynamics",
    "GenreDynamicsSourceProtocol",
    "GenreMonthAggregate",
    "GenreTrend",
    "TopGenre",
    "TopGenresSourceProtocol",
]
