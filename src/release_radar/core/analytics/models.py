"""ジャンル集計の DTO。"""

from __future__ import annotations

from dataclasses import dataclass, field

from release_radar.shared.types import DTO

__all__ = [
    "GenreAggregate",
    "GenreDynamics",
    "GenreMonthAggregate",
    "GenreTrend",
    "TopGenre",
]


@dataclass(slots=True)
class GenreAggregate(DTO):
    """ストアが返す生の集計値 (平均は丸める前)。"""

    genre: str
    games: int
    avg_followers: float


@dataclass(slots=True)
class GenreMonthAggregate(DTO):
    """スナップショット月 × ジャンルの集計値。"""

    genre: str
    month: str
    games: int
    avg_followers: float


@dataclass(slots=True)
class TopGenre(DTO):
    genre: str
    games: int
    avg_followers: int


@dataclass(slots=True)
class GenreTrend(DTO):
    """1 ジャンル分の月次系列。`months` と同じ並びで値を持つ。"""

    genre: str
    monthly_counts: tuple[int, ...]
    monthly_avg_followers: tuple[int, ...]

    @property
    def total(self) -> int:
        return sum(self.monthly_counts)


@dataclass(slots=True)
class GenreDynamics(DTO):
    months: tuple[str, ...]
    series: tuple[GenreTrend, ...] = field(default_factory=tuple)
