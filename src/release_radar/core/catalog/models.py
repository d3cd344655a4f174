"""カタログ参照系の DTO。"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

from release_radar.shared.exceptions import QueryValidationError
from release_radar.shared.periods import format_month, month_start, month_window, parse_month
from release_radar.shared.types import DTO

__all__ = [
    "PLATFORMS",
    "CalendarDay",
    "CatalogGame",
    "GamesQuery",
    "ReleaseCalendar",
]

PLATFORMS: tuple[str, ...] = ("windows", "mac", "linux")


def _normalize_platforms(values: Sequence[str] | None) -> tuple[str, ...]:
    if not values:
        return ()
    normalized: list[str] = []
    for value in values:
        text = str(value).strip().lower()
        if not text:
            continue
        if text not in PLATFORMS:
            raise QueryValidationError(
                f"unknown platform {value!r}; expected one of {', '.join(PLATFORMS)}"
            )
        if text not in normalized:
            normalized.append(text)
    return tuple(normalized)


def _normalize_tags(values: Sequence[str] | None) -> tuple[str, ...]:
    if not values:
        return ()
    normalized: list[str] = []
    seen: set[str] = set()
    for value in values:
        text = str(value).strip()
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        normalized.append(text)
    return tuple(normalized)


@dataclass(slots=True)
class GamesQuery(DTO):
    """月別ゲーム一覧の検索条件。

    platforms は OR 条件、tags は大文字小文字を区別しない any-match。
    空のフィルタは「絞り込みなし」として扱う。
    """

    month: date | str
    platforms: tuple[str, ...] = field(default_factory=tuple)
    tags: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if isinstance(self.month, str):
            normalized = parse_month(self.month)
        else:
            normalized = month_start(self.month)
        self.month = normalized
        self.platforms = _normalize_platforms(self.platforms)
        self.tags = _normalize_tags(self.tags)

    @property
    def window(self) -> tuple[date, date]:
        return month_window(self.month)

    @property
    def normalized_tags(self) -> tuple[str, ...]:
        return tuple(tag.lower() for tag in self.tags)


@dataclass(slots=True)
class CatalogGame(DTO):
    """カタログストアに保存されたゲーム。"""

    id: str
    name: str
    external_id: int | None = None
    release_date: date | None = None
    followers: int | None = None
    store_url: str | None = None
    image_url: str | None = None
    short_description: str | None = None
    windows: bool = False
    mac: bool = False
    linux: bool = False
    tags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def platforms(self) -> tuple[str, ...]:
        return tuple(name for name in PLATFORMS if getattr(self, name))


@dataclass(slots=True)
class CalendarDay(DTO):
    day: date
    count: int


@dataclass(slots=True)
class ReleaseCalendar(DTO):
    """月内の日付ごとのリリース件数。件数 0 の日は含めない。"""

    month: date
    days: tuple[CalendarDay, ...] = field(default_factory=tuple)

    @property
    def label(self) -> str:
        return format_month(self.month)

    @property
    def total(self) -> int:
        return sum(day.count for day in self.days)
