"""分析ストアへ追記するスナップショット行。"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from release_radar.core.catalog.models import CatalogGame
from release_radar.shared.types import DTO

__all__ = ["SnapshotFactRow", "build_fact_rows"]


@dataclass(slots=True)
class SnapshotFactRow(DTO):
    """(ゲーム, ジャンル) ごとの 1 行。"""

    app_id: int
    name: str
    genre: str
    followers: int | None = None
    release_date: date | None = None


def build_fact_rows(games: Iterable[CatalogGame]) -> tuple[SnapshotFactRow, ...]:
    """ゲームごとにタグ数ぶんの行へ展開する。

    external id もタグも持たないゲームは行を作らない。
    """

    rows: list[SnapshotFactRow] = []
    for game in sorted(games, key=lambda item: (item.external_id or 0, item.name)):
        if game.external_id is None:
            continue
        for genre in game.tags:
            rows.append(
                SnapshotFactRow(
                    app_id=game.external_id,
                    name=game.name,
                    genre=genre,
                    followers=game.followers,
                    release_date=game.release_date,
                )
            )
    return tuple(rows)
