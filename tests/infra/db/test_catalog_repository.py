from __future__ import annotations

from datetime import date
from typing import Any

import pytest
from sqlalchemy import func, select

from release_radar.infra.db import Base, DatabaseSessionManager, SQLAlchemyCatalogRepository
from release_radar.infra.db.models import Game, GameTag, Tag
from release_radar.infra.steam.dto import SteamAppDetail
from release_radar.shared.config import AppSettings

MARCH = (date(2025, 3, 1), date(2025, 4, 1))


def _detail(app_id: int, **overrides: Any) -> SteamAppDetail:
    values: dict[str, Any] = {
        "app_id": app_id,
        "name": f"Game {app_id}",
        "release_date": date(2025, 3, 10),
        "followers": 100,
        "store_url": f"https://store.test/app/{app_id}/",
        "windows": True,
        "tags": ("Action",),
    }
    values.update(overrides)
    return SteamAppDetail(**values)


@pytest.fixture
def manager(tmp_path) -> DatabaseSessionManager:
    db_manager = DatabaseSessionManager(db_path=tmp_path / "catalog.db", settings=AppSettings())
    Base.metadata.create_all(db_manager.engine)
    yield db_manager
    db_manager.close()


@pytest.fixture
def repository(manager: DatabaseSessionManager) -> SQLAlchemyCatalogRepository:
    return SQLAlchemyCatalogRepository(manager.session_factory)


def _count(manager: DatabaseSessionManager, model: type) -> int:
    with manager.session() as session:
        return int(session.scalar(select(func.count()).select_from(model)))


def test_upsert_creates_game_with_ordered_tags(repository, manager) -> None:
    game = repository.upsert_game(_detail(1, tags=("Indie", "Action", "RPG")))

    assert game.external_id == 1
    assert game.tags == ("Indie", "Action", "RPG")
    assert repository.get_by_external_id(1).tags == ("Indie", "Action", "RPG")
    assert _count(manager, Tag) == 3


def test_upsert_overwrites_scalars_and_replaces_tags(repository, manager) -> None:
    first = repository.upsert_game(_detail(1, tags=("Action", "Indie")))
    second = repository.upsert_game(
        _detail(1, name="Renamed", followers=None, mac=True, tags=("Strategy",))
    )

    assert second.id == first.id
    stored = repository.get_by_external_id(1)
    assert stored.name == "Renamed"
    assert stored.followers is None
    assert stored.mac is True
    assert stored.tags == ("Strategy",)
    assert _count(manager, Game) == 1
    assert _count(manager, GameTag) == 1
    # タグ自体は削除しない
    assert _count(manager, Tag) == 3


def test_upsert_shares_tags_between_games(repository, manager) -> None:
    repository.upsert_game(_detail(1, tags=("Action",)))
    repository.upsert_game(_detail(2, tags=("Action", "action")))

    assert _count(manager, Tag) == 2
    assert repository.get_by_external_id(2).tags == ("Action", "action")


def test_prune_month_only_touches_window(repository, manager) -> None:
    repository.upsert_game(_detail(1))
    repository.upsert_game(_detail(2, release_date=date(2025, 3, 31)))
    repository.upsert_game(_detail(3, release_date=date(2025, 4, 1)))
    repository.upsert_game(_detail(4, release_date=date(2025, 2, 28)))
    repository.upsert_game(_detail(5, release_date=None))

    removed = repository.prune_month(*MARCH, keep_external_ids={1})

    assert removed == 1
    remaining = {
        game.external_id for game in repository.list_games(date(2025, 1, 1), date(2026, 1, 1))
    }
    assert remaining == {1, 3, 4}
    assert repository.get_by_external_id(5) is not None
    assert _count(manager, GameTag) == 4


def test_prune_month_with_empty_keep_set_clears_window(repository) -> None:
    repository.upsert_game(_detail(1))
    repository.upsert_game(_detail(2))

    assert repository.prune_month(*MARCH, keep_external_ids=set()) == 2
    assert repository.list_games(*MARCH) == []


def test_list_games_filters_and_orders(repository) -> None:
    repository.upsert_game(_detail(1, name="Zeta", release_date=date(2025, 3, 5), tags=("Indie",)))
    repository.upsert_game(
        _detail(2, name="Alpha", release_date=date(2025, 3, 5), windows=False, linux=True)
    )
    repository.upsert_game(
        _detail(3, name="Beta", release_date=date(2025, 3, 2), windows=False, mac=True)
    )
    repository.upsert_game(_detail(4, name="Outside", release_date=date(2025, 4, 2)))

    ordered = repository.list_games(*MARCH)
    assert [game.name for game in ordered] == ["Beta", "Alpha", "Zeta"]

    by_platform = repository.list_games(*MARCH, platforms=("mac", "linux"))
    assert [game.name for game in by_platform] == ["Beta", "Alpha"]

    by_tag = repository.list_games(*MARCH, tags=("INDIE", "unknown"))
    assert [game.name for game in by_tag] == ["Zeta"]
    assert by_tag[0].tags == ("Indie",)


def test_top_genres_orders_by_count_then_average(repository) -> None:
    repository.upsert_game(_detail(1, followers=100, tags=("Action", "Indie")))
    repository.upsert_game(_detail(2, followers=None, tags=("Indie",)))
    repository.upsert_game(_detail(3, followers=50, tags=("Puzzle",)))
    repository.upsert_game(_detail(4, followers=300, tags=("Action",)))
    repository.upsert_game(_detail(5, release_date=date(2025, 4, 3), tags=("Puzzle",)))

    result = repository.top_genres(*MARCH, limit=5)

    assert [(item.genre, item.games, item.avg_followers) for item in result] == [
        ("Action", 2, 200.0),
        ("Indie", 2, 50.0),
        ("Puzzle", 1, 50.0),
    ]
    assert len(repository.top_genres(*MARCH, limit=1)) == 1


def test_get_by_external_id_returns_none_when_missing(repository) -> None:
    assert repository.get_by_external_id(404) is None
