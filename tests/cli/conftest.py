from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path

import pytest

from release_radar.infra.db import Base, DatabaseSessionManager, SQLAlchemyCatalogRepository
from release_radar.infra.steam.dto import SteamAppDetail, UpcomingCandidate
from release_radar.shared.cancellation import CancellationToken
from release_radar.shared.config import AppSettings, get_settings
from release_radar.shared.exceptions import SourceUnavailableError


@dataclass(slots=True)
class CliStores:
    settings: AppSettings
    sqlite_path: Path
    duckdb_path: Path
    repository: SQLAlchemyCatalogRepository


class StubSteamClient:
    """`build_steam_client` の差し替え用。HTTP を使わずに固定データを返す。"""

    def __init__(
        self,
        details: list[SteamAppDetail],
        *,
        discovery_error: SourceUnavailableError | None = None,
    ) -> None:
        self.details = {detail.app_id: detail for detail in details}
        self.discovery_error = discovery_error
        self.closed = False

    def list_upcoming(self, start: date, end: date, *, cancel_token=None):
        if self.discovery_error is not None:
            raise self.discovery_error
        return tuple(UpcomingCandidate(app_id=app_id) for app_id in sorted(self.details))

    def fetch_detail(
        self, app_id: int, *, cancel_token: CancellationToken | None = None
    ) -> SteamAppDetail:
        return self.details[app_id]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def cli_stores(tmp_path, monkeypatch) -> CliStores:
    monkeypatch.chdir(tmp_path)
    sqlite_path = tmp_path / "var" / "catalog.db"
    duckdb_path = tmp_path / "var" / "analytics.duckdb"
    monkeypatch.setenv("STORAGE__SQLITE_PATH", str(sqlite_path))
    monkeypatch.setenv("ANALYTICS__DUCKDB_PATH", str(duckdb_path))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    get_settings.cache_clear()

    settings = get_settings()
    manager = DatabaseSessionManager(settings=settings)
    Base.metadata.create_all(manager.engine)
    yield CliStores(
        settings=settings,
        sqlite_path=sqlite_path,
        duckdb_path=duckdb_path,
        repository=SQLAlchemyCatalogRepository(manager.session_factory),
    )
    manager.close()
    get_settings.cache_clear()


@pytest.fixture
def stub_client_cls() -> type[StubSteamClient]:
    return StubSteamClient
