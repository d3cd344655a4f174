from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import date

import pytest

from release_radar.infra.db import Base, DatabaseSessionManager, SQLAlchemyCatalogRepository
from release_radar.infra.steam.client import SteamClientError
from release_radar.infra.steam.dto import SteamAppDetail, UpcomingCandidate
from release_radar.shared.cancellation import CancellationToken
from release_radar.shared.config import AppSettings
from release_radar.shared.exceptions import SourceUnavailableError


class FakeCatalogSource:
    """メモリ上の候補と詳細を返すテスト用ソース。"""

    def __init__(
        self,
        details: list[SteamAppDetail],
        *,
        failures: dict[int, SteamClientError] | None = None,
        discovery_error: SourceUnavailableError | None = None,
        on_fetch: Callable[[int], None] | None = None,
    ) -> None:
        self.details = {detail.app_id: detail for detail in details}
        self.failures = dict(failures or {})
        self.discovery_error = discovery_error
        self.on_fetch = on_fetch
        self.fetched: list[int] = []
        self.tokens: list[CancellationToken | None] = []
        self._lock = threading.Lock()

    def list_upcoming(
        self,
        start: date,
        end: date,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> tuple[UpcomingCandidate, ...]:
        if self.discovery_error is not None:
            raise self.discovery_error
        app_ids = sorted({*self.details, *self.failures})
        return tuple(UpcomingCandidate(app_id=app_id) for app_id in app_ids)

    def fetch_detail(
        self, app_id: int, *, cancel_token: CancellationToken | None = None
    ) -> SteamAppDetail:
        with self._lock:
            self.fetched.append(app_id)
            self.tokens.append(cancel_token)
        if self.on_fetch is not None:
            self.on_fetch(app_id)
        if app_id in self.failures:
            raise self.failures[app_id]
        return self.details[app_id]


def _make_detail(app_id: int, **overrides) -> SteamAppDetail:
    values = {
        "app_id": app_id,
        "name": f"Game {app_id}",
        "release_date": date(2025, 3, 10),
        "followers": 10 * app_id,
        "windows": True,
        "tags": ("Action",),
    }
    values.update(overrides)
    return SteamAppDetail(**values)


@pytest.fixture
def make_detail() -> Callable[..., SteamAppDetail]:
    return _make_detail


@pytest.fixture
def source_cls() -> type[FakeCatalogSource]:
    return FakeCatalogSource


@pytest.fixture
def db_manager(tmp_path) -> DatabaseSessionManager:
    manager = DatabaseSessionManager(db_path=tmp_path / "catalog.db", settings=AppSettings())
    Base.metadata.create_all(manager.engine)
    yield manager
    manager.close()


@pytest.fixture
def repository(db_manager: DatabaseSessionManager) -> SQLAlchemyCatalogRepository:
    return SQLAlchemyCatalogRepository(db_manager.session_factory)
