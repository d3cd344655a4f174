from __future__ import annotations

import json
from datetime import date

import pytest
from typer.testing import CliRunner

from release_radar.cli.app import app
from release_radar.core.sync import default_lease_registry
from release_radar.infra.steam.dto import SteamAppDetail
from release_radar.shared.config import get_settings
from release_radar.shared.exceptions import SourceUnavailableError

runner = CliRunner()


def _detail(app_id: int, tags: tuple[str, ...]) -> SteamAppDetail:
    return SteamAppDetail(
        app_id=app_id,
        name=f"Game {app_id}",
        release_date=date(2025, 3, app_id),
        followers=app_id * 10,
        windows=True,
        tags=tags,
    )


@pytest.fixture
def stub_client(monkeypatch, stub_client_cls):
    client = stub_client_cls([_detail(1, ("Action", "Indie")), _detail(2, ("Indie",))])
    monkeypatch.setattr(
        "release_radar.cli.commands.sync.build_steam_client",
        lambda **_: client,
    )
    return client


def test_sync_json_reports_added_count(cli_stores, stub_client) -> None:
    cli_stores.repository.upsert_game(_detail(9, ("RPG",)))

    result = runner.invoke(app, ["sync", "--month", "2025-03", "--output", "json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["month"] == "2025-03"
    assert payload["upserted"] == 2
    assert payload["pruned"] == 1
    assert payload["added_count"] == 3
    assert payload["snapshot_rows"] == 3
    assert payload["degraded"] is False
    assert stub_client.closed
    assert cli_stores.duckdb_path.exists()


def test_sync_table_output(cli_stores, stub_client) -> None:
    result = runner.invoke(app, ["sync", "-m", "2025-03"])

    assert result.exit_code == 0, result.output
    assert "Sync 2025-03" in result.stdout
    assert "Upserted" in result.stdout


def test_sync_with_unavailable_analytics_store_warns(cli_stores, stub_client, monkeypatch) -> None:
    blocked = cli_stores.duckdb_path.parent / "blocked.duckdb"
    blocked.mkdir(parents=True)
    monkeypatch.setenv("ANALYTICS__DUCKDB_PATH", str(blocked))
    get_settings.cache_clear()

    result = runner.invoke(app, ["sync", "--month", "2025-03", "--output", "json"])

    assert result.exit_code == 0, result.output
    assert "警告: スナップショットの追記に失敗しました" in result.output
    assert cli_stores.repository.get_by_external_id(1) is not None


def test_sync_rejects_malformed_month(cli_stores, stub_client) -> None:
    result = runner.invoke(app, ["sync", "--month", "2025/03"])

    assert result.exit_code == 2
    assert "month must be YYYY-MM" in result.output


def test_sync_discovery_failure_exits_non_zero(cli_stores, monkeypatch, stub_client_cls) -> None:
    cli_stores.repository.upsert_game(_detail(9, ("RPG",)))
    failing = stub_client_cls([], discovery_error=SourceUnavailableError("search down"))
    monkeypatch.setattr(
        "release_radar.cli.commands.sync.build_steam_client",
        lambda **_: failing,
    )

    result = runner.invoke(app, ["sync", "--month", "2025-03"])

    assert result.exit_code == 1
    assert "同期に失敗しました" in result.output
    assert cli_stores.repository.get_by_external_id(9) is not None


def test_sync_month_already_running(cli_stores, stub_client) -> None:
    with default_lease_registry.hold(date(2025, 3, 1)):
        result = runner.invoke(app, ["sync", "--month", "2025-03"])

    assert result.exit_code == 1
    assert "同じ月の同期が実行中です" in result.output
