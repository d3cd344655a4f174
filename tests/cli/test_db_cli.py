from __future__ import annotations

import pytest
from sqlalchemy import create_engine, inspect
from typer.testing import CliRunner

from release_radar.cli.app import app
from release_radar.infra.db import DatabaseSessionManager
from release_radar.shared.config import get_settings

runner = CliRunner()

pytestmark = pytest.mark.skipif(
    not DatabaseSessionManager._ALEMBIC_CONFIG.exists(),
    reason="alembic.ini is only available from a source checkout",
)


def test_upgrade_creates_both_stores(tmp_path, monkeypatch) -> None:
    sqlite_path = tmp_path / "fresh" / "catalog.db"
    duckdb_path = tmp_path / "fresh" / "analytics.duckdb"
    monkeypatch.setenv("STORAGE__SQLITE_PATH", str(sqlite_path))
    monkeypatch.setenv("ANALYTICS__DUCKDB_PATH", str(duckdb_path))
    get_settings.cache_clear()

    try:
        result = runner.invoke(app, ["db", "upgrade"])
    finally:
        get_settings.cache_clear()

    assert result.exit_code == 0, result.output
    engine = create_engine(f"sqlite:///{sqlite_path}")
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert {"games", "tags", "game_tags", "alembic_version"} <= tables
    assert duckdb_path.exists()
