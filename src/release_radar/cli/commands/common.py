"""CLI コマンド間で共有する出力形式と依存の組み立て。"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any

import typer
from structlog.stdlib import BoundLogger

from release_radar.infra.analytics import DuckDBAnalyticsStore, build_analytics_store
from release_radar.infra.db.repositories import SQLAlchemyCatalogRepository
from release_radar.infra.db.session import DatabaseSessionManager
from release_radar.shared.config import AppSettings, get_settings
from release_radar.shared.logging import configure_logging


class OutputFormat(str, Enum):
    """出力形式。"""

    TABLE = "table"
    JSON = "json"


@dataclass(slots=True)
class StoreContext:
    settings: AppSettings
    db_manager: DatabaseSessionManager
    catalog: SQLAlchemyCatalogRepository
    analytics: DuckDBAnalyticsStore


def prepare_settings() -> AppSettings:
    app_settings = get_settings()
    configure_logging(level=app_settings.log_level, json_output=app_settings.log_json)
    return app_settings


@contextmanager
def open_stores(settings: AppSettings, logger: BoundLogger) -> Iterator[StoreContext]:
    """カタログストアと分析ストアを開き、終了時に接続を破棄する。"""

    db_manager = DatabaseSessionManager(settings=settings, logger=logger)
    try:
        yield StoreContext(
            settings=settings,
            db_manager=db_manager,
            catalog=SQLAlchemyCatalogRepository(db_manager.session_factory, logger=logger),
            analytics=build_analytics_store(settings=settings, logger=logger),
        )
    finally:
        db_manager.close()


def echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


__all__ = [
    "OutputFormat",
    "StoreContext",
    "echo_json",
    "open_stores",
    "prepare_settings",
]
