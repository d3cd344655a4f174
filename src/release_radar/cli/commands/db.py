from __future__ import annotations

from typing import Annotated

import typer

from release_radar.infra.db.session import DatabaseError
from release_radar.shared.exceptions import SinkUnavailableError
from release_radar.shared.logging import get_logger

from .common import open_stores, prepare_settings

app = typer.Typer(help="ストアのスキーマ管理コマンド", no_args_is_help=True)


@app.command()
def upgrade(
    revision: Annotated[
        str, typer.Option("--revision", "-r", help="適用する Alembic リビジョン")
    ] = "head",
) -> None:
    """カタログストアを Alembic で最新化し、分析ストアのテーブルを作成する。"""

    app_settings = prepare_settings()
    logger = get_logger("cli.db.upgrade", revision=revision)

    with open_stores(app_settings, logger) as stores:
        try:
            stores.db_manager.initialize_schema(revision)
            stores.analytics.ensure_schema()
        except (DatabaseError, SinkUnavailableError) as exc:
            logger.error("schema_upgrade_failed", error=str(exc))
            typer.echo(f"スキーマの更新に失敗しました: {exc}")
            raise typer.Exit(code=1) from exc

    typer.echo(
        f"catalog: {app_settings.storage.sqlite_path} / analytics: {stores.analytics.path}"
    )
