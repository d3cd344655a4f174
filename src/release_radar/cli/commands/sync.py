from __future__ import annotations

from contextlib import closing
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from release_radar.core.snapshots import SnapshotEmitter
from release_radar.core.sync import CatalogReconciler, CatalogSynchronizer, SyncReport
from release_radar.infra.db.session import DatabaseError
from release_radar.infra.steam import build_steam_client
from release_radar.shared.exceptions import (
    OperationCancelledError,
    QueryValidationError,
    SourceUnavailableError,
    SyncInProgressError,
)
from release_radar.shared.logging import get_logger
from release_radar.shared.periods import parse_month

from .common import OutputFormat, echo_json, open_stores, prepare_settings

app = typer.Typer(
    help="指定月の発売予定ゲームを外部ソースと同期するコマンド",
    invoke_without_command=True,
    no_args_is_help=True,
)


def _report_to_dict(report: SyncReport) -> dict[str, object]:
    return {
        "month": report.label,
        "added_count": report.added_count,
        "discovered": report.discovered,
        "upserted": report.upserted,
        "pruned": report.pruned,
        "skipped": [item.to_json_dict() for item in report.skipped],
        "snapshot_rows": report.snapshot_rows,
        "snapshot_error": report.snapshot_error,
        "degraded": report.is_degraded,
    }


def _render_table(report: SyncReport) -> None:
    console = Console(force_terminal=False, color_system=None)
    table = Table(title=f"Sync {report.label}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Added", str(report.added_count))
    table.add_row("Discovered", str(report.discovered))
    table.add_row("Upserted", str(report.upserted))
    table.add_row("Pruned", str(report.pruned))
    table.add_row("Skipped", str(len(report.skipped)))
    table.add_row("Snapshot rows", str(report.snapshot_rows))
    console.print(table)

    if report.skipped:
        skipped = Table(title="Skipped")
        skipped.add_column("App ID", style="cyan")
        skipped.add_column("Reason")
        skipped.add_column("Message")
        for item in report.skipped:
            skipped.add_row(str(item.external_id), item.reason.value, item.message or "-")
        console.print(skipped)


@app.callback()
def sync(
    month: Annotated[str, typer.Option("--month", "-m", help="対象月 (YYYY-MM)")],
    output: Annotated[
        OutputFormat,
        typer.Option(
            "--output",
            "-o",
            case_sensitive=False,
            help="出力形式(table/json)",
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """対象月のゲームを取得してカタログへ反映し、スナップショットを追記する。"""

    app_settings = prepare_settings()
    logger = get_logger("cli.sync", month=month)
    try:
        target = parse_month(month)
    except QueryValidationError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=2) from exc

    with (
        open_stores(app_settings, logger) as stores,
        closing(build_steam_client(settings=app_settings, logger=logger)) as source,
    ):
        synchronizer = CatalogSynchronizer(
            reconciler=CatalogReconciler(
                source=source,
                repository=stores.catalog,
                max_concurrency=app_settings.sync.max_concurrency,
                logger=logger,
            ),
            emitter=SnapshotEmitter(sink=stores.analytics, logger=logger),
            lease_timeout_seconds=app_settings.sync.lease_timeout_seconds,
            logger=logger,
        )
        try:
            report = synchronizer.synchronize(target)
        except SyncInProgressError as exc:
            typer.echo(f"同じ月の同期が実行中です: {exc}")
            raise typer.Exit(code=1) from exc
        except (SourceUnavailableError, DatabaseError, OperationCancelledError) as exc:
            logger.error("sync_failed", error_type=exc.__class__.__name__, error=str(exc))
            typer.echo(f"同期に失敗しました: {exc}")
            raise typer.Exit(code=1) from exc

    if output is OutputFormat.JSON:
        echo_json(_report_to_dict(report))
    else:
        _render_table(report)

    if report.is_degraded:
        typer.echo(f"警告: スナップショットの追記に失敗しました ({report.snapshot_error})")
