from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from release_radar.core.analytics import GenreAnalyticsService, GenreDynamics, TopGenre
from release_radar.infra.db.session import DatabaseError
from release_radar.shared.exceptions import QueryValidationError, SinkUnavailableError
from release_radar.shared.logging import get_logger

from .common import OutputFormat, echo_json, open_stores, prepare_settings

app = typer.Typer(help="ジャンル集計コマンド", no_args_is_help=True)

OutputOption = Annotated[
    OutputFormat,
    typer.Option("--output", "-o", case_sensitive=False, help="出力形式(table/json)"),
]


def _render_top(items: tuple[TopGenre, ...], month: str) -> None:
    console = Console(force_terminal=False, color_system=None)
    table = Table(title=f"Top genres {month}")
    table.add_column("Genre", style="bold")
    table.add_column("Games", justify="right")
    table.add_column("Avg followers", justify="right")
    for item in items:
        table.add_row(item.genre, str(item.games), str(item.avg_followers))
    console.print(table)


def _render_dynamics(dynamics: GenreDynamics) -> None:
    console = Console(force_terminal=False, color_system=None)
    table = Table(title="Genre dynamics")
    table.add_column("Genre", style="bold")
    for month in dynamics.months:
        table.add_column(month, justify="right")
    for trend in dynamics.series:
        cells = [
            f"{count} ({avg})"
            for count, avg in zip(trend.monthly_counts, trend.monthly_avg_followers, strict=True)
        ]
        table.add_row(trend.genre, *cells)
    console.print(table)


@app.command()
def top(
    month: Annotated[str, typer.Option("--month", "-m", help="対象月 (YYYY-MM)")],
    limit: Annotated[int, typer.Option("--limit", "-l", help="取得するジャンル数")] = 5,
    output: OutputOption = OutputFormat.TABLE,
) -> None:
    """指定月に発売されるゲームのジャンル上位を表示する。"""

    app_settings = prepare_settings()
    logger = get_logger("cli.genres.top", month=month)

    with open_stores(app_settings, logger) as stores:
        service = GenreAnalyticsService(
            analytics_store=stores.analytics,
            catalog=stores.catalog,
            logger=logger,
        )
        try:
            result = service.top_genres(month, limit)
        except QueryValidationError as exc:
            typer.echo(str(exc))
            raise typer.Exit(code=2) from exc
        except DatabaseError as exc:
            logger.error("top_genres_failed", error=str(exc))
            typer.echo(f"カタログストアを読み込めません: {exc}")
            raise typer.Exit(code=1) from exc

    if output is OutputFormat.JSON:
        echo_json(
            [
                {"genre": item.genre, "count": item.games, "avg_followers": item.avg_followers}
                for item in result
            ]
        )
    else:
        _render_top(result, month)


@app.command()
def dynamics(output: OutputOption = OutputFormat.TABLE) -> None:
    """直近 3 か月のジャンル推移を表示する。"""

    app_settings = prepare_settings()
    logger = get_logger("cli.genres.dynamics")

    with open_stores(app_settings, logger) as stores:
        service = GenreAnalyticsService(
            analytics_store=stores.analytics,
            catalog=stores.catalog,
            logger=logger,
        )
        try:
            result = service.genre_dynamics()
        except SinkUnavailableError as exc:
            logger.error("genre_dynamics_unavailable", error=str(exc))
            typer.echo(f"分析ストアに接続できません: {exc}")
            raise typer.Exit(code=1) from exc

    if output is OutputFormat.JSON:
        echo_json(result.to_json_dict())
    else:
        _render_dynamics(result)
