from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from release_radar.core.catalog import CatalogGame, GameCatalogService, GamesQuery, ReleaseCalendar
from release_radar.infra.db.session import DatabaseError
from release_radar.shared.exceptions import NotFoundError, QueryValidationError
from release_radar.shared.logging import get_logger

from .common import OutputFormat, echo_json, open_stores, prepare_settings

MonthOption = Annotated[str, typer.Option("--month", "-m", help="対象月 (YYYY-MM)")]
PlatformOption = Annotated[
    Optional[list[str]],  # noqa: UP007 - typer が解釈できる形式
    typer.Option("--platform", "-p", help="windows/mac/linux (複数指定は OR)"),
]
TagOption = Annotated[
    Optional[list[str]],  # noqa: UP007
    typer.Option("--tag", "-t", help="タグ名 (大文字小文字を区別しない、複数指定は OR)"),
]
OutputOption = Annotated[
    OutputFormat,
    typer.Option("--output", "-o", case_sensitive=False, help="出力形式(table/json)"),
]


def _build_query(month: str, platforms: list[str] | None, tags: list[str] | None) -> GamesQuery:
    try:
        return GamesQuery(month=month, platforms=tuple(platforms or ()), tags=tuple(tags or ()))
    except QueryValidationError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=2) from exc


def _game_to_dict(game: CatalogGame) -> dict[str, object]:
    return {
        "id": game.id,
        "external_id": game.external_id,
        "name": game.name,
        "release_date": game.release_date.isoformat() if game.release_date else None,
        "followers": game.followers,
        "store_url": game.store_url,
        "image_url": game.image_url,
        "short_description": game.short_description,
        "platforms": list(game.platforms),
        "tags": list(game.tags),
    }


def _exit_on_store_error(exc: DatabaseError) -> typer.Exit:
    typer.echo(f"カタログストアを読み込めません: {exc}")
    return typer.Exit(code=1)


def _calendar_to_dict(calendar: ReleaseCalendar) -> dict[str, object]:
    return {
        "month": calendar.label,
        "days": [{"date": day.day.isoformat(), "count": day.count} for day in calendar.days],
    }


def _render_games(games: Iterable[CatalogGame], title: str) -> None:
    console = Console(force_terminal=False, color_system=None)
    table = Table(title=title)
    table.add_column("App ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Release")
    table.add_column("Platforms")
    table.add_column("Tags")
    table.add_column("Followers", justify="right")

    for game in games:
        table.add_row(
            str(game.external_id) if game.external_id is not None else "-",
            game.name,
            game.release_date.isoformat() if game.release_date else "-",
            ", ".join(game.platforms) or "-",
            ", ".join(game.tags) or "-",
            str(game.followers) if game.followers is not None else "-",
        )

    console.print(table)


def games(
    month: MonthOption,
    platform: PlatformOption = None,
    tag: TagOption = None,
    output: OutputOption = OutputFormat.TABLE,
) -> None:
    """指定月に発売されるゲームを一覧表示する。"""

    app_settings = prepare_settings()
    logger = get_logger("cli.games", month=month)
    query = _build_query(month, platform, tag)

    with open_stores(app_settings, logger) as stores:
        service = GameCatalogService(repository=stores.catalog, logger=logger)
        try:
            result = service.get_games(query)
        except DatabaseError as exc:
            raise _exit_on_store_error(exc) from exc

    if output is OutputFormat.JSON:
        echo_json([_game_to_dict(game) for game in result])
    else:
        _render_games(result, title=f"Releases {month}")


def calendar(
    month: MonthOption,
    platform: PlatformOption = None,
    tag: TagOption = None,
    output: OutputOption = OutputFormat.TABLE,
) -> None:
    """指定月の発売日ごとの件数を表示する。"""

    app_settings = prepare_settings()
    logger = get_logger("cli.calendar", month=month)
    query = _build_query(month, platform, tag)

    with open_stores(app_settings, logger) as stores:
        service = GameCatalogService(repository=stores.catalog, logger=logger)
        try:
            result = service.get_calendar(query)
        except DatabaseError as exc:
            raise _exit_on_store_error(exc) from exc

    if output is OutputFormat.JSON:
        echo_json(_calendar_to_dict(result))
        return

    console = Console(force_terminal=False, color_system=None)
    table = Table(title=f"Release calendar {result.label}")
    table.add_column("Date", style="cyan")
    table.add_column("Releases", justify="right")
    for day in result.days:
        table.add_row(day.day.isoformat(), str(day.count))
    console.print(table)


def game(
    app_id: Annotated[int, typer.Option("--app-id", "-a", help="外部カタログ ID")],
    output: OutputOption = OutputFormat.TABLE,
) -> None:
    """外部カタログ ID を指定してゲームを 1 件表示する。"""

    app_settings = prepare_settings()
    logger = get_logger("cli.game", app_id=app_id)

    with open_stores(app_settings, logger) as stores:
        try:
            found = GameCatalogService(repository=stores.catalog, logger=logger).get_game(app_id)
        except NotFoundError as exc:
            typer.echo(str(exc))
            raise typer.Exit(code=1) from exc
        except DatabaseError as exc:
            raise _exit_on_store_error(exc) from exc

    if output is OutputFormat.JSON:
        echo_json(_game_to_dict(found))
    else:
        _render_games([found], title=found.name)
