from __future__ import annotations

import typer

from release_radar.cli.commands import catalog, db, genres, sync
from release_radar.shared.logging import configure_logging

app = typer.Typer(help="Steam の発売予定ゲームを追跡するリリースレーダー CLI")

app.add_typer(sync.app, name="sync", help="指定月のカタログ同期")
app.command(name="games", help="月別のゲーム一覧")(catalog.games)
app.command(name="calendar", help="月別のリリースカレンダー")(catalog.calendar)
app.command(name="game", help="外部 ID を指定したゲーム詳細")(catalog.game)
app.add_typer(genres.app, name="genres", help="ジャンル集計")
app.add_typer(db.app, name="db", help="スキーマ管理")


def main() -> None:
    """エントリポイント。"""

    configure_logging()
    app()


if __name__ == "__main__":  # pragma: no cover - CLI エントリ
    main()
