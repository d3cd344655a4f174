"""カタログストア向けのリポジトリ実装。"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Collection, Sequence
from datetime import date
from uuid import uuid4

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from release_radar.core.analytics.models import GenreAggregate
from release_radar.core.catalog.models import PLATFORMS, CatalogGame
from release_radar.infra.db.models import Game, GameTag, Tag
from release_radar.infra.db.session import DatabaseError
from release_radar.infra.steam.dto import SteamAppDetail
from release_radar.shared.logging import get_logger

BoundLogger = structlog.stdlib.BoundLogger

_UPSERT_ATTEMPTS = 2


class SQLAlchemyCatalogRepository:
    """games / tags / game_tags を扱う DAO。

    1 ゲームの upsert は 1 トランザクションで完結させ、
    タグのリンクは毎回削除してから張り直す (置き換えセマンティクス)。
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._logger = logger or get_logger(__name__, component="catalog-repository")

    def upsert_game(self, detail: SteamAppDetail) -> CatalogGame:
        """external id をキーにゲームを作成/更新し、タグ集合を置き換える。"""

        for attempt in range(1, _UPSERT_ATTEMPTS + 1):
            try:
                with self._session_factory.begin() as session:
                    return self._upsert(session, detail)
            except IntegrityError as exc:
                # 並行してタグやゲームが作られた場合はトランザクションごとやり直す
                if attempt >= _UPSERT_ATTEMPTS:
                    msg = f"Failed to upsert game {detail.app_id}"
                    raise DatabaseError(msg) from exc
                self._logger.warning(
                    "catalog_upsert_conflict_retry",
                    external_id=detail.app_id,
                    attempt=attempt,
                )
            except SQLAlchemyError as exc:
                msg = f"Failed to upsert game {detail.app_id}"
                raise DatabaseError(msg) from exc
        raise DatabaseError(f"Failed to upsert game {detail.app_id}")  # pragma: no cover

    def prune_month(
        self,
        start: date,
        end: date,
        *,
        keep_external_ids: Collection[int],
    ) -> int:
        """`[start, end)` に発売日を持ち、keep に含まれないゲームを削除する。"""

        try:
            with self._session_factory.begin() as session:
                stmt = select(Game.id).where(
                    Game.release_date.is_not(None),
                    Game.release_date >= start,
                    Game.release_date < end,
                )
                if keep_external_ids:
                    stmt = stmt.where(
                        or_(
                            Game.external_id.is_(None),
                            Game.external_id.not_in(list(keep_external_ids)),
                        )
                    )
                stale_ids = list(session.scalars(stmt).all())
                if not stale_ids:
                    return 0
                session.execute(delete(GameTag).where(GameTag.game_id.in_(stale_ids)))
                session.execute(delete(Game).where(Game.id.in_(stale_ids)))
        except SQLAlchemyError as exc:
            raise DatabaseError("Failed to prune catalog window") from exc

        self._logger.info(
            "catalog_pruned",
            start=start.isoformat(),
            end=end.isoformat(),
            removed=len(stale_ids),
        )
        return len(stale_ids)

    def list_games(
        self,
        start: date,
        end: date,
        *,
        platforms: Sequence[str] = (),
        tags: Sequence[str] = (),
    ) -> list[CatalogGame]:
        """発売日が `[start, end)` のゲームを発売日・名前順で返す。"""

        stmt = select(Game).where(
            Game.release_date.is_not(None),
            Game.release_date >= start,
            Game.release_date < end,
        )
        selected_platforms = [name for name in platforms if name in PLATFORMS]
        if selected_platforms:
            stmt = stmt.where(
                or_(*(getattr(Game, name).is_(True) for name in selected_platforms))
            )
        if tags:
            lowered = [tag.lower() for tag in tags]
            tagged = (
                select(GameTag.game_id)
                .join(Tag, Tag.id == GameTag.tag_id)
                .where(func.lower(Tag.name).in_(lowered))
            )
            stmt = stmt.where(Game.id.in_(tagged))
        stmt = stmt.order_by(Game.release_date, Game.name, Game.id)

        try:
            with self._session_factory() as session:
                games = session.scalars(stmt).all()
                tag_map = self._load_tags(session, [game.id for game in games])
        except SQLAlchemyError as exc:
            raise DatabaseError("Failed to list catalog games") from exc

        return [self._to_catalog_game(game, tag_map.get(game.id, ())) for game in games]

    def get_by_external_id(self, external_id: int) -> CatalogGame | None:
        try:
            with self._session_factory() as session:
                game = session.scalar(select(Game).where(Game.external_id == external_id))
                if game is None:
                    return None
                tag_map = self._load_tags(session, [game.id])
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to load game {external_id}") from exc
        return self._to_catalog_game(game, tag_map.get(game.id, ()))

    def top_genres(self, start: date, end: date, *, limit: int) -> tuple[GenreAggregate, ...]:
        """カタログ上のタグ別集計。分析ストアと同じ並び順で返す。"""

        games = func.count(func.distinct(Game.id)).label("games")
        avg_followers = func.avg(func.coalesce(Game.followers, 0)).label("avg_followers")
        stmt = (
            select(Tag.name, games, avg_followers)
            .select_from(GameTag)
            .join(Game, Game.id == GameTag.game_id)
            .join(Tag, Tag.id == GameTag.tag_id)
            .where(
                Game.release_date.is_not(None),
                Game.release_date >= start,
                Game.release_date < end,
            )
            .group_by(Tag.name)
            .order_by(games.desc(), avg_followers.desc(), Tag.name.asc())
            .limit(limit)
        )
        try:
            with self._session_factory() as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise DatabaseError("Failed to aggregate catalog genres") from exc

        return tuple(
            GenreAggregate(
                genre=str(name),
                games=int(count),
                avg_followers=float(average or 0.0),
            )
            for name, count, average in rows
        )

    def _upsert(self, session: Session, detail: SteamAppDetail) -> CatalogGame:
        game = session.scalar(select(Game).where(Game.external_id == detail.app_id))
        if game is None:
            game = Game(id=str(uuid4()), external_id=detail.app_id, name=detail.name)
            session.add(game)

        game.name = detail.name
        game.release_date = detail.release_date
        game.followers = detail.followers
        game.store_url = detail.store_url
        game.image_url = detail.image_url
        game.short_description = detail.short_description
        game.windows = detail.windows
        game.mac = detail.mac
        game.linux = detail.linux
        session.flush()

        session.execute(delete(GameTag).where(GameTag.game_id == game.id))
        tag_ids = self._ensure_tags(session, detail.tags)
        for position, name in enumerate(detail.tags):
            session.add(GameTag(game_id=game.id, tag_id=tag_ids[name], position=position))
        session.flush()

        return self._to_catalog_game(game, detail.tags)

    def _ensure_tags(self, session: Session, names: Sequence[str]) -> dict[str, int]:
        if not names:
            return {}
        existing = session.execute(select(Tag.name, Tag.id).where(Tag.name.in_(list(names))))
        tag_ids = {str(name): int(tag_id) for name, tag_id in existing}
        for name in names:
            if name in tag_ids:
                continue
            tag = Tag(name=name)
            session.add(tag)
            session.flush()
            tag_ids[name] = tag.id
        return tag_ids

    def _load_tags(self, session: Session, game_ids: Sequence[str]) -> dict[str, tuple[str, ...]]:
        if not game_ids:
            return {}
        stmt = (
            select(GameTag.game_id, Tag.name)
            .join(Tag, Tag.id == GameTag.tag_id)
            .where(GameTag.game_id.in_(list(game_ids)))
            .order_by(GameTag.game_id, GameTag.position, Tag.name)
        )
        grouped: dict[str, list[str]] = defaultdict(list)
        for game_id, name in session.execute(stmt):
            grouped[str(game_id)].append(str(name))
        return {game_id: tuple(names) for game_id, names in grouped.items()}

    @staticmethod
    def _to_catalog_game(game: Game, tags: Sequence[str]) -> CatalogGame:
        return CatalogGame(
            id=game.id,
            name=game.name,
            external_id=game.external_id,
            release_date=game.release_date,
            followers=game.followers,
            store_url=game.store_url,
            image_url=game.image_url,
            short_description=game.short_description,
            windows=bool(game.windows),
            mac=bool(game.mac),
            linux=bool(game.linux),
            tags=tuple(tags),
        )


__all__ = ["SQLAlchemyCatalogRepository"]
