"""カタログモデルの制約テスト"""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from release_radar.infra.db.models import Base, Game, GameTag, Tag


@pytest.fixture
def db_session():
    """テスト用のインメモリデータベースセッションを作成"""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    session = Session(engine)
    yield session
    session.close()


def test_game_defaults(db_session: Session):
    """id は自動採番され、プラットフォームは既定で False"""
    game = Game(external_id=10, name="Alpha", release_date=date(2025, 3, 14))
    db_session.add(game)
    db_session.commit()

    stored = db_session.scalar(select(Game).where(Game.external_id == 10))
    assert stored is not None
    assert len(stored.id) == 36
    assert (stored.windows, stored.mac, stored.linux) == (False, False, False)
    assert stored.followers is None


def test_game_external_id_is_unique(db_session: Session):
    db_session.add(Game(external_id=10, name="Alpha"))
    db_session.commit()

    db_session.add(Game(external_id=10, name="Alpha again"))
    with pytest.raises(IntegrityError):
        db_session.commit()


def test_games_without_external_id_can_coexist(db_session: Session):
    db_session.add_all([Game(name="Manual one"), Game(name="Manual two")])
    db_session.commit()

    assert len(db_session.scalars(select(Game)).all()) == 2


def test_tag_name_is_unique_and_case_sensitive(db_session: Session):
    db_session.add_all([Tag(name="Indie"), Tag(name="indie")])
    db_session.commit()

    db_session.add(Tag(name="Indie"))
    with pytest.raises(IntegrityError):
        db_session.commit()


def test_game_tag_pair_is_unique(db_session: Session):
    game = Game(external_id=1, name="Alpha")
    tag = Tag(name="Action")
    db_session.add_all([game, tag])
    db_session.flush()
    db_session.add(GameTag(game_id=game.id, tag_id=tag.id, position=0))
    db_session.commit()

    db_session.add(GameTag(game_id=game.id, tag_id=tag.id, position=1))
    with pytest.raises(IntegrityError):
        db_session.commit()
