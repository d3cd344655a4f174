"""SQLAlchemy ベースクラス。"""

from __future__ import annotations

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# SQLite の batch migration で制約を名前で特定できるようにする
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """カタログストアの全 ORM モデルのベース。"""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
