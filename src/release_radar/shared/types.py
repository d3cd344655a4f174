"""共有型・ユーティリティ。"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(item) for item in value]
    return value


@dataclass(slots=True)
class ValueObject:
    """DTO や VO のベースクラス。"""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json_dict(self) -> dict[str, Any]:
        """日付は ISO 8601、Enum は値、タプルはリストへ変換した dict を返す。"""

        return _jsonable(asdict(self))


@dataclass(slots=True)
class DTO(ValueObject):
    """データ転送オブジェクト用ベース。"""


def utc_now() -> datetime:
    """UTC の現在時刻を返す。"""

    return datetime.now(UTC)


__all__ = [
    "DTO",
    "ValueObject",
    "utc_now",
]
