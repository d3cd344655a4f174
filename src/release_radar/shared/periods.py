"""月単位の期間計算ユーティリティ。

同期・一覧・集計のすべてが「月初日に正規化した月」と
半開区間 `[start, end)` を前提にするため、計算はここへ集約する。
"""

from __future__ import annotations

import re
from datetime import date, datetime

from .exceptions import QueryValidationError

_MONTH_PATTERN = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{1,2})(?:-(?P<day>\d{1,2}))?$")


def month_start(value: date | datetime) -> date:
    """任意の日付をその月の 1 日へ正規化する。"""

    if isinstance(value, datetime):
        value = value.date()
    return value.replace(day=1)


def add_months(value: date, months: int) -> date:
    """月初日に対して月数を加減算する。"""

    index = value.year * 12 + (value.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_window(value: date | datetime) -> tuple[date, date]:
    """対象月の半開区間 `[start, end)` を返す。"""

    start = month_start(value)
    return start, add_months(start, 1)


def trailing_months(current: date | datetime, count: int) -> tuple[date, ...]:
    """`current` の月で終わる直近 `count` か月の月初日を古い順に返す。"""

    if count < 1:
        msg = "count must be >= 1"
        raise ValueError(msg)
    last = month_start(current)
    return tuple(add_months(last, offset) for offset in range(-(count - 1), 1))


def format_month(value: date) -> str:
    return value.strftime("%Y-%m")


def parse_month(raw: str) -> date:
    """`YYYY-MM` または `YYYY-MM-DD` を月初日に変換する。"""

    match = _MONTH_PATTERN.match(raw.strip()) if raw else None
    if match is None:
        raise QueryValidationError(f"month must be YYYY-MM: {raw!r}")

    day = int(match.group("day") or 1)
    try:
        parsed = date(int(match.group("year")), int(match.group("month")), day)
    except ValueError as exc:
        raise QueryValidationError(f"month must be YYYY-MM: {raw!r}") from exc
    return month_start(parsed)


__all__ = [
    "add_months",
    "format_month",
    "month_start",
    "month_window",
    "parse_month",
    "trailing_months",
]
