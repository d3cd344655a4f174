"""同一月の同期を直列化するためのプロセス内リース。"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date

from release_radar.shared.exceptions import SyncInProgressError
from release_radar.shared.periods import format_month, month_start


class MonthLeaseRegistry:
    """月ごとに 1 本のロックを払い出すレジストリ。

    別の月の同期は並行して進められる。プロセスをまたぐ排他は扱わない。
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[date, threading.Lock] = {}

    def _lock_for(self, month: date) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(month, threading.Lock())

    def is_held(self, month: date) -> bool:
        return self._lock_for(month_start(month)).locked()

    @contextmanager
    def hold(self, month: date, *, timeout: float = 0.0) -> Iterator[date]:
        """リースを取得して月初日を返す。取得できなければ SyncInProgressError。"""

        key = month_start(month)
        lock = self._lock_for(key)
        acquired = lock.acquire(timeout=timeout) if timeout > 0 else lock.acquire(blocking=False)
        if not acquired:
            raise SyncInProgressError(f"sync for {format_month(key)} is already running")
        try:
            yield key
        finally:
            lock.release()


default_lease_registry = MonthLeaseRegistry()


__all__ = ["MonthLeaseRegistry", "default_lease_registry"]
