"""スレッド間で共有するキャンセルシグナル。"""

from __future__ import annotations

import threading

from .exceptions import OperationCancelledError


class CancellationToken:
    """長時間処理へ渡す協調的キャンセルトークン。

    呼び出し側が `cancel()` すると、処理側は次のチェックポイントで
    `OperationCancelledError` を送出して中断する。コミット済みの変更は戻さない。
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        self._reason = reason
        self._event.set()

    def raise_if_cancelled(self, stage: str | None = None) -> None:
        if not self._event.is_set():
            return
        detail = self._reason or "cancelled"
        message = f"{stage}: {detail}" if stage else detail
        raise OperationCancelledError(message)

    def wait(self, timeout: float) -> bool:
        """最大 `timeout` 秒待機し、その間にキャンセルされたら True を返す。"""

        return self._event.wait(timeout)


__all__ = ["CancellationToken"]
