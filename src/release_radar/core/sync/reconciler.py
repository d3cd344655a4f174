"""外部カタログソースとカタログストアを突き合わせるリコンサイラ。"""

from __future__ import annotations

from collections.abc import Collection, Iterator, Sequence
from contextlib import closing
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date
from typing import Protocol

import structlog

from release_radar.core.catalog.models import CatalogGame
from release_radar.core.sync.models import ReconcileOutcome, SkippedItem, SkipReason
from release_radar.infra.steam.client import (
    CatalogSourceProtocol,
    SteamClientError,
    SteamNotFoundError,
    SteamRateLimitError,
)
from release_radar.infra.steam.dto import SteamAppDetail, UpcomingCandidate
from release_radar.shared.cancellation import CancellationToken
from release_radar.shared.exceptions import ItemEnrichmentFailedError, Result
from release_radar.shared.logging import get_logger
from release_radar.shared.periods import format_month, month_window

BoundLogger = structlog.stdlib.BoundLogger

__all__ = ["CatalogReconciler", "CatalogWriterProtocol"]

_POLL_SECONDS = 0.25


class CatalogWriterProtocol(Protocol):
    """リコンサイラが書き込みに使うカタログストア。"""

    def upsert_game(self, detail: SteamAppDetail) -> CatalogGame:
        """external id をキーに作成/更新し、保存後のゲームを返す。"""

    def prune_month(
        self,
        start: date,
        end: date,
        *,
        keep_external_ids: Collection[int],
    ) -> int:
        """窓内で keep に含まれないゲームを削除し、削除件数を返す。"""


def _skip_reason(error: SteamClientError) -> SkipReason:
    if isinstance(error, SteamNotFoundError):
        return SkipReason.NOT_FOUND
    if isinstance(error, SteamRateLimitError):
        return SkipReason.RATE_LIMITED
    return SkipReason.FETCH_FAILED


@dataclass(slots=True)
class CatalogReconciler:
    """discovery → enrichment → upsert → prune を 1 か月分実行する。

    詳細取得はスレッドプールで最大 `max_concurrency` 件まで並行させ、
    upsert と prune は呼び出しスレッド上で順に実行する。
    discovery の失敗は SourceUnavailableError としてそのまま送出する
    (部分的な候補で prune すると正しいゲームを消してしまうため)。
    """

    source: CatalogSourceProtocol
    repository: CatalogWriterProtocol
    max_concurrency: int = 4
    logger: BoundLogger = field(
        default_factory=lambda: get_logger(__name__, component="reconciler")
    )

    def reconcile(
        self,
        month: date,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ReconcileOutcome:
        token = cancel_token or CancellationToken()
        start, end = month_window(month)
        log = self.logger.bind(month=format_month(start))

        token.raise_if_cancelled("discovery")
        candidates = self.source.list_upcoming(start, end, cancel_token=token)
        log.info("reconcile_discovered", candidates=len(candidates))

        games: list[CatalogGame] = []
        skipped: list[SkippedItem] = []
        with closing(self._enrich(candidates, token)) as results:
            for candidate, result in results:
                if result.is_err:
                    skipped.append(self._record_skip(candidate, result.unwrap_err(), log))
                    continue
                token.raise_if_cancelled("upsert")
                games.append(self.repository.upsert_game(result.unwrap()))

        token.raise_if_cancelled("prune")
        kept = {game.external_id for game in games if game.external_id is not None}
        pruned = self.repository.prune_month(start, end, keep_external_ids=kept)

        log.info(
            "reconcile_completed",
            upserted=len(games),
            pruned=pruned,
            skipped=len(skipped),
        )
        return ReconcileOutcome(
            month=start,
            discovered=len(candidates),
            games=tuple(games),
            pruned=pruned,
            skipped=tuple(sorted(skipped, key=lambda item: item.external_id)),
        )

    def _enrich(
        self,
        candidates: Sequence[UpcomingCandidate],
        token: CancellationToken,
    ) -> Iterator[tuple[UpcomingCandidate, Result[SteamAppDetail, ItemEnrichmentFailedError]]]:
        if not candidates:
            return

        pending = list(candidates)
        max_workers = max(1, min(self.max_concurrency, len(pending)))
        executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="enrich")
        in_flight: dict[Future[SteamAppDetail], UpcomingCandidate] = {}

        def _submit_next() -> None:
            candidate = pending.pop(0)
            future = executor.submit(self.source.fetch_detail, candidate.app_id, cancel_token=token)
            in_flight[future] = candidate

        try:
            while pending and len(in_flight) < max_workers:
                _submit_next()

            while in_flight:
                token.raise_if_cancelled("enrichment")
                done, _ = wait(set(in_flight), timeout=_POLL_SECONDS, return_when=FIRST_COMPLETED)
                for future in done:
                    candidate = in_flight.pop(future)
                    yield candidate, self._collect(candidate, future)
                    if pending and not token.is_cancelled:
                        _submit_next()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _record_skip(
        self,
        candidate: UpcomingCandidate,
        error: ItemEnrichmentFailedError,
        log: BoundLogger,
    ) -> SkippedItem:
        cause = error.__cause__
        reason = SkipReason.FETCH_FAILED
        if isinstance(cause, SteamClientError):
            reason = _skip_reason(cause)
        log.warning(
            "reconcile_item_skipped",
            external_id=candidate.app_id,
            reason=reason.value,
            error=str(error),
        )
        return SkippedItem(external_id=error.external_id, reason=reason, message=str(error))

    def _collect(
        self,
        candidate: UpcomingCandidate,
        future: Future[SteamAppDetail],
    ) -> Result[SteamAppDetail, ItemEnrichmentFailedError]:
        try:
            return Result.ok(future.result())
        except SteamClientError as exc:
            error = ItemEnrichmentFailedError(candidate.app_id, str(exc))
            error.__cause__ = exc
            return Result.err(error)
