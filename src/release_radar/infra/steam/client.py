"""Steam ストア(外部カタログソース)クライアント実装。"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol

import httpx

from release_radar.infra.steam.dto import (
    SteamAppDetail,
    UpcomingCandidate,
    parse_app_details,
    parse_search_results,
)
from release_radar.shared.cancellation import CancellationToken
from release_radar.shared.config import AppSettings, get_settings
from release_radar.shared.exceptions import BaseAppError, SourceUnavailableError
from release_radar.shared.logging import get_logger


@dataclass(slots=True)
class SteamRetryConfig:
    """リトライ・レート制御の設定。"""

    max_attempts: int = 3
    backoff_factor: float = 0.5
    retriable_statuses: tuple[int, ...] = (429, 500, 502, 503, 504)


class SteamClientError(BaseAppError):
    """Steam クライアント共通の例外。"""


class SteamRateLimitError(SteamClientError):
    """レート超過に起因するエラー。"""


class SteamRequestError(SteamClientError):
    """リトライ不能な HTTP エラー、タイムアウト、不正なレスポンス。"""


class SteamNotFoundError(SteamClientError):
    """appdetails が `success=false` を返した。"""


class CatalogSourceProtocol(Protocol):
    """core 層から利用する外部カタログソースのプロトコル。"""

    def list_upcoming(
        self,
        start: date,
        end: date,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> tuple[UpcomingCandidate, ...]:
        """`[start, end)` に発売予定の候補を返す。失敗時は SourceUnavailableError。"""

    def fetch_detail(
        self,
        app_id: int,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> SteamAppDetail:
        """1 件分の詳細を返す。失敗時は SteamClientError。"""


class SteamStoreClient(CatalogSourceProtocol):
    """httpx で Steam ストアの検索ページと appdetails API を叩くクライアント。"""

    def __init__(
        self,
        *,
        search_url: str,
        store_url: str,
        app_url_template: str,
        country_code: str = "us",
        language: str = "english",
        timeout_seconds: float = 10.0,
        discovery_limit: int = 50,
        max_pages: int = 5,
        retry_config: SteamRetryConfig | None = None,
        http_client: httpx.Client | None = None,
        logger=None,
        sleep_func: Callable[[float], None] | None = None,
    ) -> None:
        self._search_url = search_url
        self._store_url = store_url.rstrip("/")
        self._app_url_template = app_url_template
        self._country_code = country_code
        self._language = language
        self._discovery_limit = discovery_limit
        self._max_pages = max_pages
        self._retry_config = retry_config or SteamRetryConfig()
        self._http = http_client or httpx.Client(
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
            headers={"User-Agent": "release-radar/0.1"},
        )
        self._sleep = sleep_func
        self._logger = logger or get_logger(__name__, component="steam-client")

    def list_upcoming(
        self,
        start: date,
        end: date,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> tuple[UpcomingCandidate, ...]:
        seen: set[int] = set()
        candidates: list[UpcomingCandidate] = []

        for page in range(1, self._max_pages + 1):
            try:
                response = self._request(
                    self._search_url,
                    params={
                        "filter": "comingsoon",
                        "sort_by": "Released_DESC",
                        "category1": "998",
                        "supportedlang": self._language,
                        "cc": self._country_code,
                        "page": page,
                    },
                    cancel_token=cancel_token,
                    stage="discovery",
                )
                rows = parse_search_results(response.text)
            except SteamClientError as exc:
                self._logger.error("steam_discovery_failed", page=page, error=str(exc))
                raise SourceUnavailableError(f"Steam discovery failed on page {page}") from exc

            if not rows:
                break

            for row in rows:
                if row.app_id in seen:
                    continue
                seen.add(row.app_id)
                tentative = row.tentative_release_date
                if tentative is not None and not (start <= tentative < end):
                    continue
                candidates.append(row)
                if len(candidates) >= self._discovery_limit:
                    break
            if len(candidates) >= self._discovery_limit:
                break

        self._logger.info(
            "steam_discovery_complete",
            start=start.isoformat(),
            end=end.isoformat(),
            candidates=len(candidates),
        )
        return tuple(candidates)

    def fetch_detail(
        self,
        app_id: int,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> SteamAppDetail:
        response = self._request(
            f"{self._store_url}/appdetails",
            params={"appids": app_id, "cc": self._country_code, "l": self._language},
            cancel_token=cancel_token,
            stage="enrichment",
        )
        try:
            detail = parse_app_details(
                response.content, app_id, app_url_template=self._app_url_template
            )
        except ValueError as exc:
            raise SteamRequestError(f"Failed to parse appdetails for {app_id}") from exc

        if detail is None:
            raise SteamNotFoundError(f"Steam app {app_id} is not available")
        return detail

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> SteamStoreClient:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()

    def _request(
        self,
        url: str,
        *,
        params: dict[str, Any],
        cancel_token: CancellationToken | None = None,
        stage: str | None = None,
    ) -> httpx.Response:
        attempt = 0
        while True:
            attempt += 1
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(stage)
            self._logger.debug("steam_request", url=url, attempt=attempt)
            try:
                response = self._http.get(url, params=params)
            except httpx.TransportError as exc:
                if attempt >= self._retry_config.max_attempts:
                    msg = f"Steam request failed ({exc.__class__.__name__})"
                    raise SteamRequestError(msg) from exc
                self._logger.warning(
                    "steam_request_retry",
                    url=url,
                    attempt=attempt,
                    error_type=exc.__class__.__name__,
                )
                self._backoff(self._retry_config.backoff_factor * attempt, cancel_token, stage)
                continue

            status_code = response.status_code
            if status_code < 400:
                return response
            if not self._should_retry(status_code, attempt):
                if status_code == 429:
                    raise SteamRateLimitError("Steam rate limit exceeded")
                raise SteamRequestError(f"Steam request failed (status={status_code})")

            self._logger.warning(
                "steam_request_retry",
                url=url,
                attempt=attempt,
                status_code=status_code,
            )
            self._backoff(self._retry_config.backoff_factor * attempt, cancel_token, stage)

    def _backoff(
        self,
        delay: float,
        cancel_token: CancellationToken | None,
        stage: str | None,
    ) -> None:
        # 注入された sleep があればそれを優先する(テスト用)
        if self._sleep is not None:
            self._sleep(delay)
        elif cancel_token is not None:
            cancel_token.wait(delay)
        else:
            time.sleep(delay)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(stage)

    def _should_retry(self, status_code: int, attempt: int) -> bool:
        if attempt >= self._retry_config.max_attempts:
            return False
        return status_code in self._retry_config.retriable_statuses


def build_steam_client(
    *,
    settings: AppSettings | None = None,
    logger=None,
) -> SteamStoreClient:
    """共有設定から Steam クライアントを構築するファクトリ。"""

    app_settings = settings or get_settings()
    steam = app_settings.steam
    return SteamStoreClient(
        search_url=str(steam.search_url),
        store_url=str(steam.store_url),
        app_url_template=steam.app_url_template,
        country_code=steam.country_code,
        language=steam.language,
        timeout_seconds=steam.timeout_seconds,
        discovery_limit=steam.discovery_limit,
        max_pages=steam.max_pages,
        retry_config=SteamRetryConfig(
            max_attempts=steam.max_attempts,
            backoff_factor=steam.backoff_factor,
        ),
        logger=logger,
    )


__all__ = [
    "CatalogSourceProtocol",
    "SteamClientError",
    "SteamNotFoundError",
    "SteamRateLimitError",
    "SteamRequestError",
    "SteamRetryConfig",
    "SteamStoreClient",
    "build_steam_client",
]
