"""Steam ストアの DTO およびレスポンス整形ユーティリティ。"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from bs4 import BeautifulSoup

from release_radar.shared.types import DTO

_APP_HREF_PATTERN = re.compile(r"/app/(\d+)")
_FULL_DATE_FORMATS = ("%d %b, %Y", "%b %d, %Y", "%d %B, %Y", "%B %d, %Y", "%Y-%m-%d")
_MONTH_DATE_FORMATS = ("%B %Y", "%b %Y")


@dataclass(slots=True)
class UpcomingCandidate(DTO):
    """検索結果から得た同期候補。"""

    app_id: int
    tentative_release_date: date | None = None
    title: str | None = None


@dataclass(slots=True)
class SteamAppDetail(DTO):
    """appdetails から抽出したゲーム詳細。"""

    app_id: int
    name: str
    release_date: date | None = None
    followers: int | None = None
    store_url: str | None = None
    image_url: str | None = None
    short_description: str | None = None
    windows: bool = False
    mac: bool = False
    linux: bool = False
    tags: tuple[str, ...] = ()


def parse_release_date(raw: Any) -> date | None:
    """ストア表記のリリース日を日付に変換する。

    "Coming soon" や "Q3 2025" のように日付を確定できない表記は None。
    "March 2025" のような月表記は月初日として扱う。
    """

    if not isinstance(raw, str):
        return None
    text = " ".join(raw.replace("\xa0", " ").split())
    if not text:
        return None

    for fmt in _FULL_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    for fmt in _MONTH_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().replace(day=1)
        except ValueError:
            continue
    return None


def parse_search_results(html: str) -> tuple[UpcomingCandidate, ...]:
    """検索ページの HTML から候補 (app id, 仮リリース日) を抽出する。"""

    if not html:
        return ()

    soup = BeautifulSoup(html, "html.parser")
    candidates: list[UpcomingCandidate] = []
    for row in soup.select("a.search_result_row"):
        app_id = _extract_app_id(row.get("data-ds-appid"), row.get("href"))
        if app_id is None:
            continue
        released = row.select_one(".search_released")
        title = row.select_one(".title")
        candidates.append(
            UpcomingCandidate(
                app_id=app_id,
                tentative_release_date=parse_release_date(
                    released.get_text(" ", strip=True) if released else None
                ),
                title=title.get_text(strip=True) if title else None,
            )
        )
    return tuple(candidates)


def parse_app_details(
    payload: bytes | str | dict[str, Any],
    app_id: int,
    *,
    app_url_template: str,
) -> SteamAppDetail | None:
    """appdetails レスポンスを DTO に変換する。`success=false` の場合は None。"""

    decoded = _decode(payload)
    if not isinstance(decoded, dict):
        raise ValueError("appdetails payload must be an object")

    envelope = decoded.get(str(app_id))
    if not isinstance(envelope, dict):
        raise ValueError(f"appdetails payload does not contain app {app_id}")
    if not envelope.get("success"):
        return None

    data = envelope.get("data")
    if not isinstance(data, dict):
        raise ValueError("appdetails `data` must be an object")

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError("appdetails record must contain `name`")

    platforms = data.get("platforms") if isinstance(data.get("platforms"), dict) else {}
    release = data.get("release_date") if isinstance(data.get("release_date"), dict) else {}

    return SteamAppDetail(
        app_id=app_id,
        name=name.strip(),
        release_date=parse_release_date(release.get("date")),
        followers=_coerce_followers(data.get("recommendations")),
        store_url=app_url_template.format(app_id=app_id),
        image_url=_optional_str(data.get("header_image")),
        short_description=_optional_str(data.get("short_description")),
        windows=bool(platforms.get("windows", False)),
        mac=bool(platforms.get("mac", False)),
        linux=bool(platforms.get("linux", False)),
        tags=_coerce_tags(data.get("genres")),
    )


def _decode(payload: bytes | str | dict[str, Any]) -> Any:
    if isinstance(payload, dict):
        return payload
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError("Invalid UTF-8 payload for appdetails") from exc
    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ValueError("Invalid JSON payload for appdetails") from exc


def _extract_app_id(ds_appid: Any, href: Any) -> int | None:
    if isinstance(ds_appid, str) and ds_appid.isdigit():
        return int(ds_appid)
    if isinstance(href, str):
        match = _APP_HREF_PATTERN.search(href)
        if match:
            return int(match.group(1))
    return None


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _coerce_followers(raw: Any) -> int | None:
    # 公開 API にフォロワー数は無いため、推奨数を近似値として扱う
    if not isinstance(raw, dict):
        return None
    total = raw.get("total")
    if isinstance(total, bool):
        return None
    if isinstance(total, int) and total >= 0:
        return total
    return None


def _coerce_tags(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, Iterable) or isinstance(raw, (str, bytes, dict)):
        return ()

    tags: list[str] = []
    for genre in raw:
        if not isinstance(genre, dict):
            continue
        description = genre.get("description")
        if not isinstance(description, str):
            continue
        name = description.strip()
        if name and name not in tags:
            tags.append(name)
    return tuple(tags)


__all__ = [
    "SteamAppDetail",
    "UpcomingCandidate",
    "parse_app_details",
    "parse_release_date",
    "parse_search_results",
]
