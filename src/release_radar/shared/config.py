"""アプリケーション全体で共有する設定ローダー。"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AnyHttpUrl, BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

EnvName = Literal["local", "test", "staging", "production"]


class SteamSettings(BaseModel):
    """Steam ストア(外部カタログソース)への接続設定。"""

    search_url: AnyHttpUrl = Field(
        "https://store.steampowered.com/search/",
        description="Coming Soon 一覧を取得する検索ページ",
    )
    store_url: AnyHttpUrl = Field(
        "https://store.steampowered.com/api",
        description="appdetails API のベース URL",
    )
    app_url_template: str = Field(
        "https://store.steampowered.com/app/{app_id}/",
        description="ストアページ URL のテンプレート",
    )
    country_code: str = Field("us", description="価格・地域判定に使う国コード")
    language: str = Field("english", description="説明文の言語")
    timeout_seconds: float = Field(10.0, gt=0, le=120, description="HTTP タイムアウト秒数")
    discovery_limit: int = Field(50, ge=1, le=500, description="1 回の同期で扱う候補の上限")
    max_pages: int = Field(5, ge=1, le=50, description="検索ページを辿る最大ページ数")
    max_attempts: int = Field(3, ge=1, le=10, description="リトライを含めた最大試行回数")
    backoff_factor: float = Field(0.5, ge=0, description="リトライ待機秒数の係数")


class StorageSettings(BaseModel):
    """カタログ(リレーショナル)ストアの設定。"""

    sqlite_path: Path = Field(Path("./var/release_radar.db"), description="SQLite DB のパス")


class AnalyticsSettings(BaseModel):
    """分析ストア(DuckDB)の設定。"""

    duckdb_path: Path = Field(
        Path("./var/release_radar_analytics.duckdb"), description="DuckDB ファイルのパス"
    )


class SyncSettings(BaseModel):
    """同期処理の並列度とリース設定。"""

    max_concurrency: int = Field(4, ge=1, le=32, description="詳細取得の同時実行数")
    lease_timeout_seconds: float = Field(
        0.0,
        ge=0,
        description="同一月の同期リースを待つ秒数 (0 は待たずに失敗)",
    )


class AppSettings(BaseSettings):
    """共有設定。`.env` 読み込みと環境変数バリデーションを担う。"""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: EnvName = Field("local", description="実行環境識別子")
    log_level: str = Field("INFO", description="ルートロガーのログレベル")
    log_json: bool = Field(False, description="JSON 形式でログを出力する")
    steam: SteamSettings = Field(default_factory=SteamSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """設定をロードし、再利用する。

    LRU キャッシュによりプロセス内での重複読み込みを防ぎ、
    `pytest` などから `get_settings.cache_clear()` を呼び出すことで再読込できる。
    """

    try:
        return AppSettings()
    except ValidationError as exc:  # pragma: no cover - ValidationError carries context
        raise ConfigurationError(str(exc)) from exc


__all__ = [
    "AnalyticsSettings",
    "AppSettings",
    "EnvName",
    "SteamSettings",
    "StorageSettings",
    "SyncSettings",
    "get_settings",
]
