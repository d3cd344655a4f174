"""Steam ストア向け infra 層パッケージ。"""

from .client import (
    CatalogSourceProtocol,
    SteamClientError,
    SteamNotFoundError,
    SteamRateLimitError,
    SteamRequestError,
    SteamRetryConfig,
    SteamStoreClient,
    build_steam_client,
)
from .dto import SteamAppDetail, UpcomingCandidate, parse_release_date

__all__ = [
    "CatalogSourceProtocol",
    "SteamAppDetail",
    "SteamClientError",
    "SteamNotFoundError",
    "SteamRateLimitError",
    "SteamRequestError",
    "SteamRetryConfig",
    "SteamStoreClient",
    "UpcomingCandidate",
    "build_steam_client",
    "parse_release_date",
]
