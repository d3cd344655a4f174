"""共有レイヤの公開インターフェース。"""

from .cancellation import CancellationToken
from .config import AppSettings, get_settings
from .exceptions import (
    BaseAppError,
    ConfigurationError,
    DomainError,
    ItemEnrichmentFailedError,
    NotFoundError,
    OperationCancelledError,
    QueryValidationError,
    Result,
    SinkUnavailableError,
    SourceUnavailableError,
    SyncInProgressError,
)
from .logging import configure_logging, get_logger
from .periods import format_month, month_start, month_window, parse_month, trailing_months
from .types import DTO, ValueObject, utc_now

__all__ = [
    "AppSettings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "BaseAppError",
    "CancellationToken",
    "ConfigurationError",
    "DomainError",
    "ItemEnrichmentFailedError",
    "NotFoundError",
    "OperationCancelledError",
    "QueryValidationError",
    "Result",
    "SinkUnavailableError",
    "SourceUnavailableError",
    "SyncInProgressError",
    "DTO",
    "ValueObject",
    "utc_now",
    "format_month",
    "month_start",
    "month_window",
    "parse_month",
    "trailing_months",
]
