"""分析ストア (DuckDB) 向けインフラ。"""

from .store import DuckDBAnalyticsStore, build_analytics_store

__all__ = ["DuckDBAnalyticsStore", "build_analytics_store"]
