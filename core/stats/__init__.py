"""
core/stats - 실패 카운터 싱크

Example:
    from core.config import Settings
    from core.stats import build_stats

    stats = build_stats(Settings.from_env())
    stats.inc_count("ecr.batchget.my-repo.failure")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .base import MemoryStats, NullStats, Stats

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger(__name__)

__all__ = [
    "Stats",
    "MemoryStats",
    "NullStats",
    "build_stats",
]


def build_stats(settings: Settings) -> Stats:
    """설정에 맞는 카운터 싱크 생성

    datadog 백엔드인데 키가 없으면 MemoryStats로 대체합니다.
    """
    backend = settings.STATS_BACKEND
    if backend == "null":
        return NullStats()

    if backend == "datadog":
        if settings.DATADOG_API_KEY and settings.DATADOG_APP_KEY:
            from .datadog import DatadogStats

            return DatadogStats(
                api_key=settings.DATADOG_API_KEY,
                app_key=settings.DATADOG_APP_KEY,
                site=settings.DATADOG_SITE,
                prefix=settings.STATS_PREFIX,
            )
        logger.warning("Datadog API 키 또는 APP 키가 설정되지 않음. 인메모리 카운터 사용")

    return MemoryStats(prefix=settings.STATS_PREFIX)
