"""
core/stats/datadog.py - Datadog 카운터 싱크

실패 카운터를 Datadog COUNT 메트릭으로 전송합니다.
전송 실패는 로그로만 남기며 Tagger 작업으로 전파하지 않습니다.

Usage:
    from core.stats.datadog import DatadogStats

    stats = DatadogStats(api_key="xxx", app_key="yyy")
    stats.inc_count("ecr.putimage.my-repo.failure")
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datadog_api_client import ApiClient

logger = logging.getLogger(__name__)


class DatadogStats:
    """Datadog 카운터 싱크

    API 클라이언트는 첫 전송 시점에 생성하고 재사용합니다.

    Attributes:
        prefix: 메트릭 이름 접두사
        tags: 모든 시리즈에 붙는 태그 (예: ["service:ecr-tagger"])
    """

    def __init__(
        self,
        api_key: str,
        app_key: str,
        site: str = "datadoghq.com",
        prefix: str = "",
        tags: list[str] | None = None,
    ) -> None:
        self._api_key = api_key
        self._app_key = app_key
        self._site = site
        self.prefix = prefix
        self.tags = tags or []
        self._api_client: ApiClient | None = None
        self._metrics_api: Any = None

    def _create_configuration(self):
        """Datadog API Configuration 생성"""
        from datadog_api_client import Configuration

        configuration = Configuration()
        configuration.api_key["apiKeyAuth"] = self._api_key
        configuration.api_key["appKeyAuth"] = self._app_key
        configuration.server_variables["site"] = self._site
        return configuration

    def _get_metrics_api(self) -> Any:
        from datadog_api_client import ApiClient
        from datadog_api_client.v2.api.metrics_api import MetricsApi

        if self._metrics_api is None:
            self._api_client = ApiClient(self._create_configuration())
            self._metrics_api = MetricsApi(self._api_client)
        return self._metrics_api

    def _build_payload(self, name: str, value: int, timestamp: int):
        from datadog_api_client.v2.model.metric_intake_type import MetricIntakeType
        from datadog_api_client.v2.model.metric_payload import MetricPayload
        from datadog_api_client.v2.model.metric_point import MetricPoint
        from datadog_api_client.v2.model.metric_series import MetricSeries

        return MetricPayload(
            series=[
                MetricSeries(
                    metric=f"{self.prefix}{name}",
                    type=MetricIntakeType.COUNT,
                    points=[MetricPoint(timestamp=timestamp, value=float(value))],
                    tags=self.tags,
                )
            ]
        )

    def inc_count(self, name: str) -> None:
        try:
            payload = self._build_payload(name, 1, int(time.time()))
            self._get_metrics_api().submit_metrics(body=payload)
        except Exception as e:
            logger.warning("Datadog 카운터 전송 실패 [%s%s]: %s", self.prefix, name, e)

    def close(self) -> None:
        """API 클라이언트 정리"""
        if self._api_client is not None:
            self._api_client.close()
        self._api_client = None
        self._metrics_api = None
