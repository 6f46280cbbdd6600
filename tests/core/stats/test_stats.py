"""
tests/core/stats/test_stats.py - core/stats 테스트
"""

import threading
from unittest.mock import MagicMock, patch

from datadog_api_client.v2.model.metric_intake_type import MetricIntakeType

from core.config import Settings
from core.stats import MemoryStats, NullStats, Stats, build_stats
from core.stats.datadog import DatadogStats


class TestMemoryStats:
    """MemoryStats 테스트"""

    def test_inc_and_get(self):
        stats = MemoryStats()
        stats.inc_count("ecr.putimage.api.failure")
        stats.inc_count("ecr.putimage.api.failure")

        assert stats.get("ecr.putimage.api.failure") == 2
        assert stats.get("ecr.batchget.api.failure") == 0

    def test_prefix(self):
        """접두사가 이름에 붙음"""
        stats = MemoryStats(prefix="ci.")
        stats.inc_count("ecr.descimg.api.failure")

        assert stats.snapshot() == {"ci.ecr.descimg.api.failure": 1}
        assert stats.get("ecr.descimg.api.failure") == 1

    def test_reset_and_total(self):
        stats = MemoryStats()
        stats.inc_count("a")
        stats.inc_count("b")
        assert stats.total == 2

        stats.reset()
        assert stats.total == 0
        assert stats.snapshot() == {}

    def test_snapshot_is_copy(self):
        stats = MemoryStats()
        stats.inc_count("a")
        snapshot = stats.snapshot()
        snapshot["a"] = 100

        assert stats.get("a") == 1

    def test_concurrent_increment(self):
        """여러 스레드에서 동시에 증가해도 유실 없음"""
        stats = MemoryStats()

        def worker():
            for _ in range(1000):
                stats.inc_count("ecr.batchget.api.failure")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert stats.get("ecr.batchget.api.failure") == 8000

    def test_protocol(self):
        """Stats Protocol 만족"""
        assert isinstance(MemoryStats(), Stats)
        assert isinstance(NullStats(), Stats)


class TestNullStats:
    """NullStats 테스트"""

    def test_inc_count_noop(self):
        assert NullStats().inc_count("anything") is None


class TestBuildStats:
    """build_stats 팩토리 테스트"""

    def test_memory_default(self):
        stats = build_stats(Settings())
        assert isinstance(stats, MemoryStats)

    def test_memory_prefix(self):
        stats = build_stats(Settings(STATS_PREFIX="ci."))
        assert isinstance(stats, MemoryStats)
        assert stats.prefix == "ci."

    def test_null(self):
        assert isinstance(build_stats(Settings(STATS_BACKEND="null")), NullStats)

    def test_datadog(self):
        settings = Settings(STATS_BACKEND="datadog", DATADOG_API_KEY="k", DATADOG_APP_KEY="a", STATS_PREFIX="ci.")
        stats = build_stats(settings)

        assert isinstance(stats, DatadogStats)
        assert stats.prefix == "ci."

    def test_datadog_without_keys_falls_back(self):
        """키가 없으면 MemoryStats"""
        stats = build_stats(Settings(STATS_BACKEND="datadog"))
        assert isinstance(stats, MemoryStats)


class TestDatadogStats:
    """DatadogStats 테스트"""

    def test_inc_count_submits_count_series(self):
        """COUNT 타입 시리즈 전송"""
        stats = DatadogStats(api_key="k", app_key="a", prefix="ci.", tags=["service:ecr-tagger"])
        metrics_api = MagicMock()

        with patch.object(stats, "_get_metrics_api", return_value=metrics_api):
            stats.inc_count("ecr.putimage.api.failure")

        body = metrics_api.submit_metrics.call_args.kwargs["body"]
        series = body.series[0]
        assert series.metric == "ci.ecr.putimage.api.failure"
        assert series.type.value == MetricIntakeType.COUNT.value
        assert series.points[0].value == 1.0
        assert series.tags == ["service:ecr-tagger"]

    def test_submission_failure_is_logged(self, caplog):
        """전송 실패는 예외 없이 경고 로그"""
        stats = DatadogStats(api_key="k", app_key="a")
        metrics_api = MagicMock()
        metrics_api.submit_metrics.side_effect = RuntimeError("network down")

        with patch.object(stats, "_get_metrics_api", return_value=metrics_api):
            stats.inc_count("ecr.batchget.api.failure")

        assert "network down" in caplog.text

    def test_configuration(self):
        """API 키와 사이트 설정"""
        stats = DatadogStats(api_key="k", app_key="a", site="datadoghq.eu")
        configuration = stats._create_configuration()

        assert configuration.api_key["apiKeyAuth"] == "k"
        assert configuration.api_key["appKeyAuth"] == "a"
        assert configuration.server_variables["site"] == "datadoghq.eu"

    def test_close_without_client(self):
        stats = DatadogStats(api_key="k", app_key="a")
        stats.close()
        assert stats._metrics_api is None
