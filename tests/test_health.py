"""
ENDPOINT HEALTH TESTS

Run:
    python -m pytest tests/test_health.py -v
"""
import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

NOW_MS = 1_700_000_000_000


def result(endpoint="account", payload=None, error=None, last_success_ms=None, seq=1, loading=False):
    from loopwatch.core.models import PollResult
    return PollResult(
        endpoint=endpoint,
        payload=payload,
        error=error,
        last_success_ms=last_success_ms,
        is_loading=loading,
        applied_seq=seq,
    )


class TestEndpointHealth:

    def test_first_poll_pending_is_unknown(self):
        from loopwatch.core.models import PollResult
        from loopwatch.health.monitor import HealthStatus, endpoint_health

        assert endpoint_health(PollResult(endpoint="status"), 15, NOW_MS).status == HealthStatus.UNKNOWN
        assert endpoint_health(None, 15, NOW_MS).status == HealthStatus.UNKNOWN

    def test_fresh_success_is_healthy(self):
        from loopwatch.health.monitor import HealthStatus, endpoint_health

        health = endpoint_health(result(payload={}, last_success_ms=NOW_MS - 1000), 30, NOW_MS)
        assert health.status == HealthStatus.HEALTHY
        assert health.age_ms == 1000
        assert health.is_healthy

    def test_error_with_last_known_data_is_degraded(self):
        from loopwatch.health.monitor import HealthStatus, endpoint_health

        health = endpoint_health(result(payload={}, error="500: down", last_success_ms=NOW_MS), 30, NOW_MS)
        assert health.status == HealthStatus.DEGRADED
        assert health.error == "500: down"

    def test_error_without_data_is_unhealthy(self):
        from loopwatch.health.monitor import HealthStatus, endpoint_health

        health = endpoint_health(result(error="ConnectError: refused"), 30, NOW_MS)
        assert health.status == HealthStatus.UNHEALTHY

    def test_stale_only_after_failed_poll(self):
        from loopwatch.health.monitor import HealthStatus, endpoint_health

        quiet = endpoint_health(result(payload={}, last_success_ms=NOW_MS - 600_000), 30, NOW_MS)
        recent = endpoint_health(result(payload={}, error="down", last_success_ms=NOW_MS - 30_000), 30, NOW_MS)
        stale = endpoint_health(result(payload={}, error="down", last_success_ms=NOW_MS - 30_001), 30, NOW_MS)

        assert not quiet.stale
        assert quiet.status == HealthStatus.HEALTHY
        assert not recent.stale
        assert stale.stale
        assert stale.status == HealthStatus.DEGRADED


class TestCheckHealth:

    def test_overall_is_worst(self):
        from loopwatch.collectors.endpoints import build_endpoints
        from loopwatch.health.monitor import HealthStatus, check_health

        endpoints = build_endpoints()
        results = {name: result(name, payload={}, last_success_ms=NOW_MS) for name in endpoints}
        assert check_health(results, endpoints, NOW_MS).status == HealthStatus.HEALTHY

        results["trades"] = result("trades", payload={}, error="502: bad gateway", last_success_ms=NOW_MS)
        report = check_health(results, endpoints, NOW_MS)
        assert report.status == HealthStatus.DEGRADED
        assert report.alerts == ["ENDPOINT_ERROR: trades 502: bad gateway"]

        results["status"] = result("status", error="ConnectError: refused")
        report = check_health(results, endpoints, NOW_MS)
        assert report.status == HealthStatus.UNHEALTHY
        assert "ENDPOINT_DOWN: status ConnectError: refused" in report.alerts

    def test_stale_alert(self):
        from loopwatch.collectors.endpoints import build_endpoints
        from loopwatch.health.monitor import check_health

        endpoints = {"account": build_endpoints()["account"]}
        failing = result(payload={}, error="down", last_success_ms=NOW_MS - 120_000)
        report = check_health({"account": failing}, endpoints, NOW_MS)

        assert report.alerts == ["STALE_ENDPOINT: account no fresh data for 120000ms"]

    def test_disabled_endpoints_are_skipped(self):
        from config import Settings
        from loopwatch.collectors.endpoints import build_endpoints
        from loopwatch.health.monitor import check_health

        endpoints = build_endpoints(Settings(DISABLED_ENDPOINTS=["decisions"]))
        report = check_health({}, endpoints, NOW_MS)

        assert "decisions" not in report.endpoints
        assert set(report.endpoints) == set(endpoints) - {"decisions"}

    def test_to_dict(self):
        from loopwatch.collectors.endpoints import build_endpoints
        from loopwatch.health.monitor import check_health

        endpoints = build_endpoints()
        data = check_health({}, endpoints, NOW_MS).to_dict()

        assert data["status"] == "unknown"
        assert data["timestamp_ms"] == NOW_MS
        assert data["endpoints"]["status"]["name"] == "status"
        assert data["alerts"] == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
