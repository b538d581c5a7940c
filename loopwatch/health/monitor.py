"""
ENDPOINT HEALTH
Per-endpoint freshness and error state, rendered as the inline error indicator
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import structlog

from loopwatch.core.models import EndpointDescriptor, PollResult

logger = structlog.get_logger(__name__)


class HealthStatus(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


# Worst first
_SEVERITY = {
    HealthStatus.UNHEALTHY: 3,
    HealthStatus.DEGRADED: 2,
    HealthStatus.UNKNOWN: 1,
    HealthStatus.HEALTHY: 0,
}


@dataclass
class EndpointHealth:
    """Health of a single polled endpoint"""
    name: str
    status: HealthStatus
    error: Optional[str] = None
    last_success_ms: Optional[int] = None
    stale: bool = False
    age_ms: Optional[int] = None

    @property
    def is_healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "error": self.error,
            "last_success_ms": self.last_success_ms,
            "stale": self.stale,
            "age_ms": self.age_ms,
        }


@dataclass
class MonitorHealth:
    """Snapshot over all endpoints"""
    timestamp_ms: int
    status: HealthStatus
    endpoints: Dict[str, EndpointHealth] = field(default_factory=dict)
    alerts: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp_ms": self.timestamp_ms,
            "status": self.status.value,
            "endpoints": {name: h.to_dict() for name, h in self.endpoints.items()},
            "alerts": self.alerts,
        }


def endpoint_health(result: Optional[PollResult], interval_s: float, now_ms: int) -> EndpointHealth:
    """
    HEALTHY   - last poll succeeded and data is fresh
    DEGRADED  - failing or stale, but a last-known payload is still shown
    UNHEALTHY - failing and nothing has ever been received
    UNKNOWN   - no poll has completed yet
    """
    if result is None or (result.is_loading and result.applied_seq == 0):
        name = result.endpoint if result is not None else ""
        return EndpointHealth(name=name, status=HealthStatus.UNKNOWN)

    stale = result.is_stale(interval_s, now_ms)
    age_ms = now_ms - result.last_success_ms if result.last_success_ms is not None else None

    if result.error and not result.has_data:
        status = HealthStatus.UNHEALTHY
    elif result.error or stale:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.HEALTHY

    return EndpointHealth(
        name=result.endpoint,
        status=status,
        error=result.error,
        last_success_ms=result.last_success_ms,
        stale=stale,
        age_ms=age_ms,
    )


def check_health(
    results: Mapping[str, PollResult],
    endpoints: Mapping[str, EndpointDescriptor],
    now_ms: Optional[int] = None,
) -> MonitorHealth:
    """Health of every enabled endpoint; the overall status is the worst one"""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)

    per_endpoint: Dict[str, EndpointHealth] = {}
    alerts: List[str] = []
    overall = HealthStatus.HEALTHY

    for name, descriptor in endpoints.items():
        if not descriptor.enabled:
            continue
        health = endpoint_health(results.get(name), descriptor.refresh_interval_s, now_ms)
        health.name = name
        per_endpoint[name] = health

        if health.status == HealthStatus.UNHEALTHY:
            alerts.append(f"ENDPOINT_DOWN: {name} {health.error}")
        elif health.stale:
            alerts.append(f"STALE_ENDPOINT: {name} no fresh data for {health.age_ms}ms")
        elif health.error:
            alerts.append(f"ENDPOINT_ERROR: {name} {health.error}")

        if _SEVERITY[health.status] > _SEVERITY[overall]:
            overall = health.status

    return MonitorHealth(timestamp_ms=now_ms, status=overall, endpoints=per_endpoint, alerts=alerts)
