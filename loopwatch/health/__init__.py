"""Endpoint health"""
from .monitor import HealthStatus, EndpointHealth, MonitorHealth, check_health, endpoint_health

__all__ = ["HealthStatus", "EndpointHealth", "MonitorHealth", "check_health", "endpoint_health"]
