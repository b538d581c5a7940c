"""Backend endpoint polling"""
from .endpoints import build_endpoints, enabled_endpoints, ENDPOINT_NAMES
from .poller import EndpointPoller, Subscription, apply_outcome

__all__ = [
    "build_endpoints",
    "enabled_endpoints",
    "ENDPOINT_NAMES",
    "EndpointPoller",
    "Subscription",
    "apply_outcome",
]
