"""
Registry of the backend endpoints the monitor polls
"""
from typing import Dict, List

from config import settings as default_settings
from loopwatch.core.models import EndpointDescriptor


STATUS = "status"
ACCOUNT = "account"
POSITIONS = "positions"
DECISIONS = "decisions"
TRADES = "trades"
EQUITY_CURVE = "equity_curve"

ENDPOINT_NAMES = (STATUS, ACCOUNT, POSITIONS, DECISIONS, TRADES, EQUITY_CURVE)


def build_endpoints(config=None) -> Dict[str, EndpointDescriptor]:
    """Build the endpoint descriptors from settings, keyed by name"""
    config = config or default_settings
    disabled = set(config.DISABLED_ENDPOINTS)

    descriptors: List[EndpointDescriptor] = [
        EndpointDescriptor(STATUS, "/status", config.STATUS_POLL_INTERVAL_S),
        EndpointDescriptor(ACCOUNT, "/account", config.ACCOUNT_POLL_INTERVAL_S),
        EndpointDescriptor(POSITIONS, "/positions", config.POSITIONS_POLL_INTERVAL_S),
        EndpointDescriptor(
            DECISIONS,
            "/decisions?limit={limit}",
            config.DECISIONS_POLL_INTERVAL_S,
            params={"limit": config.DECISIONS_LIMIT},
        ),
        EndpointDescriptor(
            TRADES,
            "/trades?limit={limit}",
            config.TRADES_POLL_INTERVAL_S,
            params={"limit": config.TRADES_LIMIT},
        ),
        EndpointDescriptor(EQUITY_CURVE, "/equity-curve", config.EQUITY_CURVE_POLL_INTERVAL_S),
    ]

    return {
        d.name: EndpointDescriptor(
            name=d.name,
            url_template=d.url_template,
            refresh_interval_s=d.refresh_interval_s,
            enabled=d.name not in disabled,
            params=d.params,
        )
        for d in descriptors
    }


def enabled_endpoints(endpoints: Dict[str, EndpointDescriptor]) -> List[EndpointDescriptor]:
    return [d for d in endpoints.values() if d.enabled]

