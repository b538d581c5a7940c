"""
Monitor Runner
==============

Application lifetime for the trading loop monitor:
1. Build the endpoint registry from settings
2. Start the poller (one schedule per endpoint)
3. Reconcile poll results into the view model on every applied result
4. Serve the dashboard and push view changes to connected viewers
"""
import asyncio
from typing import Any, Dict, Optional

import httpx
import structlog

from config import settings
from loopwatch.collectors.endpoints import build_endpoints, enabled_endpoints
from loopwatch.collectors.poller import EndpointPoller
from loopwatch.core.models import PollResult, ViewModel
from loopwatch.health.monitor import MonitorHealth, check_health
from loopwatch.state.reconciler import StateReconciler

logger = structlog.get_logger(__name__)


class MonitorContext:
    """
    Owns the poller and reconciler for the application's lifetime.

    Passed explicitly to whatever needs the view model; there is no
    module-level shared state.
    """

    def __init__(self, config=None, client: Optional[httpx.AsyncClient] = None):
        self.config = config or settings
        self.endpoints = build_endpoints(self.config)
        self.poller = EndpointPoller(
            self.endpoints,
            client=client,
            base_url=self.config.API_BASE_URL.rstrip("/") + self.config.API_BASE_PATH,
            timeout_s=self.config.REQUEST_TIMEOUT_S,
            retry_count=self.config.POLL_RETRY_COUNT,
        )
        self.poller.subscribe_all()
        self.reconciler = StateReconciler()

        self._changed = asyncio.Event()
        self.poller.add_listener(self._on_poll_result)

    def _on_poll_result(self, result: PollResult) -> None:
        self._changed.set()

    async def start(self) -> None:
        logger.info(
            "monitor_starting",
            base_url=self.poller.base_url,
            endpoints=[d.name for d in enabled_endpoints(self.endpoints)],
        )
        await self.poller.start()

    async def stop(self) -> None:
        await self.poller.stop()
        self._changed.set()
        logger.info("monitor_stopped")

    def view(self) -> ViewModel:
        return self.reconciler.view(self.poller.results())

    def health(self) -> MonitorHealth:
        return check_health(self.poller.results(), self.endpoints)

    async def wait_for_change(self) -> None:
        """Block until at least one poll result has been applied"""
        await self._changed.wait()
        self._changed.clear()

    def get_health_metrics(self) -> Dict[str, Any]:
        return {
            "poller": self.poller.get_health_metrics(),
            "reconciler": self.reconciler.get_stats(),
            "status": self.health().status.value,
        }


async def run_monitor(host: Optional[str] = None, port: Optional[int] = None, config=None) -> None:
    """Serve the dashboard; the app lifespan starts and stops the monitor context"""
    import uvicorn
    from loopwatch.dashboard.server import create_app

    config = config or settings
    context = MonitorContext(config)
    app = create_app(context)

    server = uvicorn.Server(uvicorn.Config(
        app,
        host=host or config.DASHBOARD_HOST,
        port=port or config.DASHBOARD_PORT,
        log_level="warning",
    ))

    logger.info("dashboard_starting", host=server.config.host, port=server.config.port)
    try:
        await server.serve()
    finally:
        logger.info("monitor_shutdown_complete")
