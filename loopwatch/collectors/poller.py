"""
ENDPOINT POLLER
Independently scheduled REST polling of the trading backend

Each endpoint is fetched immediately and then on a fixed interval,
regardless of how long the previous fetch takes. Fetches for one endpoint
may overlap; every request gets a sequence number and a response is only
applied if no later-issued request has been applied already.
"""
import asyncio
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Set

import httpx
import structlog

from config import settings
from loopwatch.core.errors import FetchError, GENERIC_FETCH_ERROR
from loopwatch.core.models import EndpointDescriptor, PollResult

logger = structlog.get_logger(__name__)


def apply_outcome(
    current: PollResult,
    seq: int,
    payload: Any = None,
    error: Optional[str] = None,
    now_ms: Optional[int] = None,
) -> PollResult:
    """
    Reduce one poll completion into the next PollResult.

    Responses from requests issued before the currently applied one are
    discarded (the current result is returned unchanged). A failure keeps
    the last known-good payload.
    """
    if seq <= current.applied_seq:
        return current

    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)

    if error is None:
        return PollResult(
            endpoint=current.endpoint,
            payload=payload,
            error=None,
            last_success_ms=now_ms,
            is_loading=False,
            applied_seq=seq,
            updated_ms=now_ms,
        )

    return PollResult(
        endpoint=current.endpoint,
        payload=current.payload,
        error=error,
        last_success_ms=current.last_success_ms,
        is_loading=False,
        applied_seq=seq,
        updated_ms=now_ms,
    )


class Subscription:
    """
    Live result stream for one endpoint.

    `latest` always holds the current PollResult. Iterating the
    subscription yields every applied result; when a consumer falls
    behind, the oldest undelivered results are dropped.
    """

    def __init__(self, descriptor: EndpointDescriptor, interval_s: float, buffer_size: int = 16):
        self.descriptor = descriptor
        self.interval_s = interval_s
        self.latest = PollResult(endpoint=descriptor.name)
        self._listeners: List[Callable[[PollResult], Any]] = []
        self._pending: Deque[PollResult] = deque(maxlen=buffer_size)
        self._wakeup = asyncio.Event()
        self._closed = False

    @property
    def name(self) -> str:
        return self.descriptor.name

    def add_listener(self, callback: Callable[[PollResult], Any]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[PollResult], Any]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def publish(self, result: PollResult) -> None:
        self.latest = result
        self._pending.append(result)
        self._wakeup.set()
        for callback in list(self._listeners):
            try:
                callback(result)
            except Exception as e:
                logger.error("poll_listener_error", endpoint=self.name, error=str(e))

    def close(self) -> None:
        self._closed = True
        self._wakeup.set()

    def __aiter__(self):
        return self

    async def __anext__(self) -> PollResult:
        while not self._pending:
            if self._closed:
                raise StopAsyncIteration
            self._wakeup.clear()
            await self._wakeup.wait()
        return self._pending.popleft()


class EndpointPoller:
    """
    Polls a set of endpoints, one scheduling loop per subscription.

    Owns the Poll Results: nothing else writes them.
    """

    def __init__(
        self,
        endpoints: Dict[str, EndpointDescriptor],
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        retry_count: Optional[int] = None,
    ):
        self.endpoints = endpoints
        self.base_url = base_url or (settings.API_BASE_URL.rstrip("/") + settings.API_BASE_PATH)
        self.timeout_s = timeout_s if timeout_s is not None else settings.REQUEST_TIMEOUT_S
        self.retry_count = retry_count if retry_count is not None else settings.POLL_RETRY_COUNT

        self._client = client
        self._owns_client = client is None

        self._subscriptions: Dict[str, Subscription] = {}
        self._issued_seq: Dict[str, int] = {}
        self._loop_tasks: Dict[str, asyncio.Task] = {}
        self._inflight: Set[asyncio.Task] = set()

        # State
        self._running = False

        # Health
        self._request_count = 0
        self._error_count = 0
        self._discarded_count = 0

    # ========== LIFECYCLE ==========

    async def start(self) -> None:
        """Start scheduling every subscribed endpoint"""
        if self._running:
            return
        self._running = True
        self._ensure_client()

        logger.info("poller_starting", endpoints=list(self._subscriptions))
        for sub in self._subscriptions.values():
            self._start_loop(sub)

    async def stop(self) -> None:
        """Stop scheduling and drop anything still in flight"""
        self._running = False

        tasks = list(self._loop_tasks.values()) + list(self._inflight)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_tasks.clear()
        self._inflight.clear()

        for sub in self._subscriptions.values():
            sub.close()

        if self._client and self._owns_client:
            try:
                await asyncio.wait_for(self._client.aclose(), timeout=2.0)
            except (asyncio.TimeoutError, httpx.HTTPError) as e:
                logger.warning("poller_client_close_error", error=str(e))
            self._client = None

        logger.info("poller_stopped")

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout_s),
                headers={"Accept": "application/json", "User-Agent": "loopwatch/0.1"},
            )
            self._owns_client = True
        return self._client

    # ========== SUBSCRIPTIONS ==========

    def subscribe(self, endpoint: str, interval_s: Optional[float] = None) -> Subscription:
        """
        Subscribe to an endpoint's live results.

        Subscribing twice returns the existing stream. Scheduling starts
        immediately when the poller is already running, otherwise on start().
        """
        if endpoint in self._subscriptions:
            return self._subscriptions[endpoint]

        descriptor = self.endpoints[endpoint]
        sub = Subscription(descriptor, interval_s or descriptor.refresh_interval_s)
        self._subscriptions[endpoint] = sub
        self._issued_seq.setdefault(endpoint, 0)

        if self._running and descriptor.enabled:
            self._start_loop(sub)
        return sub

    def subscribe_all(self) -> Dict[str, Subscription]:
        """Subscribe to every endpoint at its default interval"""
        return {name: self.subscribe(name) for name in self.endpoints}

    def results(self) -> Dict[str, PollResult]:
        """Latest PollResult per subscribed endpoint"""
        return {name: sub.latest for name, sub in self._subscriptions.items()}

    def get_result(self, endpoint: str) -> Optional[PollResult]:
        sub = self._subscriptions.get(endpoint)
        return sub.latest if sub else None

    def add_listener(self, callback: Callable[[PollResult], Any], endpoints: Optional[Iterable[str]] = None) -> None:
        """Attach a callback to several subscriptions at once"""
        for name in endpoints or list(self._subscriptions):
            self._subscriptions[name].add_listener(callback)

    # ========== SCHEDULING ==========

    def _start_loop(self, sub: Subscription) -> None:
        if not sub.descriptor.enabled:
            logger.info("endpoint_disabled", endpoint=sub.name)
            return
        if sub.name in self._loop_tasks:
            return
        self._loop_tasks[sub.name] = asyncio.create_task(self._schedule_loop(sub))

    async def _schedule_loop(self, sub: Subscription) -> None:
        """Issue a poll every interval without waiting for the previous one"""
        while self._running:
            self.issue(sub.name)
            await asyncio.sleep(sub.interval_s)

    def issue(self, endpoint: str) -> asyncio.Task:
        """Start one poll for the endpoint and return its task"""
        self._issued_seq[endpoint] = self._issued_seq.get(endpoint, 0) + 1
        seq = self._issued_seq[endpoint]
        task = asyncio.create_task(self._poll_once(endpoint, seq))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def poll_now(self, endpoint: str) -> PollResult:
        """Issue one poll and wait for it to be applied (or discarded)"""
        sub = self.subscribe(endpoint)
        await self.issue(endpoint)
        return sub.latest

    async def _poll_once(self, endpoint: str, seq: int) -> None:
        descriptor = self.endpoints[endpoint]
        try:
            payload = await self._fetch(descriptor)
        except FetchError as e:
            self._error_count += 1
            logger.warning("endpoint_poll_failed", endpoint=endpoint, seq=seq, status=e.status_code, error=str(e))
            self._apply(endpoint, seq, error=str(e))
            return
        self._apply(endpoint, seq, payload=payload)

    def _apply(self, endpoint: str, seq: int, payload: Any = None, error: Optional[str] = None) -> None:
        sub = self._subscriptions.get(endpoint)
        if sub is None:
            return

        current = sub.latest
        result = apply_outcome(current, seq, payload=payload, error=error)
        if result is current:
            self._discarded_count += 1
            logger.debug(
                "stale_response_discarded",
                endpoint=endpoint,
                seq=seq,
                applied_seq=current.applied_seq,
            )
            return
        sub.publish(result)

    # ========== HTTP ==========

    async def _fetch(self, descriptor: EndpointDescriptor) -> Any:
        """Fetch with the single in-layer retry; raises the last FetchError"""
        last_error: Optional[FetchError] = None
        for attempt in range(1 + max(self.retry_count, 0)):
            try:
                return await self._request(descriptor)
            except FetchError as e:
                last_error = e
                logger.debug("endpoint_fetch_attempt_failed", endpoint=descriptor.name, attempt=attempt + 1, error=str(e))
        raise last_error

    async def _request(self, descriptor: EndpointDescriptor) -> Any:
        client = self._ensure_client()
        self._request_count += 1
        try:
            resp = await client.get(descriptor.url)
        except httpx.HTTPError as e:
            raise FetchError(descriptor.name, f"{type(e).__name__}: {e}") from e

        if not resp.is_success:
            body = resp.text.strip()
            raise FetchError(descriptor.name, body or GENERIC_FETCH_ERROR, status_code=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise FetchError(descriptor.name, f"invalid JSON body: {e}") from e

    def get_health_metrics(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "request_count": self._request_count,
            "error_count": self._error_count,
            "discarded_count": self._discarded_count,
            "inflight": len(self._inflight),
        }
