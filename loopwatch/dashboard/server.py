"""
Monitor Dashboard Server
========================

FastAPI app serving the operator view:
- GET /             operator page
- GET /api/view     current reconciled view model + endpoint health
- GET /api/health   endpoint health only
- WS  /ws           pushes view_model / chart messages, accepts
                    resize / crosshair / chart messages from the viewer
"""
import asyncio
import itertools
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import orjson
import structlog
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, JSONResponse, Response

from loopwatch.core.models import ViewModel
from loopwatch.dashboard.page import DASHBOARD_HTML
from loopwatch.dashboard.session import DashboardSession
from loopwatch.dashboard.views import encode, view_message
from loopwatch.runner import MonitorContext

logger = structlog.get_logger(__name__)

_session_ids = itertools.count(1)


class DashboardHub:
    """Connected viewers and their sessions"""

    def __init__(self, context: MonitorContext):
        self.context = context
        self.sessions: Dict[WebSocket, DashboardSession] = {}
        self._last_view: Optional[ViewModel] = None

    async def _send(self, websocket: WebSocket, messages: List[Dict[str, Any]]) -> bool:
        try:
            for message in messages:
                await websocket.send_text(encode(message))
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug("dashboard_send_failed", error=str(e))
            self.drop(websocket)
            return False
        return True

    async def connect(self, websocket: WebSocket) -> DashboardSession:
        await websocket.accept()
        session = DashboardSession(f"viewer-{next(_session_ids)}")
        self.sessions[websocket] = session
        logger.info("dashboard_client_connected", session=session.session_id, total=len(self.sessions))

        view = self.context.view()
        await self._send(websocket, [view_message(view, self.context.health())] + session.on_view(view))
        return session

    def drop(self, websocket: WebSocket) -> None:
        session = self.sessions.pop(websocket, None)
        if session is not None:
            session.close()
            logger.info("dashboard_client_disconnected", session=session.session_id, total=len(self.sessions))

    async def broadcast(self) -> None:
        """Push the view to every viewer if it changed since the last push"""
        view = self.context.view()
        if view is self._last_view:
            return
        self._last_view = view
        message = view_message(view, self.context.health())

        for websocket, session in list(self.sessions.items()):
            await self._send(websocket, [message] + session.on_view(view))

    async def broadcast_loop(self) -> None:
        interval_s = self.context.config.BROADCAST_INTERVAL_S
        while True:
            await self.context.wait_for_change()
            try:
                await self.broadcast()
            except Exception as e:
                logger.error("dashboard_broadcast_error", error=f"{type(e).__name__}: {e}")
            # Coalesce bursts of poll completions into one push
            await asyncio.sleep(interval_s)

    async def handle(self, websocket: WebSocket, raw: str) -> None:
        try:
            message = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.debug("dashboard_bad_message", size=len(raw))
            return
        if not isinstance(message, dict):
            return
        session = self.sessions.get(websocket)
        if session is not None:
            await self._send(websocket, session.handle(message))

    def close_all(self) -> None:
        for websocket in list(self.sessions):
            self.drop(websocket)


def create_app(context: MonitorContext, manage_context: bool = True) -> FastAPI:
    """
    Build the dashboard app around an explicitly owned MonitorContext.

    With manage_context the app lifespan starts and stops the context.
    """
    hub = DashboardHub(context)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if manage_context:
            await context.start()
        broadcaster = asyncio.create_task(hub.broadcast_loop())
        try:
            yield
        finally:
            broadcaster.cancel()
            await asyncio.gather(broadcaster, return_exceptions=True)
            hub.close_all()
            if manage_context:
                await context.stop()

    app = FastAPI(title="Loopwatch Trading Monitor", lifespan=lifespan)
    app.state.context = context
    app.state.hub = hub

    @app.get("/", response_class=HTMLResponse)
    async def get_dashboard():
        """Serve the operator page"""
        return DASHBOARD_HTML

    @app.get("/api/view")
    async def get_view():
        return Response(content=encode(view_message(context.view(), context.health())), media_type="application/json")

    @app.get("/api/health")
    async def get_health():
        body = context.health().to_dict()
        body["metrics"] = context.get_health_metrics()
        return JSONResponse(body)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """WebSocket endpoint for real-time updates"""
        await hub.connect(websocket)
        try:
            while True:
                raw = await websocket.receive_text()
                await hub.handle(websocket, raw)
        except WebSocketDisconnect:
            pass
        finally:
            hub.drop(websocket)

    return app
