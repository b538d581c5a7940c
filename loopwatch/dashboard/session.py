"""
Per-viewer dashboard session

Each connected viewer owns its own chart container, chart engine and
tooltip controller. Inbound viewer messages and new view models are the
only inputs; every input returns the messages to send back.
"""
import math
from typing import Any, Dict, List, Optional

import structlog

from config import settings
from loopwatch.chart.engine import ChartState, EquityChartEngine
from loopwatch.chart.models import HIDDEN, CrosshairEvent, Point
from loopwatch.chart.surface import ChartContainer
from loopwatch.core.models import ViewModel

logger = structlog.get_logger(__name__)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def parse_crosshair(message: Dict[str, Any], primary_series_id: Optional[str]) -> CrosshairEvent:
    """Viewer crosshair message to a CrosshairEvent; malformed parts become None"""
    point = None
    raw_point = message.get("point")
    if isinstance(raw_point, dict):
        x, y = _number(raw_point.get("x")), _number(raw_point.get("y"))
        if x is not None and y is not None:
            point = Point(x, y)

    series_data = {}
    series_value = message.get("series_value")
    if primary_series_id is not None and isinstance(series_value, dict):
        series_data[primary_series_id] = series_value

    return CrosshairEvent(point=point, time=message.get("time"), series_data=series_data)


class DashboardSession:
    """Chart engine + tooltip controller for one viewer"""

    def __init__(self, session_id: str, width: Optional[float] = None, height: Optional[float] = None):
        self.session_id = session_id
        self.container = ChartContainer(
            width if width is not None else settings.CHART_WIDTH_PX,
            height if height is not None else settings.CHART_HEIGHT_PX,
        )
        self.engine = EquityChartEngine(self.container)
        self._last_curve = None
        self._last_initial_balance = None

    def chart_message(self) -> Dict[str, Any]:
        return {"type": "chart", "data": self.engine.render()}

    def on_view(self, view: ViewModel) -> List[Dict[str, Any]]:
        """Feed a new view model; returns a chart message when the chart input changed"""
        curve = view.equity_curve
        initial_balance = view.initial_balance
        if curve is self._last_curve and initial_balance == self._last_initial_balance:
            return []
        self._last_curve = curve
        self._last_initial_balance = initial_balance
        self.engine.update(curve, initial_balance)
        return [self.chart_message()]

    def handle(self, message: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Route one viewer message"""
        kind = message.get("type")

        if kind == "resize":
            width, height = _number(message.get("width")), _number(message.get("height"))
            if width is None or height is None or width < 0 or height < 0:
                return []
            self.engine.resize(width, height)
            return [{"type": "resized", "data": {"width": width, "height": height}}]

        if kind == "crosshair":
            if self.engine.state != ChartState.MOUNTED:
                return [{"type": "tooltip", "data": HIDDEN.to_dict()}]
            event = parse_crosshair(message, self.engine.primary_series_id)
            self.engine.surface.dispatch_crosshair(event)
            return [{"type": "tooltip", "data": self.engine.tooltip.state.to_dict()}]

        if kind == "chart":
            return [self.chart_message()]

        logger.debug("session_unknown_message", session=self.session_id, kind=str(kind)[:30])
        return []

    def close(self) -> None:
        self.engine.close()
