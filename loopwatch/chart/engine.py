"""
TIME-SERIES CHART ENGINE
Equity curve chart lifecycle

States:
- UNINITIALIZED: no surface yet (no data or no container)
- MOUNTED: surface, primary series and optional reference line exist
- TORN_DOWN: surface disposed, listeners released

Transitions:
    UNINITIALIZED --(data + container)--> MOUNTED
    MOUNTED --(container resize)--> MOUNTED
    MOUNTED --(data lost / close)--> TORN_DOWN
    TORN_DOWN --(data returns)--> MOUNTED

Backend samples carry epoch milliseconds; the surface works in seconds.
"""
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import structlog

from loopwatch.chart.models import normalize_time
from loopwatch.chart.surface import ChartContainer, ChartSurface, SeriesHandle
from loopwatch.chart.tooltip import TooltipController
from loopwatch.core.models import EquityCurveSample

logger = structlog.get_logger(__name__)

PLACEHOLDER_TEXT = "No equity curve data"

CHART_OPTIONS = {
    "layout": {"background": "#ffffff", "text_color": "#64748b"},
    "grid": {"color": "#f1f5f9"},
    "time_scale": {"time_visible": True, "seconds_visible": False},
    "crosshair": {"mode": "magnet", "color": "#cbd5e1", "label_background": "#2862E3"},
}
PRIMARY_SERIES_OPTIONS = {"color": "#2862E3", "line_width": 3, "precision": 2, "last_value_visible": True}
REFERENCE_SERIES_OPTIONS = {"color": "#94a3b8", "line_width": 1, "line_style": "dashed", "last_value_visible": False}


class ChartState(Enum):
    UNINITIALIZED = "uninitialized"
    MOUNTED = "mounted"
    TORN_DOWN = "torn_down"


def to_chart_points(samples: Sequence[EquityCurveSample]) -> List[Dict[str, Any]]:
    """
    Samples with a balance, as surface points in epoch seconds.

    Times are strictly ascending: samples landing in the same second
    collapse to the last one received.
    """
    by_second: Dict[int, float] = {}
    for s in samples:
        if s.total_balance is not None:
            by_second[s.timestamp_s] = s.total_balance
    return [{"time": t, "value": by_second[t]} for t in sorted(by_second)]


class EquityChartEngine:
    """
    Owns one chart surface and its series handles.

    Implements the ChartQuery interface (sample_at, bounds,
    primary_series_id) the tooltip controller reads through.
    """

    def __init__(
        self,
        container: Optional[ChartContainer] = None,
        surface_factory: Callable[..., ChartSurface] = ChartSurface,
        tooltip_factory: Optional[Callable[["EquityChartEngine"], TooltipController]] = None,
    ):
        self.container = container
        self.surface_factory = surface_factory
        self.tooltip_factory = tooltip_factory or TooltipController

        self.state = ChartState.UNINITIALIZED
        self.surface: Optional[ChartSurface] = None
        self.primary: Optional[SeriesHandle] = None
        self.reference: Optional[SeriesHandle] = None
        self.tooltip: Optional[TooltipController] = None

        self._samples: List[EquityCurveSample] = []
        self._initial_balance: Optional[float] = None
        self._times = np.empty(0, dtype=np.int64)
        self._values = np.empty(0, dtype=np.float64)

    # ========== INPUTS ==========

    def attach(self, container: ChartContainer) -> ChartState:
        """Container became available"""
        self.container = container
        return self._sync()

    def update(self, samples: Sequence[EquityCurveSample], initial_balance: Optional[float] = None) -> ChartState:
        """New equity curve / initial balance from the view model"""
        self._samples = list(samples)
        self._initial_balance = initial_balance
        return self._sync()

    def resize(self, width: float, height: float) -> ChartState:
        """Container size changed; resize listeners do the rest"""
        if self.container is not None:
            self.container.set_size(width, height)
        return self.state

    def close(self) -> None:
        """Component discarded"""
        self.teardown()
        self.container = None
        self._samples = []

    # ========== STATE MACHINE ==========

    def _sync(self) -> ChartState:
        has_data = bool(to_chart_points(self._samples))

        if self.state == ChartState.MOUNTED:
            if not has_data or self.container is None:
                self.teardown()
            else:
                self._apply_data()
        elif has_data and self.container is not None:
            self._mount()

        return self.state

    def _mount(self) -> None:
        container = self.container
        self.surface = self.surface_factory(container.width, container.height, dict(CHART_OPTIONS))
        self.primary = self.surface.add_series("line", **PRIMARY_SERIES_OPTIONS)
        self.reference = None

        self._apply_data()

        container.add_resize_listener(self._on_container_resize)
        self.tooltip = self.tooltip_factory(self)
        self.tooltip.attach(self.surface, container)

        self.state = ChartState.MOUNTED
        logger.info("chart_mounted", surface=self.surface.id, points=len(self.primary.data))

    def _apply_data(self) -> None:
        points = to_chart_points(self._samples)
        self.primary.set_data(points)
        self._times = np.array([p["time"] for p in points], dtype=np.int64)
        self._values = np.array([p["value"] for p in points], dtype=np.float64)

        reference_points = self._reference_points(points)
        if reference_points is None:
            if self.reference is not None:
                self.surface.series.pop(self.reference.id, None)
                self.reference = None
        else:
            if self.reference is None:
                self.reference = self.surface.add_series("line", **REFERENCE_SERIES_OPTIONS)
            self.reference.set_data(reference_points)

        self.surface.fit_content()

    def _reference_points(self, points: List[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
        """Flat initial-balance line across the observed time span"""
        balance = self._initial_balance
        if balance is None or not balance > 0 or len(points) < 2:
            return None
        min_time = min(p["time"] for p in points)
        max_time = max(p["time"] for p in points)
        if min_time == max_time:
            return None
        return [{"time": min_time, "value": balance}, {"time": max_time, "value": balance}]

    def _on_container_resize(self, width: float, height: float) -> None:
        if self.surface is not None and not self.surface.disposed:
            self.surface.resize(width, height)

    def teardown(self) -> None:
        """Release listeners and the overlay node, then dispose the surface"""
        if self.state != ChartState.MOUNTED:
            return

        if self.container is not None:
            self.container.remove_resize_listener(self._on_container_resize)
        if self.tooltip is not None:
            self.tooltip.detach()
        if self.surface is not None:
            surface_id = self.surface.id
            self.surface.remove()
            logger.info("chart_torn_down", surface=surface_id)

        self.surface = None
        self.primary = None
        self.reference = None
        self.tooltip = None
        self._times = np.empty(0, dtype=np.int64)
        self._values = np.empty(0, dtype=np.float64)
        self.state = ChartState.TORN_DOWN

    # ========== QUERIES ==========

    @property
    def primary_series_id(self) -> Optional[str]:
        return self.primary.id if self.primary is not None else None

    def bounds(self) -> Tuple[float, float]:
        if self.container is None:
            return 0.0, 0.0
        return float(self.container.width), float(self.container.height)

    def sample_at(self, time: Any) -> Optional[Mapping[str, Any]]:
        """Primary series point nearest to a chart time token"""
        epoch_s = normalize_time(time)
        if epoch_s is None or self._times.size == 0:
            return None

        idx = int(np.searchsorted(self._times, epoch_s))
        if idx >= self._times.size:
            idx = self._times.size - 1
        elif idx > 0 and epoch_s - self._times[idx - 1] <= self._times[idx] - epoch_s:
            idx -= 1
        return {"time": int(self._times[idx]), "value": float(self._values[idx])}

    def render(self) -> Dict[str, Any]:
        """Snapshot for the viewer: the surface, or a placeholder when there is nothing to draw"""
        if self.state != ChartState.MOUNTED:
            return {"state": self.state.value, "placeholder": PLACEHOLDER_TEXT, "surface": None}
        return {"state": self.state.value, "placeholder": None, "surface": self.surface.to_dict()}
