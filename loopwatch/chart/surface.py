"""
Chart surface model

Server-side mirror of the browser chart: holds the series the viewer
draws, the surface size and the crosshair subscribers. The browser
receives to_dict() snapshots and reports pointer/resize events back.
"""
import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from loopwatch.chart.models import CrosshairEvent

logger = structlog.get_logger(__name__)

_ids = itertools.count(1)


class SurfaceDisposedError(RuntimeError):
    """Operation on a chart surface after remove()"""


@dataclass(slots=True)
class OverlayNode:
    """Floating element injected into a container"""
    id: str
    kind: str
    state: Dict[str, Any] = field(default_factory=dict)


class ChartContainer:
    """
    Layout box a chart is mounted into.

    Size changes are pushed to resize listeners synchronously.
    """

    def __init__(self, width: float, height: float):
        self.width = width
        self.height = height
        self.overlays: List[OverlayNode] = []
        self._resize_listeners: List[Callable[[float, float], Any]] = []

    @property
    def listener_count(self) -> int:
        return len(self._resize_listeners)

    def add_resize_listener(self, callback: Callable[[float, float], Any]) -> None:
        self._resize_listeners.append(callback)

    def remove_resize_listener(self, callback: Callable[[float, float], Any]) -> None:
        if callback in self._resize_listeners:
            self._resize_listeners.remove(callback)

    def set_size(self, width: float, height: float) -> None:
        self.width = width
        self.height = height
        for callback in list(self._resize_listeners):
            callback(width, height)

    def append_overlay(self, node: OverlayNode) -> None:
        self.overlays.append(node)

    def remove_overlay(self, node: OverlayNode) -> None:
        if node in self.overlays:
            self.overlays.remove(node)


@dataclass(slots=True)
class SeriesHandle:
    """One line series on a surface; points are {"time": epoch_s, "value": float}"""
    id: str
    kind: str
    options: Dict[str, Any] = field(default_factory=dict)
    data: List[Dict[str, Any]] = field(default_factory=list)

    def set_data(self, points: List[Dict[str, Any]]) -> None:
        self.data = list(points)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "kind": self.kind, "options": self.options, "data": self.data}


class ChartSurface:
    """Drawing surface with series, size and crosshair subscriptions"""

    def __init__(self, width: float, height: float, options: Optional[Dict[str, Any]] = None):
        self.id = f"chart-{next(_ids)}"
        self.width = width
        self.height = height
        self.options = options or {}
        self.series: Dict[str, SeriesHandle] = {}
        self.visible_range: Optional[Tuple[int, int]] = None
        self._crosshair_subscribers: List[Callable[[CrosshairEvent], Any]] = []
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def subscriber_count(self) -> int:
        return len(self._crosshair_subscribers)

    def _check(self) -> None:
        if self._disposed:
            raise SurfaceDisposedError(self.id)

    def add_series(self, kind: str = "line", **options) -> SeriesHandle:
        self._check()
        handle = SeriesHandle(id=f"{self.id}-series-{len(self.series) + 1}", kind=kind, options=options)
        self.series[handle.id] = handle
        return handle

    def resize(self, width: float, height: float) -> None:
        self._check()
        self.width = width
        self.height = height

    def fit_content(self) -> None:
        """Set the visible time range to span every series point"""
        self._check()
        times = [p["time"] for s in self.series.values() for p in s.data]
        self.visible_range = (min(times), max(times)) if times else None

    def subscribe_crosshair_move(self, callback: Callable[[CrosshairEvent], Any]) -> None:
        self._check()
        self._crosshair_subscribers.append(callback)

    def unsubscribe_crosshair_move(self, callback: Callable[[CrosshairEvent], Any]) -> None:
        if callback in self._crosshair_subscribers:
            self._crosshair_subscribers.remove(callback)

    def dispatch_crosshair(self, event: CrosshairEvent) -> None:
        """Deliver a pointer move to every subscriber"""
        self._check()
        for callback in list(self._crosshair_subscribers):
            callback(event)

    def remove(self) -> None:
        self._crosshair_subscribers.clear()
        self.series.clear()
        self._disposed = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "width": self.width,
            "height": self.height,
            "options": self.options,
            "visible_range": list(self.visible_range) if self.visible_range else None,
            "series": [s.to_dict() for s in self.series.values()],
        }
