"""
CROSSHAIR TOOLTIP CONTROLLER
Turns crosshair moves into a floating annotation clamped to the chart

Each pointer move is reduced to a TooltipRenderState. Anything missing
or non-finite along the way (point, time, series value) hides the
annotation for that frame.
"""
import math
from typing import Any, Callable, Mapping, Optional, Protocol, Tuple

import structlog

from config import settings
from loopwatch.chart.models import HIDDEN, CrosshairEvent, TooltipRenderState, normalize_time
from loopwatch.chart.surface import ChartContainer, ChartSurface, OverlayNode
from loopwatch.core.formatters import format_currency, format_timestamp

logger = structlog.get_logger(__name__)

MeasureFn = Callable[[Tuple[str, ...]], Tuple[float, float]]


class ChartQuery(Protocol):
    """What the tooltip needs from a chart"""

    @property
    def primary_series_id(self) -> Optional[str]: ...

    def sample_at(self, time: Any) -> Optional[Mapping[str, Any]]: ...

    def bounds(self) -> Tuple[float, float]: ...


def estimate_size(lines: Tuple[str, ...]) -> Tuple[float, float]:
    """Approximate rendered size of the annotation (12px font, 6/10px padding)"""
    longest = max((len(line) for line in lines), default=0)
    return longest * 7.0 + 20.0, len(lines) * 17.0 + 12.0


def extract_value(data: Optional[Mapping[str, Any]]) -> Optional[float]:
    """Scalar 'value' for line-like items, 'close' for bar-like items"""
    if not data:
        return None
    for key in ("value", "close"):
        raw = data.get(key)
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return float(raw) if math.isfinite(raw) else None
    return None


def clamp_position(
    x: float,
    y: float,
    width: float,
    height: float,
    container_width: float,
    container_height: float,
    margin: float = 8.0,
    offset: float = 12.0,
) -> Tuple[float, float]:
    """
    Place the annotation for a pointer at (x, y).

    Returns (left, top) where left is the annotation's centre and top its
    bottom edge. Horizontally the annotation is centred on the pointer but
    kept margin pixels inside the container. Vertically it sits offset
    pixels above the pointer, flips below the pointer when it would cross
    the top edge, and is finally clamped to the bottom edge.
    """
    min_left = width / 2 + margin
    max_left = container_width - width / 2 - margin

    if min_left > max_left:
        # Too wide for the margins: centre it
        left = container_width / 2
    elif x < min_left:
        left = min_left
    elif x > max_left:
        left = max_left
    else:
        left = x

    top = y - offset
    if top < height + offset:
        top = y + height + offset
    if top > container_height - offset:
        top = container_height - offset

    return left, top


class TooltipController:
    """
    Owns the floating annotation node and its render state.

    Reads chart data only through ChartQuery; never mutates series.
    """

    def __init__(
        self,
        chart: ChartQuery,
        measure: Optional[MeasureFn] = None,
        value_label: str = "Balance",
        zone: Optional[str] = None,
        margin: Optional[float] = None,
        offset: Optional[float] = None,
    ):
        self.chart = chart
        self.measure = measure or estimate_size
        self.value_label = value_label
        self.zone = zone
        self.margin = margin if margin is not None else settings.TOOLTIP_MARGIN_PX
        self.offset = offset if offset is not None else settings.TOOLTIP_OFFSET_PX

        self.state: TooltipRenderState = HIDDEN
        self.node: Optional[OverlayNode] = None
        self._surface: Optional[ChartSurface] = None
        self._container: Optional[ChartContainer] = None

    # ========== LIFECYCLE ==========

    def attach(self, surface: ChartSurface, container: ChartContainer) -> None:
        """Inject the annotation node and start tracking the crosshair"""
        if self._surface is not None:
            return
        self.node = OverlayNode(id=f"{surface.id}-tooltip", kind="tooltip", state=HIDDEN.to_dict())
        container.append_overlay(self.node)
        surface.subscribe_crosshair_move(self.on_crosshair_move)
        self._surface = surface
        self._container = container

    def detach(self) -> None:
        """Stop tracking and remove the node; safe to call repeatedly"""
        if self._surface is not None:
            self._surface.unsubscribe_crosshair_move(self.on_crosshair_move)
        if self._container is not None and self.node is not None:
            self._container.remove_overlay(self.node)
        self._surface = None
        self._container = None
        self.node = None
        self.state = HIDDEN

    @property
    def attached(self) -> bool:
        return self._surface is not None

    # ========== EVENTS ==========

    def on_crosshair_move(self, event: CrosshairEvent) -> TooltipRenderState:
        self.state = self.reduce(event)
        if self.node is not None:
            self.node.state = self.state.to_dict()
        return self.state

    def reduce(self, event: CrosshairEvent) -> TooltipRenderState:
        """Compute the render state for one crosshair event"""
        point = event.point
        if point is None or event.time is None:
            return HIDDEN

        width, height = self.chart.bounds()
        x, y = point.x, point.y
        if not all(math.isfinite(v) for v in (x, y, width, height)):
            return HIDDEN
        if x < 0 or y < 0 or x > width or y > height:
            return HIDDEN

        data = None
        time_token = event.time
        primary = self.chart.primary_series_id
        if primary is not None and event.series_data:
            data = event.series_data.get(primary)
        if data is None:
            data = self.chart.sample_at(event.time)
            # Label the looked-up sample with its own time, not the pointer's
            if data is not None:
                time_token = data.get("time")
        value = extract_value(data)
        if value is None:
            return HIDDEN

        epoch_s = normalize_time(time_token)
        if epoch_s is None:
            logger.debug("tooltip_time_unrecognized", token=repr(event.time)[:50])
            return HIDDEN

        timestamp_label = format_timestamp(epoch_s, self.zone)
        value_label = f"{self.value_label}: {format_currency(value)}"

        box_width, box_height = self.measure((timestamp_label, value_label))
        if not (math.isfinite(box_width) and math.isfinite(box_height)):
            return HIDDEN

        left, top = clamp_position(
            x, y, box_width, box_height, width, height,
            margin=self.margin, offset=self.offset,
        )

        return TooltipRenderState(
            visible=True,
            x=left,
            y=top,
            timestamp_label=timestamp_label,
            value_label=value_label,
            epoch_s=epoch_s,
            value=value,
        )
