"""
Chart-layer value types and time normalization
"""
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
from datetime import datetime, timezone
import math


@dataclass(frozen=True, slots=True)
class BusinessDay:
    """Calendar-day time value (month is 1-based)"""
    year: int
    month: int
    day: int


@dataclass(frozen=True, slots=True)
class Point:
    """Pointer position in container pixels"""
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class CrosshairEvent:
    """
    One crosshair move as reported by the chart surface.

    series_data maps a series id to the data item under the crosshair for
    that series; its shape depends on the series type.
    """
    point: Optional[Point] = None
    time: Any = None
    series_data: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def normalize_time(token: Any) -> Optional[int]:
    """
    Resolve a chart time token to epoch seconds.

    Accepts a numeric epoch, a numeric string, or a calendar day given as a
    BusinessDay or a {year, month, day} mapping (UTC midnight). Returns None
    for anything else.
    """
    if token is None or isinstance(token, bool):
        return None

    if isinstance(token, (int, float)):
        return int(token) if math.isfinite(token) else None

    if isinstance(token, str):
        try:
            parsed = float(token.strip())
        except ValueError:
            return None
        return int(parsed) if math.isfinite(parsed) else None

    if isinstance(token, BusinessDay):
        year, month, day = token.year, token.month, token.day
    elif isinstance(token, Mapping):
        year, month, day = token.get("year"), token.get("month"), token.get("day")
    else:
        return None

    if not (_is_int(year) and _is_int(month) and _is_int(day)):
        return None
    try:
        return int(datetime(year, month, day, tzinfo=timezone.utc).timestamp())
    except (ValueError, OverflowError):
        return None


@dataclass(frozen=True, slots=True)
class TooltipRenderState:
    """
    Floating annotation state.
    x is the annotation's horizontal centre, y its bottom edge, both in
    container pixels.
    """
    visible: bool = False
    x: float = 0.0
    y: float = 0.0
    timestamp_label: str = ""
    value_label: str = ""
    epoch_s: Optional[int] = None
    value: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "visible": self.visible,
            "x": self.x,
            "y": self.y,
            "timestamp_label": self.timestamp_label,
            "value_label": self.value_label,
            "epoch_s": self.epoch_s,
            "value": self.value,
        }


HIDDEN = TooltipRenderState()
