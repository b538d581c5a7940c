"""
Display formatting
Every formatter renders a missing or non-finite value as PLACEHOLDER.
"""
from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import math

import structlog

from config import settings

logger = structlog.get_logger(__name__)

PLACEHOLDER = "-"


def _finite(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


@lru_cache(maxsize=8)
def display_zone(name: Optional[str] = None) -> tzinfo:
    name = name or settings.DISPLAY_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("display_timezone_unknown", timezone=name)
        return timezone.utc


def format_currency(value: Any) -> str:
    value = _finite(value)
    if value is None:
        return PLACEHOLDER
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_percent(value: Any) -> str:
    value = _finite(value)
    if value is None:
        return PLACEHOLDER
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.2f}%"


def format_number(value: Any, fraction_digits: int = 2) -> str:
    value = _finite(value)
    if value is None:
        return PLACEHOLDER
    return f"{value:,.{fraction_digits}f}"


def format_datetime(value: Optional[str], zone: Optional[str] = None) -> str:
    """ISO-8601 string to 'MM-DD HH:MM' in the display zone; unparseable input is returned as-is"""
    if not value:
        return PLACEHOLDER
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(display_zone(zone)).strftime("%m-%d %H:%M")


def format_timestamp(epoch_s: Any, zone: Optional[str] = None) -> str:
    """Epoch seconds to 'MM-DD HH:MM:SS' in the display zone, independent of the host zone"""
    epoch_s = _finite(epoch_s)
    if epoch_s is None:
        return PLACEHOLDER
    try:
        moment = datetime.fromtimestamp(epoch_s, tz=display_zone(zone))
    except (OverflowError, OSError, ValueError):
        return PLACEHOLDER
    return moment.strftime("%m-%d %H:%M:%S")


def pnl_class(value: Any) -> str:
    """CSS class for a signed profit/loss value"""
    value = _finite(value)
    if value is None or value == 0:
        return "pnl-flat"
    return "pnl-up" if value > 0 else "pnl-down"
