"""Equity curve chart and crosshair tooltip"""
from .models import BusinessDay, CrosshairEvent, Point, TooltipRenderState, normalize_time
from .surface import ChartContainer, ChartSurface
from .engine import ChartState, EquityChartEngine
from .tooltip import TooltipController, clamp_position

__all__ = [
    "BusinessDay",
    "CrosshairEvent",
    "Point",
    "TooltipRenderState",
    "normalize_time",
    "ChartContainer",
    "ChartSurface",
    "ChartState",
    "EquityChartEngine",
    "TooltipController",
    "clamp_position",
]
