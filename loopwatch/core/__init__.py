"""Core models and errors"""
from .models import (
    EndpointDescriptor,
    PollResult,
    LoopStatus,
    AccountMetrics,
    Position,
    Decision,
    Trade,
    EquityCurveSample,
    TradeStats,
    ViewModel,
)
from .errors import FetchError

__all__ = [
    "EndpointDescriptor",
    "PollResult",
    "LoopStatus",
    "AccountMetrics",
    "Position",
    "Decision",
    "Trade",
    "EquityCurveSample",
    "TradeStats",
    "ViewModel",
    "FetchError",
]
