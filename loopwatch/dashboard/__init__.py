"""
Dashboard Module - operator view server
"""
from loopwatch.dashboard.server import DashboardHub, create_app
from loopwatch.dashboard.session import DashboardSession

__all__ = [
    "DashboardHub",
    "create_app",
    "DashboardSession",
]
