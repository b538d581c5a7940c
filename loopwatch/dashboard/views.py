"""
View model to JSON-ready messages
"""
from dataclasses import asdict
from typing import Any, Dict, Optional

import orjson

from loopwatch.core.formatters import (
    PLACEHOLDER,
    format_currency,
    format_datetime,
    format_number,
    format_percent,
    pnl_class,
)
from loopwatch.core.models import ViewModel
from loopwatch.health.monitor import MonitorHealth


def display_block(view: ViewModel) -> Dict[str, Any]:
    """Pre-formatted header and summary values; unknowns render as the placeholder"""
    account = view.account
    stats = view.trade_stats
    loop = view.loop_status

    return {
        "loop_state": ("running" if loop.is_running else "stopped") if loop else PLACEHOLDER,
        "iteration": str(loop.iteration) if loop and loop.iteration is not None else PLACEHOLDER,
        "symbols": loop.symbols if loop else [],
        "elapsed_hours": format_number(loop.elapsed_hours if loop else None, 1),
        "total_balance": format_currency(account.total_balance if account else None),
        "initial_balance": format_currency(account.initial_balance if account else None),
        "peak_balance": format_currency(account.peak_balance if account else None),
        "return_percent": format_percent(account.return_percent if account else None),
        "return_class": pnl_class(account.return_percent if account else None),
        "drawdown_from_peak": format_percent(account.drawdown_from_peak if account else None),
        "unrealized_pnl": format_currency(view.total_unrealized_pnl),
        "win_rate": f"{stats.win_rate:.1f}%",
        "total_pnl": format_currency(stats.total_pnl),
        "total_pnl_class": pnl_class(stats.total_pnl),
        "decisions": [
            {"iteration": d.iteration, "executed_at": format_datetime(d.executed_at), "content": d.decision_content}
            for d in view.decisions
        ],
    }


def view_message(view: ViewModel, health: Optional[MonitorHealth] = None) -> Dict[str, Any]:
    data = asdict(view)
    data["trade_stats"] = view.trade_stats.to_dict()
    data["display"] = display_block(view)
    if health is not None:
        data["health"] = health.to_dict()
    return {"type": "view_model", "data": data}


def encode(message: Dict[str, Any]) -> str:
    return orjson.dumps(message).decode()
