"""
STATE RECONCILER
Merges the latest Poll Results into one ViewModel

Precedence for fields that appear in more than one payload:
    dedicated endpoint  >  block embedded in the status payload  >  unknown
Reconciliation never raises; missing inputs degrade to empty/None.
"""
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog

from loopwatch.collectors.endpoints import (
    STATUS, ACCOUNT, POSITIONS, DECISIONS, TRADES, EQUITY_CURVE, ENDPOINT_NAMES,
)
from loopwatch.core.models import (
    AccountMetrics,
    Decision,
    EquityCurveSample,
    LoopStatus,
    PollResult,
    Position,
    Trade,
    TradeStats,
    ViewModel,
    parse_count,
    parse_list,
)

logger = structlog.get_logger(__name__)


def _payload(results: Mapping[str, PollResult], name: str) -> Any:
    result = results.get(name)
    return result.payload if result is not None else None


def compute_trade_stats(trades: List[Trade]) -> TradeStats:
    """Win/loss statistics over closed trades; opens only count towards the total"""
    closed = [t for t in trades if t.is_close]
    winning = sum(1 for t in closed if t.pnl is not None and t.pnl > 0)
    losing = sum(1 for t in closed if t.pnl is not None and t.pnl < 0)
    win_rate = (winning / len(closed)) * 100 if closed else 0.0
    total_pnl = sum(t.pnl for t in closed if t.pnl is not None)

    return TradeStats(
        total_trades=len(trades),
        winning_trades=winning,
        losing_trades=losing,
        win_rate=win_rate,
        total_pnl=float(total_pnl),
    )


def resolve_account(status_payload: Any, account_payload: Any) -> Optional[AccountMetrics]:
    dedicated = AccountMetrics.from_dict(account_payload)
    if dedicated is not None:
        return dedicated
    if isinstance(status_payload, dict):
        return AccountMetrics.from_dict(status_payload.get("account"))
    return None


def resolve_positions(status_payload: Any, positions_payload: Any) -> List[Position]:
    if isinstance(positions_payload, dict) and isinstance(positions_payload.get("positions"), list):
        return parse_list(positions_payload, "positions", Position)
    if isinstance(status_payload, dict) and isinstance(status_payload.get("positions"), list):
        return parse_list(status_payload, "positions", Position)
    return []


def total_unrealized_pnl(positions: List[Position]) -> Optional[float]:
    values = [p.unrealized_pnl for p in positions if p.unrealized_pnl is not None]
    return sum(values) if values else None


def reconcile(results: Mapping[str, PollResult]) -> ViewModel:
    """Pure derivation of the ViewModel from the latest Poll Results"""
    status_payload = _payload(results, STATUS)

    loop_status = None
    if isinstance(status_payload, dict) and isinstance(status_payload.get("loop"), dict):
        loop_status = LoopStatus.from_dict(status_payload["loop"])

    account = resolve_account(status_payload, _payload(results, ACCOUNT))
    positions = resolve_positions(status_payload, _payload(results, POSITIONS))

    decisions_payload = _payload(results, DECISIONS)
    decisions = parse_list(decisions_payload, "decisions", Decision)

    trades = parse_list(_payload(results, TRADES), "trades", Trade)
    equity_curve = parse_list(_payload(results, EQUITY_CURVE), "data", EquityCurveSample)

    errors = {
        name: result.error
        for name, result in results.items()
        if result is not None and result.error
    }

    return ViewModel(
        loop_status=loop_status,
        account=account,
        positions=positions,
        decisions=decisions,
        decisions_count=parse_count(decisions_payload, len(decisions)),
        trades=trades,
        equity_curve=equity_curve,
        trade_stats=compute_trade_stats(trades),
        total_unrealized_pnl=total_unrealized_pnl(positions),
        errors=errors,
    )


class StateReconciler:
    """
    Memoizing wrapper around reconcile().

    The cache key is the identity of every contributing PollResult, so a
    new ViewModel is only built when the poller has replaced a result.
    """

    def __init__(self, endpoints: Tuple[str, ...] = ENDPOINT_NAMES):
        self.endpoints = endpoints
        self._last_inputs: Optional[Tuple[Optional[PollResult], ...]] = None
        self._last_view: Optional[ViewModel] = None
        self._build_count = 0

    def view(self, results: Mapping[str, PollResult]) -> ViewModel:
        inputs = tuple(results.get(name) for name in self.endpoints)
        if self._last_view is not None and self._same_inputs(inputs):
            return self._last_view

        view = reconcile({n: r for n, r in zip(self.endpoints, inputs) if r is not None})
        self._last_inputs = inputs
        self._last_view = view
        self._build_count += 1
        logger.debug("view_model_rebuilt", builds=self._build_count, errors=list(view.errors))
        return view

    def _same_inputs(self, inputs: Tuple[Optional[PollResult], ...]) -> bool:
        if self._last_inputs is None:
            return False
        return all(a is b for a, b in zip(inputs, self._last_inputs))

    def get_stats(self) -> Dict[str, Any]:
        return {"builds": self._build_count}
