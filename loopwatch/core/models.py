"""
Data models for the trading loop monitor
Payload models parse backend JSON tolerantly: a missing or ill-typed
field becomes None (or an empty list), never an exception.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import math
import time


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def _to_int(value: Any) -> Optional[int]:
    result = _to_float(value)
    return int(result) if result is not None else None


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _to_str_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if v is not None]


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


# ============================================================
# POLLING
# ============================================================

@dataclass(frozen=True, slots=True)
class EndpointDescriptor:
    """Static description of one polled backend resource"""
    name: str
    url_template: str          # Path relative to the API base, may contain {placeholders}
    refresh_interval_s: float
    enabled: bool = True
    params: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def url(self) -> str:
        return self.url_template.format(**self.params) if self.params else self.url_template


@dataclass(slots=True)
class PollResult:
    """
    Latest outcome for one endpoint.

    Replaced wholesale on every applied poll completion: a success swaps in
    the payload and clears the error, a failure sets the error and keeps
    the last known-good payload.
    """
    endpoint: str
    payload: Any = None
    error: Optional[str] = None
    last_success_ms: Optional[int] = None
    is_loading: bool = True
    applied_seq: int = 0       # Sequence number of the request this result came from
    updated_ms: int = 0

    @property
    def has_data(self) -> bool:
        return self.payload is not None

    def is_stale(self, interval_s: float, now_ms: Optional[int] = None) -> bool:
        """Last known-good data is older than one polling interval because the latest poll failed"""
        if self.error is None or self.last_success_ms is None:
            return False
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        return now_ms - self.last_success_ms > interval_s * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "has_data": self.has_data,
            "error": self.error,
            "last_success_ms": self.last_success_ms,
            "is_loading": self.is_loading,
        }


# ============================================================
# BACKEND PAYLOADS
# ============================================================

@dataclass(slots=True)
class LoopStatus:
    """State of the trading loop process"""
    is_running: bool = False
    iteration: Optional[int] = None
    start_time: Optional[str] = None
    elapsed_hours: Optional[float] = None
    symbols: List[str] = field(default_factory=list)
    interval_minutes: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any) -> "LoopStatus":
        data = _as_dict(data)
        return cls(
            is_running=bool(data.get("is_running", False)),
            iteration=_to_int(data.get("iteration")),
            start_time=_to_str(data.get("start_time")),
            elapsed_hours=_to_float(data.get("elapsed_hours")),
            symbols=_to_str_list(data.get("symbols")),
            interval_minutes=_to_float(data.get("interval_minutes")),
        )


@dataclass(slots=True)
class AccountMetrics:
    """Account balance and performance snapshot"""
    total_balance: Optional[float] = None
    available: Optional[float] = None
    unrealised_pnl: Optional[float] = None
    initial_balance: Optional[float] = None
    peak_balance: Optional[float] = None
    return_percent: Optional[float] = None
    drawdown_from_peak: Optional[float] = None
    drawdown_from_initial: Optional[float] = None
    sharpe_ratio: Optional[float] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["AccountMetrics"]:
        if not isinstance(data, dict):
            return None
        return cls(
            total_balance=_to_float(data.get("total_balance")),
            available=_to_float(data.get("available")),
            unrealised_pnl=_to_float(data.get("unrealised_pnl")),
            initial_balance=_to_float(data.get("initial_balance")),
            peak_balance=_to_float(data.get("peak_balance")),
            return_percent=_to_float(data.get("return_percent")),
            drawdown_from_peak=_to_float(data.get("drawdown_from_peak")),
            drawdown_from_initial=_to_float(data.get("drawdown_from_initial")),
            sharpe_ratio=_to_float(data.get("sharpe_ratio")),
            warnings=_to_str_list(data.get("warnings")),
        )


@dataclass(slots=True)
class Position:
    """Open position as reported by the trading loop"""
    id: Optional[str] = None
    symbol: Optional[str] = None
    side: Optional[str] = None
    quantity: Optional[float] = None
    entry_price: Optional[float] = None
    current_price: Optional[float] = None
    liquidation_price: Optional[float] = None
    unrealized_pnl: Optional[float] = None
    pnl_percent: Optional[float] = None
    leverage: Optional[float] = None
    margin: Optional[float] = None
    peak_pnl_percent: Optional[float] = None
    holding: Optional[str] = None
    opened_at: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    entry_reason: Optional[str] = None
    exit_plan: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Position":
        data = _as_dict(data)
        return cls(
            id=_to_str(data.get("id")),
            symbol=_to_str(data.get("symbol")),
            side=_to_str(data.get("side")),
            quantity=_to_float(data.get("quantity")),
            entry_price=_to_float(data.get("entry_price")),
            current_price=_to_float(data.get("current_price")),
            liquidation_price=_to_float(data.get("liquidation_price")),
            unrealized_pnl=_to_float(data.get("unrealized_pnl")),
            pnl_percent=_to_float(data.get("pnl_percent")),
            leverage=_to_float(data.get("leverage")),
            margin=_to_float(data.get("margin")),
            peak_pnl_percent=_to_float(data.get("peak_pnl_percent")),
            holding=_to_str(data.get("holding")),
            opened_at=_to_str(data.get("opened_at")),
            warnings=_to_str_list(data.get("warnings")),
            entry_reason=_to_str(data.get("entry_reason")),
            exit_plan=_to_str(data.get("exit_plan")),
        )


@dataclass(slots=True)
class Decision:
    """One AI decision round"""
    id: Optional[str] = None
    iteration: Optional[int] = None
    account_value: Optional[float] = None
    position_count: Optional[int] = None
    decision_content: str = ""
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    model: Optional[str] = None
    executed_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Decision":
        data = _as_dict(data)
        return cls(
            id=_to_str(data.get("id")),
            iteration=_to_int(data.get("iteration")),
            account_value=_to_float(data.get("account_value")),
            position_count=_to_int(data.get("position_count")),
            decision_content=_to_str(data.get("decision_content")) or "",
            prompt_tokens=_to_int(data.get("prompt_tokens")),
            completion_tokens=_to_int(data.get("completion_tokens")),
            model=_to_str(data.get("model")),
            executed_at=_to_str(data.get("executed_at")),
        )


@dataclass(slots=True)
class Trade:
    """Executed open/close fill"""
    id: Optional[str] = None
    symbol: Optional[str] = None
    type: str = ""
    side: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[float] = None
    leverage: Optional[float] = None
    fee: Optional[float] = None
    pnl: Optional[float] = None
    executed_at: Optional[str] = None

    @property
    def is_close(self) -> bool:
        return self.type.lower() == "close"

    @classmethod
    def from_dict(cls, data: Any) -> "Trade":
        data = _as_dict(data)
        return cls(
            id=_to_str(data.get("id")),
            symbol=_to_str(data.get("symbol")),
            type=_to_str(data.get("type")) or "",
            side=_to_str(data.get("side")),
            price=_to_float(data.get("price")),
            quantity=_to_float(data.get("quantity")),
            leverage=_to_float(data.get("leverage")),
            fee=_to_float(data.get("fee")),
            pnl=_to_float(data.get("pnl")),
            executed_at=_to_str(data.get("executed_at")),
        )


@dataclass(slots=True)
class EquityCurveSample:
    """
    One point of the equity curve.
    timestamp_ms is epoch milliseconds as sent by the backend.
    """
    timestamp_ms: int
    time_label: Optional[str] = None
    total_balance: Optional[float] = None
    available: Optional[float] = None
    unrealised_pnl: Optional[float] = None
    return_percent: Optional[float] = None
    drawdown_from_peak: Optional[float] = None
    drawdown_from_initial: Optional[float] = None
    iteration: Optional[int] = None

    @property
    def timestamp_s(self) -> int:
        """Chart surfaces work in epoch seconds"""
        return self.timestamp_ms // 1000

    @classmethod
    def from_dict(cls, data: Any) -> Optional["EquityCurveSample"]:
        """Returns None when the sample carries no usable timestamp"""
        data = _as_dict(data)
        timestamp_ms = _to_int(data.get("timestamp"))
        if timestamp_ms is None:
            return None
        return cls(
            timestamp_ms=timestamp_ms,
            time_label=_to_str(data.get("time")),
            total_balance=_to_float(data.get("total_balance")),
            available=_to_float(data.get("available")),
            unrealised_pnl=_to_float(data.get("unrealised_pnl")),
            return_percent=_to_float(data.get("return_percent")),
            drawdown_from_peak=_to_float(data.get("drawdown_from_peak")),
            drawdown_from_initial=_to_float(data.get("drawdown_from_initial")),
            iteration=_to_int(data.get("iteration")),
        )


def parse_list(payload: Any, key: str, model) -> List[Any]:
    """Parse payload[key] as a list of `model` instances, skipping unusable rows"""
    items = []
    for raw in _as_list(_as_dict(payload).get(key)):
        item = model.from_dict(raw)
        if item is not None:
            items.append(item)
    return items


def parse_count(payload: Any, default: int) -> int:
    count = _to_int(_as_dict(payload).get("count"))
    return count if count is not None else default


# ============================================================
# RECONCILED VIEW
# ============================================================

@dataclass(frozen=True, slots=True)
class TradeStats:
    """Aggregates over the trade list"""
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    total_pnl: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_trades": self.total_trades,
            "winning_trades": self.winning_trades,
            "losing_trades": self.losing_trades,
            "win_rate": self.win_rate,
            "total_pnl": self.total_pnl,
        }


@dataclass(frozen=True, slots=True)
class ViewModel:
    """
    Single consistent view over all polled endpoints.
    None means "unknown" and renders as a placeholder, never as zero.
    """
    loop_status: Optional[LoopStatus]
    account: Optional[AccountMetrics]
    positions: List[Position]
    decisions: List[Decision]
    decisions_count: int
    trades: List[Trade]
    equity_curve: List[EquityCurveSample]
    trade_stats: TradeStats
    total_unrealized_pnl: Optional[float] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def initial_balance(self) -> Optional[float]:
        return self.account.initial_balance if self.account else None

    @property
    def total_balance(self) -> Optional[float]:
        return self.account.total_balance if self.account else None
