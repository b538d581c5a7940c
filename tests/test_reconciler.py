"""
STATE RECONCILER TESTS

Run:
    python -m pytest tests/test_reconciler.py -v
"""
import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def ok(endpoint, payload, seq=1):
    from loopwatch.core.models import PollResult
    return PollResult(endpoint=endpoint, payload=payload, is_loading=False, applied_seq=seq, last_success_ms=1)


def failed(endpoint, error="500: down", payload=None, seq=1):
    from loopwatch.core.models import PollResult
    return PollResult(endpoint=endpoint, payload=payload, error=error, is_loading=False, applied_seq=seq)


STATUS_PAYLOAD = {
    "loop": {
        "is_running": True,
        "iteration": 42,
        "start_time": "2025-01-01T00:00:00Z",
        "elapsed_hours": 12.5,
        "symbols": ["BTCUSDT", "ETHUSDT"],
        "interval_minutes": 3,
    },
    "account": {"total_balance": 9000, "initial_balance": 10000, "peak_balance": 10200},
    "positions": [{"id": "p1", "symbol": "BTCUSDT", "side": "long", "quantity": 0.1, "entry_price": 60000}],
}


# ============================================================
# A. TRADE STATISTICS
# ============================================================

class TestTradeStats:

    def test_mixed_trades(self):
        from loopwatch.core.models import Trade
        from loopwatch.state.reconciler import compute_trade_stats

        trades = [
            Trade.from_dict({"type": "close", "pnl": 50}),
            Trade.from_dict({"type": "close", "pnl": -20}),
            Trade.from_dict({"type": "open", "pnl": 0}),
        ]
        stats = compute_trade_stats(trades)

        assert stats.total_trades == 3
        assert stats.winning_trades == 1
        assert stats.losing_trades == 1
        assert stats.win_rate == 50
        assert stats.total_pnl == 30

    def test_no_closed_trades_win_rate_zero(self):
        from loopwatch.core.models import Trade
        from loopwatch.state.reconciler import compute_trade_stats

        stats = compute_trade_stats([Trade.from_dict({"type": "open", "pnl": 0})])
        assert stats.win_rate == 0
        assert stats.total_pnl == 0

        empty = compute_trade_stats([])
        assert empty.win_rate == 0
        assert empty.total_trades == 0

    def test_win_rate_formula(self):
        from loopwatch.core.models import Trade
        from loopwatch.state.reconciler import compute_trade_stats

        pnls = [10, 20, -5, 0, 7, -1, -3]
        stats = compute_trade_stats([Trade.from_dict({"type": "close", "pnl": p}) for p in pnls])

        assert stats.winning_trades == 3
        assert stats.losing_trades == 3
        assert stats.win_rate == pytest.approx(3 / 7 * 100)
        assert stats.total_pnl == pytest.approx(28)

    def test_close_type_is_case_insensitive(self):
        from loopwatch.core.models import Trade
        from loopwatch.state.reconciler import compute_trade_stats

        stats = compute_trade_stats([Trade.from_dict({"type": "CLOSE", "pnl": 5})])
        assert stats.winning_trades == 1
        assert stats.win_rate == 100


# ============================================================
# B. FALLBACK PRECEDENCE
# ============================================================

class TestReconcile:

    def test_status_account_used_when_dedicated_failed(self):
        from loopwatch.state.reconciler import reconcile

        view = reconcile({
            "status": ok("status", STATUS_PAYLOAD),
            "account": failed("account"),
        })
        assert view.total_balance == 9000

    def test_dedicated_account_wins_once_available(self):
        from loopwatch.state.reconciler import reconcile

        results = {
            "status": ok("status", STATUS_PAYLOAD),
            "account": failed("account"),
        }
        assert reconcile(results).total_balance == 9000

        results["account"] = ok("account", {"total_balance": 9500}, seq=2)
        assert reconcile(results).total_balance == 9500

    def test_dedicated_account_kept_after_later_failure(self):
        from loopwatch.state.reconciler import reconcile

        view = reconcile({
            "status": ok("status", STATUS_PAYLOAD),
            "account": failed("account", payload={"total_balance": 9500}, seq=3),
        })
        assert view.total_balance == 9500
        assert view.errors == {"account": "500: down"}

    def test_account_unknown_when_both_absent(self):
        from loopwatch.state.reconciler import reconcile

        view = reconcile({"status": ok("status", {"loop": {"is_running": False}})})
        assert view.account is None
        assert view.total_balance is None
        assert view.initial_balance is None

    def test_dedicated_positions_win(self):
        from loopwatch.state.reconciler import reconcile

        view = reconcile({
            "status": ok("status", STATUS_PAYLOAD),
            "positions": ok("positions", {"count": 2, "positions": [{"id": "a"}, {"id": "b"}]}),
        })
        assert [p.id for p in view.positions] == ["a", "b"]

    def test_empty_dedicated_positions_still_win(self):
        from loopwatch.state.reconciler import reconcile

        view = reconcile({
            "status": ok("status", STATUS_PAYLOAD),
            "positions": ok("positions", {"count": 0, "positions": []}),
        })
        assert view.positions == []

    def test_status_positions_fallback(self):
        from loopwatch.state.reconciler import reconcile

        view = reconcile({"status": ok("status", STATUS_PAYLOAD)})
        assert [p.symbol for p in view.positions] == ["BTCUSDT"]

    def test_positions_empty_without_any_source(self):
        from loopwatch.state.reconciler import reconcile

        assert reconcile({}).positions == []

    def test_loop_status_and_lists(self):
        from loopwatch.state.reconciler import reconcile

        view = reconcile({
            "status": ok("status", STATUS_PAYLOAD),
            "decisions": ok("decisions", {"count": 25, "decisions": [{"id": "d1", "iteration": 42, "decision_content": "hold"}]}),
            "trades": ok("trades", {"count": 1, "trades": [{"id": "t1", "type": "close", "pnl": 12.5}]}),
            "equity_curve": ok("equity_curve", {"count": 1, "data": [{"timestamp": 1000000, "total_balance": 10000}]}),
        })

        assert view.loop_status.is_running is True
        assert view.loop_status.iteration == 42
        assert view.loop_status.symbols == ["BTCUSDT", "ETHUSDT"]
        assert view.decisions_count == 25
        assert view.decisions[0].decision_content == "hold"
        assert view.trade_stats.total_pnl == 12.5
        assert view.equity_curve[0].timestamp_s == 1000

    def test_malformed_payloads_degrade(self):
        from loopwatch.state.reconciler import reconcile

        view = reconcile({
            "status": ok("status", "not a dict"),
            "account": ok("account", ["nope"]),
            "positions": ok("positions", {"positions": "nope"}),
            "trades": ok("trades", {"trades": [None, {"type": "close", "pnl": "abc"}]}),
            "equity_curve": ok("equity_curve", {"data": [{"total_balance": 1}, {"timestamp": 5000}]}),
        })

        assert view.loop_status is None
        assert view.account is None
        assert view.positions == []
        assert view.trade_stats.total_trades == 2
        assert view.trade_stats.win_rate == 0
        assert [s.timestamp_ms for s in view.equity_curve] == [5000]

    def test_unrealized_total(self):
        from loopwatch.state.reconciler import reconcile

        view = reconcile({
            "positions": ok("positions", {"positions": [{"unrealized_pnl": 5}, {"unrealized_pnl": -2}, {}]}),
        })
        assert view.total_unrealized_pnl == 3

        assert reconcile({"positions": ok("positions", {"positions": [{}]})}).total_unrealized_pnl is None


# ============================================================
# C. MEMOIZATION
# ============================================================

class TestStateReconciler:

    def test_same_inputs_same_view(self):
        from loopwatch.state.reconciler import StateReconciler

        reconciler = StateReconciler()
        results = {"status": ok("status", STATUS_PAYLOAD)}

        first = reconciler.view(results)
        second = reconciler.view(dict(results))

        assert first is second
        assert reconciler.get_stats()["builds"] == 1

    def test_replaced_result_rebuilds(self):
        from loopwatch.state.reconciler import StateReconciler

        reconciler = StateReconciler()
        results = {"status": ok("status", STATUS_PAYLOAD)}
        first = reconciler.view(results)

        results["account"] = ok("account", {"total_balance": 9500})
        second = reconciler.view(results)

        assert second is not first
        assert second.total_balance == 9500


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
