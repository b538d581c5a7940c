"""View model reconciliation"""
from .reconciler import StateReconciler, reconcile, compute_trade_stats

__all__ = ["StateReconciler", "reconcile", "compute_trade_stats"]
