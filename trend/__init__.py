"""Adaptive multi-factor trend engine components."""

# Core imports (numpy / pandas only)
from .clustering import ClusterAssignment, ClusterBucket, cluster_scores, kmeans_1d, percentile_seeds
from .factor_grid import FactorGrid
from .scoring import ExponentialSmoother, update_score
from .signals import BUY, SELL, SignalEmitter, TrendSignal, signals_to_frame
from .synthesizer import AdaptiveSynthesizer, target_factor
from .tracker import FactorTracker, advance_trailing_stop, supertrend
from .types import DOWN, UP, AdaptiveOutput, AdaptiveState, Bar, FactorState, TrailingState
from .volatility import average_true_range, rma, true_range


# The engines validate frames through the data package, which itself
# imports ``trend.types``; load them lazily to keep the import graph acyclic.
def __getattr__(name):
    """Lazy import for the batch / streaming engines."""
    if name in ("SupertrendAIEngine", "SupertrendAIResult", "ClusterSnapshot"):
        from .engine import ClusterSnapshot, SupertrendAIEngine, SupertrendAIResult
        globals()["SupertrendAIEngine"] = SupertrendAIEngine
        globals()["SupertrendAIResult"] = SupertrendAIResult
        globals()["ClusterSnapshot"] = ClusterSnapshot
        return globals()[name]
    if name in ("VolatilityRegimeSupertrend", "VolatilityRegimeResult"):
        from .volatility_regime import VolatilityRegimeResult, VolatilityRegimeSupertrend
        globals()["VolatilityRegimeSupertrend"] = VolatilityRegimeSupertrend
        globals()["VolatilityRegimeResult"] = VolatilityRegimeResult
        return globals()[name]
    raise AttributeError(f"module 'trend' has no attribute {name!r}")


__all__ = [
    "AdaptiveOutput",
    "AdaptiveState",
    "AdaptiveSynthesizer",
    "Bar",
    "BUY",
    "ClusterAssignment",
    "ClusterBucket",
    "ClusterSnapshot",
    "DOWN",
    "ExponentialSmoother",
    "FactorGrid",
    "FactorState",
    "FactorTracker",
    "SELL",
    "SignalEmitter",
    "SupertrendAIEngine",
    "SupertrendAIResult",
    "TrailingState",
    "TrendSignal",
    "UP",
    "VolatilityRegimeResult",
    "VolatilityRegimeSupertrend",
    "advance_trailing_stop",
    "average_true_range",
    "cluster_scores",
    "kmeans_1d",
    "percentile_seeds",
    "rma",
    "signals_to_frame",
    "supertrend",
    "target_factor",
    "true_range",
    "update_score",
]
