"""
Central configuration for the SuperTrend AI engine.

Flat-constant interface.  All engine values are derived from the
structured config singleton in ``config_structured.py`` so there is a
single source of truth; only paths are defined here.

Config Status Legend
====================
  ACTIVE      — Imported and used by running code.

Search for ``# STATUS:`` to locate all annotations.
"""
from pathlib import Path
from typing import Dict, List, Optional

try:
    from .config_structured import SystemConfig, get_config as _get_config
except ImportError:
    from config_structured import SystemConfig, get_config as _get_config

_cfg = _get_config()

# ── Paths ──────────────────────────────────────────────────────────────
ROOT_DIR = Path(__file__).parent                  # STATUS: ACTIVE — base path for all relative references
RESULTS_DIR = ROOT_DIR / "results"                # STATUS: ACTIVE — run_supertrend.py manifest dir for a bare --manifest-dir

# ── SuperTrend AI engine ───────────────────────────────────────────────
ATR_LENGTH = _cfg.supertrend_ai.atr_length        # STATUS: ACTIVE — indicators/supertrend_ai.py; volatility window
MIN_FACTOR = _cfg.supertrend_ai.min_factor        # STATUS: ACTIVE — lower end of the factor grid
MAX_FACTOR = _cfg.supertrend_ai.max_factor        # STATUS: ACTIVE — upper end of the factor grid
FACTOR_STEP = _cfg.supertrend_ai.factor_step      # STATUS: ACTIVE — grid spacing
PERF_ALPHA = _cfg.supertrend_ai.perf_alpha        # STATUS: ACTIVE — score / denominator smoothing horizon
FROM_CLUSTER = _cfg.supertrend_ai.from_cluster.value  # STATUS: ACTIVE — "Worst", "Average" or "Best"
MAX_ITER = _cfg.supertrend_ai.max_iter            # STATUS: ACTIVE — indicators/supertrend_ai.py; k-means iteration cap
MAX_DATA = _cfg.supertrend_ai.max_data            # STATUS: ACTIVE — clustering lookback from the last bar

# ── Volatility-regime SuperTrend ───────────────────────────────────────
REGIME_ATR_LENGTH = _cfg.volatility_regime.atr_length  # STATUS: ACTIVE — indicators/supertrend_ai.py MLAdaptiveSuperTrend
REGIME_TRAIN_LEN = _cfg.volatility_regime.train_len    # STATUS: ACTIVE — ATR training window

# ── Data Quality ───────────────────────────────────────────────────────
MAX_ABS_BAR_RETURN = _cfg.data.max_abs_bar_return  # STATUS: ACTIVE — data/quality.py; max absolute single-bar return
REQUIRE_VOLUME = _cfg.data.require_volume          # STATUS: ACTIVE — data/quality.py; flag bars without volume

# Grids larger than this make per-bar clustering expensive over long series.
LARGE_GRID_WARNING = 200                           # STATUS: ACTIVE — validate_config()


def validate_config(cfg: Optional[SystemConfig] = None) -> List[Dict[str, str]]:
    """Check a config for settings that are valid but probably unintended.

    Hard errors are raised by the dataclasses themselves at construction
    time; this only reports combinations that will run but behave oddly.

    Returns a list of dicts: [{"level": "WARNING"|"ERROR", "message": str}].
    """
    # Imported here to avoid a cycle: trend.factor_grid imports config_structured.
    try:
        from .trend.factor_grid import FactorGrid
    except ImportError:
        from trend.factor_grid import FactorGrid

    cfg = cfg or _cfg
    st = cfg.supertrend_ai
    issues: List[Dict[str, str]] = []

    grid = FactorGrid.from_config(st)
    if len(grid) < 3:
        issues.append({
            "level": "WARNING",
            "message": (
                f"Factor grid has only {len(grid)} factor(s); clustering needs at "
                "least 3 so the adaptive trailing stop will never start. "
                "Widen max_factor - min_factor or shrink factor_step."
            ),
        })
    elif len(grid) > LARGE_GRID_WARNING:
        issues.append({
            "level": "WARNING",
            "message": (
                f"Factor grid has {len(grid)} factors; every eligible bar re-clusters "
                "all of them. Consider lowering max_data."
            ),
        })

    if st.max_data == 0:
        issues.append({
            "level": "WARNING",
            "message": "max_data=0 disables clustering; target factor stays undefined.",
        })

    if st.from_cluster.value == "Worst":
        issues.append({
            "level": "WARNING",
            "message": "from_cluster='Worst' follows the worst-performing factors.",
        })

    if st.perf_alpha < 2:
        issues.append({
            "level": "WARNING",
            "message": (
                f"perf_alpha={st.perf_alpha} gives a smoothing constant >= 2/3; "
                "scores will react to single bars."
            ),
        })

    return issues
