#!/usr/bin/env python3
"""
Run the adaptive SuperTrend over a CSV of bars.

Usage:
    supertrend-ai --input bars.csv                          # Defaults, SuperTrend AI
    supertrend-ai --input bars.csv --config st.yaml         # Parameters from YAML
    supertrend-ai --input bars.csv --from-cluster Average   # Follow the middle tier
    supertrend-ai --input bars.csv --mode regime            # Volatility-regime SuperTrend
    supertrend-ai --input bars.csv --output out.csv --manifest-dir results/
    supertrend-ai --input bars.csv --snapshot               # Print the cluster table as JSON
    supertrend-ai --input bars.csv --verify-manifest results/run_manifest_latest.json
"""
import argparse
import json
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from supertrend_ai.config import RESULTS_DIR, validate_config
from supertrend_ai.config_structured import (
    SystemConfig,
    config_to_dict,
    get_config,
    load_config,
)
from supertrend_ai.data.loader import load_ohlcv
from supertrend_ai.data.quality import assess_bar_quality
from supertrend_ai.reproducibility import build_run_manifest, verify_manifest, write_run_manifest
from supertrend_ai.trend.engine import SupertrendAIEngine
from supertrend_ai.trend.volatility_regime import VolatilityRegimeSupertrend
from supertrend_ai.utils.logging import RunMetrics, get_logger

logger = logging.getLogger(__name__)

# CLI flag -> SupertrendAIConfig field
_AI_OVERRIDES = (
    "atr_length", "min_factor", "max_factor", "factor_step", "perf_alpha",
    "from_cluster", "max_iter", "max_data", "weighting", "volatility_method",
)
# CLI flag -> VolatilityRegimeConfig field
_REGIME_OVERRIDES = {
    "regime_atr_length": "atr_length",
    "regime_min_factor": "min_factor",
    "regime_mid_factor": "mid_factor",
    "regime_max_factor": "max_factor",
    "train_len": "train_len",
}


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the command-line entry point."""
    parser = argparse.ArgumentParser(
        description="Adaptive multi-factor SuperTrend with performance clustering",
    )
    parser.add_argument("--input", required=True, help="CSV or parquet file of OHLC(V) bars")
    parser.add_argument("--config", type=str, help="YAML config file")
    parser.add_argument("--mode", choices=["ai", "regime"], default="ai",
                        help="ai = performance clustering, regime = volatility-regime factor")
    parser.add_argument("--output", type=str, help="Write the per-bar output to CSV")
    parser.add_argument("--signals-output", type=str, help="Write trend flips to CSV")
    parser.add_argument("--manifest-dir", type=str, nargs="?", const=str(RESULTS_DIR),
                        help="Write a run manifest to this directory (default: results/)")
    parser.add_argument("--verify-manifest", type=str,
                        help="Compare config and outputs of this run against a stored manifest")
    parser.add_argument("--snapshot", action="store_true",
                        help="Print the last clustering snapshot as JSON")
    parser.add_argument("--strict", action="store_true", help="Fail on data quality warnings or manifest mismatches")
    parser.add_argument("--log-level", type=str, default=None,
                        help="DEBUG, INFO, WARNING, ERROR (default: from config)")

    ai = parser.add_argument_group("SuperTrend AI parameters")
    ai.add_argument("--atr-length", type=int)
    ai.add_argument("--min-factor", type=float)
    ai.add_argument("--max-factor", type=float)
    ai.add_argument("--factor-step", type=float)
    ai.add_argument("--perf-alpha", type=float)
    ai.add_argument("--from-cluster", choices=["Worst", "Average", "Best"])
    ai.add_argument("--max-iter", type=int)
    ai.add_argument("--max-data", type=int)
    ai.add_argument("--weighting", choices=["mean", "performance"])
    ai.add_argument("--volatility-method", choices=["wilder", "sma"])

    regime = parser.add_argument_group("Volatility-regime parameters")
    regime.add_argument("--regime-atr-length", type=int)
    regime.add_argument("--regime-min-factor", type=float)
    regime.add_argument("--regime-mid-factor", type=float)
    regime.add_argument("--regime-max-factor", type=float)
    regime.add_argument("--train-len", type=int)
    return parser


def resolve_config(args: argparse.Namespace) -> SystemConfig:
    """Config file (or defaults) with command-line overrides applied."""
    cfg = load_config(args.config) if args.config else get_config()
    ai_overrides = {
        name: getattr(args, name) for name in _AI_OVERRIDES if getattr(args, name) is not None
    }
    regime_overrides = {
        field: getattr(args, flag)
        for flag, field in _REGIME_OVERRIDES.items()
        if getattr(args, flag) is not None
    }
    return replace(
        cfg,
        supertrend_ai=replace(cfg.supertrend_ai, **ai_overrides),
        volatility_regime=replace(cfg.volatility_regime, **regime_overrides),
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command-line entry point.  Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    t0 = time.time()

    try:
        cfg = resolve_config(args)
    except (ValueError, OSError) as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error("Invalid configuration: %s", e)
        return 1

    level = args.log_level or cfg.logging.level
    get_logger("supertrend_ai", level=level, structured=cfg.logging.structured)

    for issue in validate_config(cfg):
        logger.warning("Config %s: %s", issue["level"], issue["message"])

    try:
        bars = load_ohlcv(args.input)
    except (ValueError, OSError) as e:
        logger.error("Failed to load %s: %s", args.input, e)
        return 1

    quality = assess_bar_quality(
        bars,
        max_abs_bar_return=cfg.data.max_abs_bar_return,
        require_volume=cfg.data.require_volume,
    )
    if not quality.passed:
        logger.warning("Data quality warnings for %s: %s", args.input, quality.warnings)
        if args.strict:
            logger.error("Aborting: --strict and data quality checks failed")
            return 1

    metrics = RunMetrics()
    outputs: Dict[str, pd.DataFrame] = {}
    snapshot = None
    try:
        if args.mode == "ai":
            engine = SupertrendAIEngine(cfg.supertrend_ai)
            result = engine.run(bars)
            snapshot = result.snapshot
            last = result.frame.iloc[-1] if len(result.frame) else None
            metrics.emit(
                mode="ai",
                n_bars=len(result.frame),
                n_signals=len(result.signals),
                n_clustered=result.n_clustered,
                n_skipped=result.n_skipped,
                target_factor=None if last is None else last["target_factor"],
                performance_index=None if last is None else last["performance_index"],
            )
        else:
            result = VolatilityRegimeSupertrend(cfg.volatility_regime).run(bars)
            metrics.emit(mode="regime", n_bars=len(result.frame), n_signals=len(result.signals))
    except ValueError as e:
        logger.error("Run failed: %s", e)
        return 1

    outputs["frame"] = result.frame
    outputs["signals"] = result.signals_frame()

    # ── Verify manifest (if requested) ──
    if args.verify_manifest:
        verification = verify_manifest(
            Path(args.verify_manifest), config_snapshot=config_to_dict(cfg), outputs=outputs,
        )
        if verification["mismatches"]:
            for m in verification["mismatches"]:
                logger.warning("Manifest mismatch: %s", m)
            if args.strict:
                logger.error("Aborting: --strict and manifest verification failed")
                return 1
        else:
            logger.info("Manifest verification passed: config and outputs match")

    try:
        if args.output:
            out_path = Path(args.output)
            result.frame.to_csv(out_path, index_label="timestamp")
            logger.info("Per-bar output written to %s", out_path)
        if args.signals_output:
            sig_path = Path(args.signals_output)
            outputs["signals"].to_csv(sig_path, index=False)
            logger.info("Signals written to %s", sig_path)
        if args.manifest_dir:
            manifest = build_run_manifest(
                run_type=args.mode,
                config_snapshot=config_to_dict(cfg),
                datasets={"bars": bars},
                outputs=outputs,
                extra={"quality": quality.to_dict(), "metrics": metrics.last},
                script_name="run_supertrend",
            )
            path = write_run_manifest(manifest, Path(args.manifest_dir))
            logger.info("Run manifest written to %s", path)
    except OSError as e:
        logger.error("Failed to write outputs: %s", e)
        return 1

    if args.snapshot:
        payload = snapshot.to_dict() if snapshot is not None else None
        print(json.dumps(payload, indent=2, default=str))

    logger.info("Completed in %.1fs", time.time() - t0)
    return 0


if __name__ == "__main__":
    sys.exit(main())
