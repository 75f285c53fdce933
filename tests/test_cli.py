"""End-to-end tests for the run_supertrend command-line entry point."""
from __future__ import annotations

import json
import logging

import pandas as pd
import pytest

from supertrend_ai.run_supertrend import build_parser, main, resolve_config
from supertrend_ai.trend.engine import OUTPUT_COLUMNS


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """main() attaches a stderr handler to the package logger; drop it after each test."""
    yield
    pkg_logger = logging.getLogger("supertrend_ai")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
    pkg_logger.setLevel(logging.NOTSET)


def _manifests(directory):
    return sorted(directory.glob("run_manifest_2*.json"))


class TestResolveConfig:
    def test_overrides_apply_to_their_section(self):
        args = build_parser().parse_args([
            "--input", "x.csv", "--from-cluster", "Average", "--max-data", "250",
            "--train-len", "60", "--regime-max-factor", "4.0",
        ])
        cfg = resolve_config(args)
        assert cfg.supertrend_ai.from_cluster.value == "Average"
        assert cfg.supertrend_ai.max_data == 250
        assert cfg.volatility_regime.train_len == 60
        assert cfg.volatility_regime.max_factor == 4.0
        assert cfg.supertrend_ai.atr_length == 10

    def test_config_file_then_flags(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("supertrend_ai:\n  atr_length: 7\n  max_iter: 50\n")
        cfg = resolve_config(build_parser().parse_args(
            ["--input", "x.csv", "--config", str(path), "--max-iter", "20"],
        ))
        assert cfg.supertrend_ai.atr_length == 7
        assert cfg.supertrend_ai.max_iter == 20


class TestMain:
    def test_ai_run_writes_outputs(self, bars_csv, tmp_path, capsys):
        out = tmp_path / "out.csv"
        sig = tmp_path / "signals.csv"
        manifest_dir = tmp_path / "manifests"
        code = main([
            "--input", str(bars_csv),
            "--output", str(out),
            "--signals-output", str(sig),
            "--manifest-dir", str(manifest_dir),
            "--snapshot",
            "--log-level", "WARNING",
        ])
        assert code == 0

        frame = pd.read_csv(out, index_col="timestamp")
        assert list(frame.columns) == OUTPUT_COLUMNS
        assert len(frame) == 400

        signals = pd.read_csv(sig)
        assert list(signals.columns) == ["timestamp", "index", "direction", "price", "score"]

        manifests = _manifests(manifest_dir)
        assert len(manifests) == 1
        manifest = json.loads(manifests[0].read_text())
        assert manifest["run_type"] == "ai"
        assert manifest["script"] == "run_supertrend"
        assert set(manifest["outputs"]) == {"frame", "signals"}
        assert manifest["extra"]["metrics"]["n_bars"] == 400

        snapshot = json.loads(capsys.readouterr().out)
        assert snapshot["bar_index"] == 399
        assert [b["tier"] for b in snapshot["buckets"]] == ["Worst", "Average", "Best"]

    def test_regime_mode(self, bars_csv, tmp_path):
        out = tmp_path / "regime.csv"
        code = main([
            "--input", str(bars_csv), "--mode", "regime", "--train-len", "50",
            "--output", str(out), "--log-level", "ERROR",
        ])
        assert code == 0
        frame = pd.read_csv(out, index_col="timestamp")
        assert list(frame.columns) == ["trailing_stop", "trend", "factor", "regime"]
        assert frame["regime"].notna().sum() == 400 - 64

    def test_snapshot_is_null_without_clustering(self, bars_csv, capsys):
        assert main(["--input", str(bars_csv), "--max-data", "0", "--snapshot",
                     "--log-level", "ERROR"]) == 0
        assert json.loads(capsys.readouterr().out) is None

    def test_verify_manifest(self, bars_csv, tmp_path):
        manifest_dir = tmp_path / "manifests"
        assert main(["--input", str(bars_csv), "--manifest-dir", str(manifest_dir),
                     "--log-level", "ERROR"]) == 0
        stored = str(_manifests(manifest_dir)[0])

        assert main(["--input", str(bars_csv), "--verify-manifest", stored, "--strict",
                     "--log-level", "ERROR"]) == 0
        assert main(["--input", str(bars_csv), "--verify-manifest", stored, "--strict",
                     "--from-cluster", "Worst", "--log-level", "ERROR"]) == 1
        # Without --strict a mismatch is only reported.
        assert main(["--input", str(bars_csv), "--verify-manifest", stored,
                     "--from-cluster", "Worst", "--log-level", "ERROR"]) == 0

    def test_missing_input(self, tmp_path):
        assert main(["--input", str(tmp_path / "missing.csv"), "--log-level", "ERROR"]) == 1

    def test_invalid_parameters(self, bars_csv):
        assert main(["--input", str(bars_csv), "--min-factor", "6"]) == 1

    def test_strict_quality_failure(self, tmp_path, synthetic_bars):
        bad = synthetic_bars.copy()
        bad.iloc[10, bad.columns.get_loc("High")] = bad["Low"].iloc[10] - 1.0
        path = tmp_path / "bad.csv"
        bad.to_csv(path, index_label="Date")
        assert main(["--input", str(path), "--strict", "--log-level", "ERROR"]) == 1
        assert main(["--input", str(path), "--log-level", "ERROR"]) == 0
