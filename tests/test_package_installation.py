"""Verify supertrend_ai package installation structure.

After ``pip install -e .``, every subpackage must be importable through the
``supertrend_ai`` namespace.  These tests confirm the pyproject.toml
``package-dir`` mapping and explicit ``packages`` list are correct.
"""
from __future__ import annotations

import importlib
import subprocess
import sys

import pytest

# ---------------------------------------------------------------------------
# All packages declared in pyproject.toml [tool.setuptools] packages
# ---------------------------------------------------------------------------
EXPECTED_PACKAGES = [
    "supertrend_ai",
    "supertrend_ai.config_data",
    "supertrend_ai.data",
    "supertrend_ai.indicators",
    "supertrend_ai.trend",
    "supertrend_ai.utils",
]

# Top-level modules inside the supertrend_ai package
EXPECTED_MODULES = [
    "supertrend_ai.config",
    "supertrend_ai.config_structured",
    "supertrend_ai.reproducibility",
    "supertrend_ai.run_supertrend",
]


class TestPackageInstallation:
    """Verify every declared package is importable."""

    @pytest.mark.parametrize("package", EXPECTED_PACKAGES)
    def test_package_importable(self, package: str) -> None:
        mod = importlib.import_module(package)
        assert hasattr(mod, "__file__") or hasattr(mod, "__path__")

    @pytest.mark.parametrize("module", EXPECTED_MODULES)
    def test_module_importable(self, module: str) -> None:
        mod = importlib.import_module(module)
        assert mod.__file__ is not None


class TestCriticalImportPaths:
    """Verify the most-used import paths in the codebase resolve."""

    def test_engine(self) -> None:
        from supertrend_ai.trend import SupertrendAIEngine
        assert SupertrendAIEngine is not None

    def test_volatility_regime(self) -> None:
        from supertrend_ai.trend import VolatilityRegimeSupertrend
        assert VolatilityRegimeSupertrend is not None

    def test_unknown_lazy_attribute(self) -> None:
        import supertrend_ai.trend as trend
        with pytest.raises(AttributeError):
            trend.DoesNotExist  # noqa: B018

    def test_data_loader(self) -> None:
        from supertrend_ai.data.loader import load_ohlcv
        assert callable(load_ohlcv)

    def test_indicators(self) -> None:
        from supertrend_ai.indicators import get_all_indicators
        assert "SuperTrendAI" in get_all_indicators()

    def test_config(self) -> None:
        from supertrend_ai.config import validate_config
        assert callable(validate_config)

    def test_bundled_config_file(self) -> None:
        from supertrend_ai.config_data import DEFAULT_CONFIG_FILE
        assert DEFAULT_CONFIG_FILE.exists()

    def test_reproducibility(self) -> None:
        from supertrend_ai.reproducibility import build_run_manifest
        assert callable(build_run_manifest)


class TestEggInfoCorrect:
    """Verify the installed package metadata is correct."""

    def test_top_level_package(self) -> None:
        """After pip install -e ., supertrend_ai is the sole top-level package."""
        import supertrend_ai
        assert supertrend_ai.__file__ is not None
        assert isinstance(supertrend_ai.__version__, str)

    def test_no_stale_top_level_subpackages(self) -> None:
        """Subpackages must only be reachable as supertrend_ai.<name>."""
        from pathlib import Path

        egg_info = Path(__file__).resolve().parent.parent / "supertrend_ai.egg-info" / "top_level.txt"
        if egg_info.exists():
            top_levels = egg_info.read_text().strip().splitlines()
            assert "trend" not in top_levels
            assert "data" not in top_levels
            assert "supertrend_ai" in top_levels

    def test_subprocess_import(self) -> None:
        """Verify import works in a clean subprocess (no CWD pollution)."""
        result = subprocess.run(
            [
                sys.executable, "-c",
                "import supertrend_ai; from supertrend_ai.trend import SupertrendAIEngine; print('OK')",
            ],
            capture_output=True,
            text=True,
            timeout=30,
        )
        assert result.returncode == 0, f"Import failed in subprocess: {result.stderr}"
        assert "OK" in result.stdout
