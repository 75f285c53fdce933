"""Tests for the candidate multiplier grid."""
from __future__ import annotations

import numpy as np
import pytest

from supertrend_ai.config_structured import SupertrendAIConfig
from supertrend_ai.trend.factor_grid import FactorGrid


class TestFactorGridBuild:
    def test_default_range_includes_both_ends(self):
        grid = FactorGrid.build(1.0, 5.0, 0.5)
        assert len(grid) == 9
        assert grid[0] == 1.0
        assert grid[-1] == 5.0

    def test_fractional_step_is_rounded(self):
        grid = FactorGrid.build(1.0, 3.0, 0.1)
        assert len(grid) == 21
        assert grid[3] == 1.3
        assert grid[-1] == 3.0
        assert np.all(np.diff(grid.as_array()) > 0)

    def test_upper_bound_off_lattice_is_excluded(self):
        grid = FactorGrid.build(1.0, 2.2, 0.5)
        assert grid.factors == (1.0, 1.5, 2.0)

    def test_single_factor_when_step_exceeds_range(self):
        grid = FactorGrid.build(1.0, 1.2, 0.5)
        assert grid.factors == (1.0,)

    def test_from_config(self):
        cfg = SupertrendAIConfig(min_factor=1.0, max_factor=3.0, factor_step=1.0)
        assert FactorGrid.from_config(cfg).factors == (1.0, 2.0, 3.0)

    def test_labels(self):
        assert FactorGrid.build(1.0, 2.0, 0.5).labels() == ("f1", "f1.5", "f2")


class TestFactorGridValidation:
    def test_non_positive_step(self):
        with pytest.raises(ValueError, match="step"):
            FactorGrid.build(1.0, 2.0, 0.0)

    def test_inverted_range(self):
        with pytest.raises(ValueError, match="max_factor"):
            FactorGrid.build(3.0, 2.0, 0.5)

    def test_empty(self):
        with pytest.raises(ValueError):
            FactorGrid(())

    def test_not_strictly_increasing(self):
        with pytest.raises(ValueError, match="strictly increasing"):
            FactorGrid((1.0, 1.0, 2.0))

    def test_is_immutable(self):
        grid = FactorGrid.build(1.0, 2.0, 0.5)
        with pytest.raises(Exception):
            grid.factors = (9.0,)
