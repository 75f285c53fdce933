"""
Structured configuration for the SuperTrend AI engine using typed dataclasses.

This is the AUTHORITATIVE source of truth for all configuration values.
``config.py`` imports from here and exposes flat constants.

Each subsystem gets its own dataclass.  Every dataclass validates itself in
``__post_init__`` so that a misconfigured run fails before the first bar is
processed rather than silently emitting NaN series.

Usage:
    from supertrend_ai.config_structured import get_config
    cfg = get_config()
    cfg.supertrend_ai.perf_alpha
    cfg.volatility_regime.train_len
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


# ── Enums ────────────────────────────────────────────────────────────


class ClusterTier(Enum):
    """Performance tier selected from the three k-means clusters."""
    WORST = "Worst"
    AVERAGE = "Average"
    BEST = "Best"

    @property
    def rank(self) -> int:
        """Position of the tier once buckets are sorted by centroid."""
        return {"Worst": 0, "Average": 1, "Best": 2}[self.value]

    @classmethod
    def from_rank(cls, rank: int) -> "ClusterTier":
        """Inverse of ``rank``."""
        return (cls.WORST, cls.AVERAGE, cls.BEST)[rank]


class TargetWeighting(Enum):
    """How the target factor is derived from the selected tier."""
    MEAN = "mean"
    PERFORMANCE = "performance"


class VolatilityMethod(Enum):
    """Smoothing applied to the true range by the default ATR."""
    WILDER = "wilder"
    SMA = "sma"


def _coerce_enum(enum_cls, value):
    """Accept enum members, their values, or case-insensitive names."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        for member in enum_cls:
            if value == member.value or value.upper() == member.name:
                return member
    raise ValueError(
        f"{value!r} is not a valid {enum_cls.__name__}; "
        f"expected one of {[m.value for m in enum_cls]}"
    )


# ── Engine config ────────────────────────────────────────────────────


@dataclass
class SupertrendAIConfig:
    """Adaptive multi-factor SuperTrend with performance clustering.

    Attributes
    ----------
    atr_length : int
        Window passed to the volatility estimator.
    min_factor, max_factor, factor_step : float
        Range and spacing of the candidate multiplier grid.
    perf_alpha : float
        Smoothing horizon (in bars) of the per-factor performance score and
        of the absolute-price-change denominator.
    from_cluster : ClusterTier
        Tier whose factors drive the adaptive trailing stop.
    max_iter : int
        Upper bound on Lloyd iterations per clustering pass.
    max_data : int
        Only the last ``max_data`` bars of a batch are clustered.
    weighting : TargetWeighting
        ``mean`` averages the tier's factors; ``performance`` weights them
        by their (non-negative) scores.
    volatility_method : VolatilityMethod
        Smoothing of the built-in ATR when no volatility series is given.
    """

    atr_length: int = 10
    min_factor: float = 1.0
    max_factor: float = 5.0
    factor_step: float = 0.5
    perf_alpha: float = 10.0
    from_cluster: ClusterTier = ClusterTier.BEST
    max_iter: int = 1000
    max_data: int = 10000
    weighting: TargetWeighting = TargetWeighting.MEAN
    volatility_method: VolatilityMethod = VolatilityMethod.WILDER

    def __post_init__(self):
        # Coerce string values to enums so YAML / CLI input works directly
        self.from_cluster = _coerce_enum(ClusterTier, self.from_cluster)
        self.weighting = _coerce_enum(TargetWeighting, self.weighting)
        self.volatility_method = _coerce_enum(VolatilityMethod, self.volatility_method)

        if not isinstance(self.atr_length, int) or self.atr_length < 1:
            raise ValueError(f"atr_length must be a positive integer, got {self.atr_length}")
        for name in ("min_factor", "max_factor", "factor_step", "perf_alpha"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"{name} must be a finite number, got {value!r}")
        if self.min_factor <= 0:
            raise ValueError(f"min_factor must be > 0, got {self.min_factor}")
        if self.max_factor < self.min_factor:
            raise ValueError(
                f"max_factor ({self.max_factor}) must be >= min_factor ({self.min_factor})"
            )
        if self.factor_step <= 0:
            raise ValueError(f"factor_step must be > 0, got {self.factor_step}")
        if self.perf_alpha <= 0:
            raise ValueError(f"perf_alpha must be > 0, got {self.perf_alpha}")
        if not isinstance(self.max_iter, int) or self.max_iter < 1:
            raise ValueError(f"max_iter must be a positive integer, got {self.max_iter}")
        if not isinstance(self.max_data, int) or self.max_data < 0:
            raise ValueError(f"max_data must be a non-negative integer, got {self.max_data}")

    @property
    def smoothing_alpha(self) -> float:
        """EMA constant shared by the scores and the denominator."""
        return 2.0 / (self.perf_alpha + 1.0)


@dataclass
class VolatilityRegimeConfig:
    """SuperTrend whose factor follows a k-means volatility regime."""

    atr_length: int = 14
    min_factor: float = 1.0
    mid_factor: float = 2.0
    max_factor: float = 3.0
    train_len: int = 200
    max_iter: int = 10

    def __post_init__(self):
        if not isinstance(self.atr_length, int) or self.atr_length < 1:
            raise ValueError(f"atr_length must be a positive integer, got {self.atr_length}")
        if not 0 < self.min_factor <= self.mid_factor <= self.max_factor:
            raise ValueError(
                "factors must satisfy 0 < min_factor <= mid_factor <= max_factor, got "
                f"({self.min_factor}, {self.mid_factor}, {self.max_factor})"
            )
        if not isinstance(self.train_len, int) or self.train_len < 3:
            raise ValueError(f"train_len must be an integer >= 3, got {self.train_len}")
        if not isinstance(self.max_iter, int) or self.max_iter < 1:
            raise ValueError(f"max_iter must be a positive integer, got {self.max_iter}")


@dataclass
class DataConfig:
    """Bar-series quality thresholds."""

    max_abs_bar_return: float = 0.5
    require_volume: bool = False

    def __post_init__(self):
        if self.max_abs_bar_return <= 0:
            raise ValueError(
                f"max_abs_bar_return must be > 0, got {self.max_abs_bar_return}"
            )


@dataclass
class LoggingConfig:
    """Log level and output format for entry points."""

    level: str = "INFO"
    structured: bool = True

    def __post_init__(self):
        if self.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level {self.level!r}")
        self.level = self.level.upper()


@dataclass
class SystemConfig:
    """Top-level configuration aggregating all subsystems."""

    supertrend_ai: SupertrendAIConfig = field(default_factory=SupertrendAIConfig)
    volatility_regime: VolatilityRegimeConfig = field(default_factory=VolatilityRegimeConfig)
    data: DataConfig = field(default_factory=DataConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = {
    "supertrend_ai": SupertrendAIConfig,
    "volatility_regime": VolatilityRegimeConfig,
    "data": DataConfig,
    "logging": LoggingConfig,
}


def config_from_dict(payload: Dict[str, Any]) -> SystemConfig:
    """Build a validated ``SystemConfig`` from a nested mapping.

    Unknown sections or keys raise ``ValueError`` so that typos in a YAML
    file are not silently ignored.
    """
    kwargs: Dict[str, Any] = {}
    for section, values in (payload or {}).items():
        if section not in _SECTIONS:
            raise ValueError(f"Unknown config section {section!r}")
        cls = _SECTIONS[section]
        allowed = {f.name for f in fields(cls)}
        values = values or {}
        unknown = set(values) - allowed
        if unknown:
            raise ValueError(f"Unknown keys in [{section}]: {sorted(unknown)}")
        kwargs[section] = cls(**values)
    return SystemConfig(**kwargs)


def load_config(path: Union[str, Path]) -> SystemConfig:
    """Load a ``SystemConfig`` from a YAML file."""
    with open(path) as f:
        payload = yaml.safe_load(f) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"Config file {path} must contain a mapping at top level")
    return config_from_dict(payload)


def config_to_dict(cfg: Any) -> Dict[str, Any]:
    """JSON-safe snapshot of any config dataclass (enums become values)."""
    def _convert(obj):
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, dict):
            return {k: _convert(v) for k, v in obj.items()}
        if isinstance(obj, (list, tuple)):
            return [_convert(v) for v in obj]
        return obj

    return _convert(asdict(cfg))


# ── Module-level singleton ──────────────────────────────────────────

_CONFIG: Optional[SystemConfig] = None


def get_config() -> SystemConfig:
    """Return the singleton SystemConfig instance.

    On first call, instantiates the default SystemConfig. Subsequent
    calls return the same instance so all callers share one source of
    truth.
    """
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = SystemConfig()
    return _CONFIG
