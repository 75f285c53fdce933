"""SuperTrend AI: adaptive multi-factor trend engine with performance clustering."""

__version__ = "1.0.0"
