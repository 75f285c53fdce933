"""Bundled configuration files."""
from pathlib import Path

CONFIG_DATA_DIR = Path(__file__).parent
DEFAULT_CONFIG_FILE = CONFIG_DATA_DIR / "supertrend_ai.yaml"
