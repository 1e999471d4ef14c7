"""
Configuration management for Metric Guard.

Loads config from file with sensible defaults. No magic, no surprises.
"""

import json
import logging
import os

from pathlib import Path

from .types import GuardConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "METRIC_GUARD_CONFIG"
DEFAULT_CONFIG_PATH = "./metric_guard_config.json"


def load_config(config_path: str | None = None) -> GuardConfig:
    """
    Load configuration from file, with fallback to defaults.

    Priority:
    1. Explicit config_path argument
    2. METRIC_GUARD_CONFIG environment variable
    3. Default path (./metric_guard_config.json)
    4. Built-in defaults
    """
    path = config_path or os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)

    if Path(path).exists():
        with open(path) as f:
            data = json.load(f)
        logger.debug(f"Loaded configuration from {path}")
        return GuardConfig.from_dict(data)

    if config_path:
        logger.warning(f"Config file {config_path} not found, using defaults")

    # Return defaults if no config file
    return GuardConfig()


def save_config(config: GuardConfig, config_path: str | None = None) -> None:
    """
    Save configuration to file.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    Path(path).parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)


def create_default_config_file(path: str = DEFAULT_CONFIG_PATH) -> None:
    """Create a default configuration file for users to customize."""
    save_config(GuardConfig(), path)
    print(f"Created default config at: {path}")
