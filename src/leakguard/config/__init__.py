"""Configuration loading, schema, and defaults."""

from leakguard.config.loader import ConfigError, load_config
from leakguard.config.schema import LeakGuardConfig

__all__ = [
    "ConfigError",
    "LeakGuardConfig",
    "load_config",
]
