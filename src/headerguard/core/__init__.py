"""Core."""

from .config import (
    FilterConfig,
    HeaderGuardSettings,
    HeaderPattern,
    clear_settings,
    get_settings,
    load_config_from_file,
    load_filter_config,
)
from .errors import ConfigError, HeaderGuardError, RuleCompileError

__all__ = [
    # Config
    "FilterConfig",
    "HeaderPattern",
    "HeaderGuardSettings",
    "get_settings",
    "clear_settings",
    "load_config_from_file",
    "load_filter_config",
    # Errors
    "HeaderGuardError",
    "ConfigError",
    "RuleCompileError",
]
