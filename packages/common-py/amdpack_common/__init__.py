"""
AMDPack Common Package

Shared building blocks for all AMDPack packages:
- Exception hierarchy (AmdPackError and subclasses)
- Structured JSON logger
- Constants shared by the schema and build packages
"""

from .constants import (
    DEFAULT_PACKAGE_MAIN,
    LOG_LEVELS,
    RESERVED_MODULE_IDS,
    BundleDefaults,
)
from .errors import AmdPackError, ConfigError, ModuleLookupError, ParseError
from .logger import AmdPackLogger, configure_logging, get_logger

__all__ = [
    # Errors
    "AmdPackError",
    "ConfigError",
    "ModuleLookupError",
    "ParseError",
    # Logging
    "AmdPackLogger",
    "get_logger",
    "configure_logging",
    # Constants
    "RESERVED_MODULE_IDS",
    "DEFAULT_PACKAGE_MAIN",
    "LOG_LEVELS",
    "BundleDefaults",
]
