"""
AMDPack Schema Package

Pydantic models for module.conf: loader paths, packages, per-module combine
policies and module id maps.
"""

from .module_config import (
    CombinePatternSpec,
    CombineSetting,
    ModuleConfig,
    PackageConfig,
    load_module_config,
    parse_module_config,
)

__all__ = [
    "ModuleConfig",
    "PackageConfig",
    "CombinePatternSpec",
    "CombineSetting",
    "parse_module_config",
    "load_module_config",
]
