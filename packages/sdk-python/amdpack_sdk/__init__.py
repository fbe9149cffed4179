"""AMDPack SDK - build-time bundler for AMD modules.

This package provides tools for:
- Loading module.conf and its combine policies
- Registering module sources under their ids and aliases
- Bundling an entry module with its dependencies

Example:
    >>> from amdpack_sdk import Compiler, load_module_config
    >>> compiler = Compiler(load_module_config("module.conf"))
    >>> compiler.register_file("src/app.js", source)
    >>> bundle = compiler.to_bundle("app")
"""

from amdpack_schema import ModuleConfig, load_module_config

from .build import BundleEngine, Compiler, ModuleRegistry, PatternClassifier

__version__ = "0.1.0"

__all__ = [
    "Compiler",
    "BundleEngine",
    "ModuleRegistry",
    "PatternClassifier",
    "ModuleConfig",
    "load_module_config",
]
