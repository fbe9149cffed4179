"""
AMDPack Build System
====================

Decides which AMD modules are inlined into a bundle, in which order, and
renders the result:

- Module id glob matching
- Include/exclude classification from combine patterns
- Dependency id resolution and ``map`` renaming
- Module registry with alias groups and memoized parsing
- Depth-first bundling with alias and package proxies

Usage:
    from amdpack_sdk.build import Compiler

    compiler = Compiler(module_config)
    compiler.register_module_ids(["app"], source)
    print(compiler.to_bundle("app"))
"""

from .compiler import Compiler
from .dependency_mapper import (
    DependencyMapper,
    create_sorted_index,
    module_ids_for_file,
    resolve_module_id,
    split_plugin,
)
from .engine import BundleEngine, Fragment, TraversalContext, join_fragments
from .path_matcher import satisfy
from .pattern_classifier import ClassificationStatus, PatternClassifier
from .registry import ModuleRecord, ModuleRegistry, PackageDescriptor, get_package_info
from .source_service import AmdSourceService, ModuleDefinition, ParsedSource, SourceModuleService, quote_module_id

__all__ = [
    # Pattern matching
    "satisfy",
    "ClassificationStatus",
    "PatternClassifier",
    # Dependency mapping
    "DependencyMapper",
    "create_sorted_index",
    "module_ids_for_file",
    "resolve_module_id",
    "split_plugin",
    # Source parsing
    "SourceModuleService",
    "AmdSourceService",
    "ModuleDefinition",
    "ParsedSource",
    "quote_module_id",
    # Registry
    "ModuleRegistry",
    "ModuleRecord",
    "PackageDescriptor",
    "get_package_info",
    # Bundling
    "BundleEngine",
    "TraversalContext",
    "Fragment",
    "join_fragments",
    "Compiler",
]
