"""
AMD Module Compiler
===================

Entry point of the build system. Combines:
- Module registration (ids, alias groups, parse cache)
- Per-module combine policies from module.conf
- Dependency id mapping
- Bundling of one module in single, combined or package mode

Each top-level call builds its own classifier, so the exclusion ledger of one
bundle never leaks into the next; only parse results are shared.
"""

from typing import Any, Iterable, List, Mapping, Optional, Union

from amdpack_common import ConfigError, get_logger
from amdpack_schema import CombinePatternSpec, ModuleConfig, parse_module_config

from .dependency_mapper import DependencyMapper
from .engine import BundleEngine
from .pattern_classifier import PatternClassifier
from .registry import ModuleRegistry, Source
from .source_service import SourceModuleService

logger = get_logger("build.compiler")


class Compiler:
    """
    Bundles AMD modules according to module.conf.

    Example:
        >>> compiler = Compiler({"combine": {"app": True}})
        >>> compiler.register_module_ids(["app"], app_source)
        >>> compiler.register_module_ids(["lib"], lib_source)
        >>> bundle = compiler.to_bundle("app")
    """

    def __init__(
        self,
        config: Union[ModuleConfig, Mapping[str, Any], None] = None,
        combine_configs: Optional[Mapping[str, Any]] = None,
        map_configs: Optional[Mapping[str, Mapping[str, str]]] = None,
        source_service: Optional[SourceModuleService] = None,
    ):
        """
        Initialize the compiler.

        Args:
            config: module.conf content, validated or raw
            combine_configs: Overrides module.conf ``combine``
            map_configs: Overrides module.conf ``map``
            source_service: Parser/renderer, tree-sitter based by default

        Raises:
            ConfigError: If the configuration is invalid
        """
        if not isinstance(config, ModuleConfig):
            config = parse_module_config(dict(config) if config is not None else None)
        if combine_configs is not None or map_configs is not None:
            overrides = {}
            if combine_configs is not None:
                overrides["combine"] = combine_configs
            if map_configs is not None:
                overrides["map"] = map_configs
            config = parse_module_config({**config.model_dump(by_alias=True), **overrides})

        self.config = config
        self.registry = ModuleRegistry(config, source_service)
        self.mapper = DependencyMapper(config.map)

    def register_module_ids(self, module_ids: Iterable[str], source: Source) -> None:
        self.registry.register_module_ids(module_ids, source)

    def register_file(self, path: str, source: Source) -> List[str]:
        return self.registry.register_file(path, source)

    def get_all_modules(self) -> List[str]:
        return self.registry.get_all_modules()

    def get_combined_modules(self) -> List[str]:
        return list(self.config.combine)

    def should_combine(self, module_ids: Iterable[str]) -> bool:
        """
        Check if any of a file's ids has combining enabled.

        A file normally has one id; two or more mean a package main module
        or a ``paths`` alias.
        """
        return any(self._combine_setting(module_id) for module_id in module_ids)

    def _combine_setting(self, module_id: str) -> Union[bool, int, CombinePatternSpec, None]:
        setting = self.config.combine.get(module_id)
        if isinstance(setting, CombinePatternSpec):
            return setting
        return setting or None

    def get_combine_config(self, module_id: str) -> Optional[PatternClassifier]:
        """
        Fresh classifier for ``module_id``'s combine policy.

        Returns:
            PatternClassifier, or None when combining is off ("x": false, 0
            or missing)
        """
        setting = self._combine_setting(module_id)
        if setting is None:
            return None
        return PatternClassifier.from_combine_spec(setting, self.get_all_modules())

    def to_single(self, module_id: str) -> str:
        """Module's own code plus its alias or package proxies, nothing inlined."""
        return self._engine(module_id, None).bundle()

    def to_bundle(self, module_id: str, classifier: Optional[PatternClassifier] = None) -> str:
        """
        Bundle ``module_id`` with its dependencies.

        Args:
            module_id: Entry module id
            classifier: Policy to apply; the module.conf policy of
                ``module_id`` when omitted

        Raises:
            ModuleLookupError: If a reachable module has no source
            ParseError: If a reachable module cannot be parsed
        """
        if classifier is None:
            classifier = self.get_combine_config(module_id)
        return self._engine(module_id, classifier).bundle()

    def to_package(self, module_id: str) -> str:
        """Bundle every registered module of package ``module_id`` and nothing else."""
        classifier = PatternClassifier(["!**/*", "~" + module_id], self.get_all_modules())
        return self.to_bundle(module_id, classifier)

    def compile(self, module_ids: Iterable[str]) -> str:
        """
        Build output for one source file registered under ``module_ids``.

        Bundles under the first id with combining enabled, else emits the
        first id in single mode.

        Raises:
            ConfigError: If ``module_ids`` is empty
        """
        module_ids = list(module_ids)
        if not module_ids:
            raise ConfigError("compile() needs at least one module id")
        for module_id in module_ids:
            if self._combine_setting(module_id):
                logger.debug("Combining module", module_id=module_id)
                return self.to_bundle(module_id)
        return self.to_single(module_ids[0])

    def _engine(self, module_id: str, classifier: Optional[PatternClassifier]) -> BundleEngine:
        return BundleEngine(module_id, self.registry, classifier, self.mapper)
