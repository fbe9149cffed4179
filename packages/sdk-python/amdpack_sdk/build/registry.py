"""
Module Registry
===============

Binds module ids to source, memoizes parse results and answers package and
alias questions for the bundler.

A source file may be reachable under several ids (``paths`` aliases, the bare
name of a package). Registering those ids together creates an alias group;
the first registered id is the canonical one.
"""

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Union

from amdpack_common import ModuleLookupError, ParseError, get_logger
from amdpack_schema import ModuleConfig

from .dependency_mapper import module_ids_for_file
from .source_service import AmdSourceService, ModuleDefinition, ParsedSource, SourceModuleService

logger = get_logger("build.registry")

Source = Union[bytes, str]


@dataclass(frozen=True)
class PackageDescriptor:
    """Package a module id belongs to as its bare name or main module."""

    name: str
    location: Optional[str]
    main: str
    module: str
    """Main module id, e.g. 'er/main'"""


@dataclass
class ModuleRecord:
    """Memoized parse result for one module id."""

    module_id: str
    definitions: List[ModuleDefinition]
    package: Optional[PackageDescriptor]
    parsed: ParsedSource

    @property
    def defined_ids(self) -> List[str]:
        return [d.id for d in self.definitions if d.id]


def get_package_info(module_id: str, config: ModuleConfig) -> Optional[PackageDescriptor]:
    """
    Package whose bare name or main module is ``module_id``.

    Examples:
        >>> config = ModuleConfig.model_validate({"packages": [{"name": "er", "location": "dep/er"}]})
        >>> get_package_info("er/main", config).module
        'er/main'

        >>> get_package_info("er/View", config) is None
        True
    """
    for package in config.packages:
        if module_id in (package.name, package.main_module_id):
            return PackageDescriptor(
                name=package.name,
                location=package.location,
                main=package.main_name,
                module=package.main_module_id,
            )
    return None


class ModuleRegistry:
    """
    Id to source binding with memoized parsing.

    Example:
        >>> registry = ModuleRegistry(ModuleConfig())
        >>> registry.register_module_ids(["app"], b"define(function () {});")
        >>> registry.get_module_record("app").defined_ids
        ['app']
    """

    def __init__(
        self,
        config: Optional[ModuleConfig] = None,
        source_service: Optional[SourceModuleService] = None,
    ):
        self.config = config or ModuleConfig()
        self.source_service: SourceModuleService = source_service or AmdSourceService()
        self._id_to_source: Dict[str, bytes] = {}
        self._alias_groups: List[List[str]] = []
        self._alias_index: Dict[str, int] = {}
        self._records: Dict[str, ModuleRecord] = {}

    def register_module_ids(self, module_ids: Iterable[str], source: Source) -> None:
        """
        Bind every id in ``module_ids`` to ``source``.

        Two or more ids registered together form an alias group, unless one
        of them already belongs to a group.
        """
        module_ids = list(module_ids)
        if isinstance(source, str):
            source = source.encode("utf-8")
        for module_id in module_ids:
            self._id_to_source[module_id] = source
            self._records.pop(module_id, None)
        if len(module_ids) > 1:
            self._add_alias_group(module_ids)

    def register_file(self, path: str, source: Source) -> List[str]:
        """
        Register a source file under every id module.conf gives it.

        Args:
            path: File path relative to the module.conf directory

        Returns:
            The registered ids (empty when the file is not a module)
        """
        module_ids = module_ids_for_file(path, self.config)
        if module_ids:
            self.register_module_ids(module_ids, source)
        else:
            logger.debug("File is outside baseUrl and packages", path=path)
        return module_ids

    def _add_alias_group(self, module_ids: List[str]) -> None:
        if any(module_id in self._alias_index for module_id in module_ids):
            logger.debug("Alias group already registered", module_ids=module_ids)
            return
        self._alias_groups.append(list(module_ids))
        index = len(self._alias_groups) - 1
        for module_id in module_ids:
            self._alias_index[module_id] = index

    def get_alias_group(self, module_id: str) -> Optional[List[str]]:
        """All ids sharing ``module_id``'s source, or None."""
        index = self._alias_index.get(module_id)
        if index is None:
            return None
        return list(self._alias_groups[index])

    def get_all_modules(self) -> List[str]:
        return list(self._id_to_source)

    def get_source(self, module_id: str) -> bytes:
        """
        Raises:
            ModuleLookupError: If no source is bound to ``module_id``
        """
        source = self._id_to_source.get(module_id)
        if source is None:
            logger.error("Module has no bound source", module_id=module_id)
            raise ModuleLookupError(module_id)
        return source

    def get_package(self, module_id: str) -> Optional[PackageDescriptor]:
        return get_package_info(module_id, self.config)

    def get_module_record(self, module_id: str) -> ModuleRecord:
        """
        Parse ``module_id``'s source once and name its definitions.

        A single anonymous definition is named after the package main module
        when ``module_id`` is a package, else after ``module_id``. Several
        named definitions are kept as authored.

        Raises:
            ModuleLookupError: If no source is bound to ``module_id``
            ParseError: If the source cannot be parsed, or mixes anonymous
                definitions with others
        """
        record = self._records.get(module_id)
        if record is not None:
            return record

        source = self.get_source(module_id)
        try:
            parsed = self.source_service.parse(source)
        except ParseError as e:
            logger.error("Parse code failed", module_id=module_id, error=e.message)
            raise ParseError(e.message, module_id=module_id) from e

        definitions = [replace(d) for d in parsed.definitions]
        package = None
        if len(definitions) == 1 and not definitions[0].id:
            package = self.get_package(module_id)
            definitions[0].id = package.module if package else module_id
        elif len(definitions) > 1 and any(not d.id for d in definitions):
            logger.error("Anonymous definition in multi-definition file", module_id=module_id)
            raise ParseError(
                f"Anonymous define() mixed with {len(definitions) - 1} other definitions",
                module_id=module_id,
            )

        record = ModuleRecord(module_id=module_id, definitions=definitions, package=package, parsed=parsed)
        self._records[module_id] = record
        logger.debug("Module parsed", module_id=module_id, definitions=record.defined_ids)
        return record

    def render(self, record: ModuleRecord) -> str:
        """Regenerated source for ``record``."""
        return self.source_service.render(record.definitions, record.parsed)
