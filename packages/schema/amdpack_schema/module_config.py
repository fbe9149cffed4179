"""
AMDPack module.conf Schema

This module defines Pydantic models for validating AMD module configuration
(the ``module.conf`` consumed by AMD loaders and by the bundler).

Design Principles:
- Pure validation: Receives dicts, validates structure, returns typed objects
- File I/O limited to ``load_module_config``, a thin YAML/JSON reader
- Extensible: Accepts unknown fields, loaders put their own keys in module.conf

Usage:
    from amdpack_schema import ModuleConfig

    data = {"baseUrl": "src", "packages": [...], "combine": {"app": True}}
    config = ModuleConfig.model_validate(data)
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from amdpack_common import DEFAULT_PACKAGE_MAIN, ConfigError
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from typing_extensions import Self

# =============================================================================
# COMBINE PATTERNS
# =============================================================================


def _flatten(items: Any) -> List[Any]:
    """Flatten arbitrarily nested lists, keeping order."""
    flat: List[Any] = []
    for item in items:
        if isinstance(item, (list, tuple)):
            flat.extend(_flatten(item))
        else:
            flat.append(item)
    return flat


class CombinePatternSpec(BaseModel):
    """
    Include/exclude policy for one combined module.

    Two shapes are accepted:
    - ``{"files": [...]}``: ordered globs, ``!`` prefix marks an exclusion
    - ``{"include": [...], "exclude": [...]}``: exclusions are appended, negated

    ``files`` wins when both shapes are present. ``modules`` is an older
    spelling of ``files`` and is honoured when ``files`` is absent.
    """

    files: Optional[List[Any]] = None
    modules: Optional[List[Any]] = None
    include: List[Any] = []
    exclude: List[Any] = []

    model_config = ConfigDict(extra="allow")

    @field_validator("files", "modules", "include", "exclude")
    @classmethod
    def validate_pattern_strings(cls, v: Optional[List[Any]]) -> Optional[List[Any]]:
        """Validate that every (possibly nested) pattern is a non-empty string"""
        if v is None:
            return v
        for pattern in _flatten(v):
            if not isinstance(pattern, str):
                raise ConfigError(
                    f"Combine patterns must be strings, got {type(pattern).__name__}"
                )
            if not pattern.strip() or pattern.strip() == "!":
                raise ConfigError("Combine patterns cannot be empty strings")
        return v

    def patterns(self) -> List[str]:
        """
        Ordered pattern list according to the shape precedence.

        Returns:
            Flat list of globs; exclusions carry a leading ``!``
        """
        modules = self.files if self.files is not None else self.modules
        if modules is not None:
            return _flatten(modules)
        return _flatten(self.include) + ["!" + item for item in _flatten(self.exclude)]


CombineSetting = Union[bool, int, CombinePatternSpec]


# =============================================================================
# PACKAGES
# =============================================================================


class PackageConfig(BaseModel):
    """One entry of the ``packages`` list in module.conf."""

    name: str
    location: Optional[str] = None
    main: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate package name is a usable module id prefix"""
        if not v or not v.strip():
            raise ConfigError("Package name cannot be empty")
        if v.startswith(".") or v.endswith("/"):
            raise ConfigError(f"Invalid package name: '{v}'")
        return v

    @property
    def main_name(self) -> str:
        """Main module name without a trailing ``.js``."""
        main = self.main or DEFAULT_PACKAGE_MAIN
        return main[:-3] if main.endswith(".js") else main

    @property
    def main_module_id(self) -> str:
        """Id the bare package name resolves to, e.g. ``er/main``."""
        return f"{self.name}/{self.main_name}"


# =============================================================================
# ROOT MODULE CONFIG
# =============================================================================


class ModuleConfig(BaseModel):
    """
    Root model for module.conf.

    Keys mirror the AMD loader configuration so the same file serves both the
    loader and the bundler:

        {
          "baseUrl": "src",
          "paths": {"tpl": "common/tpl"},
          "packages": [{"name": "er", "location": "../dep/er/src"}],
          "combine": {"app": true, "index": {"files": ["!er/**", "er/main"]}},
          "map": {"*": {"underscore": "lodash"}}
        }
    """

    base_url: str = Field(default=".", alias="baseUrl")
    paths: Dict[str, str] = {}
    packages: List[PackageConfig] = []
    combine: Dict[str, CombineSetting] = {}
    map: Dict[str, Dict[str, str]] = {}

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator("combine", mode="before")
    @classmethod
    def validate_combine(cls, v: Any) -> Any:
        """Validate combine values are booleans, numbers or pattern objects"""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ConfigError("combine must be an object keyed by module id")
        for module_id, setting in v.items():
            if not isinstance(setting, (bool, int, dict, CombinePatternSpec)):
                raise ConfigError(
                    f"Invalid combine setting for '{module_id}': "
                    f"expected true/false or a pattern object, got {type(setting).__name__}"
                )
        return v

    @field_validator("packages")
    @classmethod
    def validate_unique_packages(cls, v: List[PackageConfig]) -> List[PackageConfig]:
        """Validate package names are unique"""
        names = [pkg.name for pkg in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigError(f"Duplicate package names: {duplicates}")
        return v

    @model_validator(mode="after")
    def validate_paths_do_not_shadow_packages(self) -> Self:
        """Validate no paths alias reuses a package name"""
        shadowed = sorted(set(self.paths) & {pkg.name for pkg in self.packages})
        if shadowed:
            raise ConfigError(
                f"paths aliases shadow package names: {shadowed}. "
                f"A module id cannot be both an alias and a package."
            )
        return self


def parse_module_config(data: Optional[Dict[str, Any]]) -> ModuleConfig:
    """
    Validate a module.conf dictionary.

    Args:
        data: Parsed module.conf content (None is treated as empty)

    Returns:
        ModuleConfig instance

    Raises:
        ConfigError: If the content is not a valid module configuration
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid module config: expected an object, got {type(data).__name__}")
    try:
        return ModuleConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid module config: {e}") from e


def load_module_config(path: Union[str, Path]) -> ModuleConfig:
    """
    Load and validate a module.conf file.

    JSON is a subset of YAML, so both module.conf flavours go through
    ``yaml.safe_load``.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Module config not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Module config parsing error in {path}: {e}") from e
    return parse_module_config(data)
