"""
Dependency Id Mapping
=====================

Turns the raw dependency references written in a module into the absolute
ids the bundler looks up:

- Relative references ("./util", "../lib") resolve against the referencing
  module's directory
- Loader-plugin references ("tpl!./a.tpl.html") contribute the plugin id
- The module.conf ``map`` table renames dependencies per referencing module

Prefix tables are ranked longest-prefix first; the ``*`` catch-all, when
enabled, always ranks last.
"""

import posixpath
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from amdpack_common import get_logger
from amdpack_schema import ModuleConfig

logger = get_logger("build.mapper")

WILDCARD_KEY = "*"


def prefix_matches(prefix: str, module_id: str) -> bool:
    """Check if ``module_id`` is ``prefix`` or lives below ``prefix/``."""
    return module_id == prefix or module_id.startswith(prefix + "/")


@dataclass
class PrefixEntry:
    """One ranked entry of a prefix table."""

    key: str
    value: Any
    catch_all: bool = False

    def matches(self, module_id: str) -> bool:
        return self.catch_all or prefix_matches(self.key, module_id)


def create_sorted_index(
    mapping: Optional[Mapping[str, Any]],
    allow_asterisk: bool = False,
) -> List[PrefixEntry]:
    """
    Build a prefix table from a ``prefix -> value`` mapping.

    Args:
        mapping: Source mapping (None yields an empty table)
        allow_asterisk: Treat the ``*`` key as a catch-all

    Returns:
        Entries sorted longest key first, ``*`` last

    Examples:
        >>> [e.key for e in create_sorted_index({"*": 1, "a": 2, "a/b": 3}, True)]
        ['a/b', 'a', '*']
    """
    if not mapping:
        return []

    entries = [
        PrefixEntry(key, value, catch_all=allow_asterisk and key == WILDCARD_KEY)
        for key, value in mapping.items()
    ]
    entries.sort(key=lambda e: (e.key == WILDCARD_KEY, -len(e.key)))
    return entries


def split_plugin(reference: str) -> Tuple[str, Optional[str]]:
    """
    Split a loader-plugin reference.

    Examples:
        >>> split_plugin("tpl!./a.tpl.html")
        ('tpl', './a.tpl.html')

        >>> split_plugin("./util")
        ('./util', None)
    """
    if "!" not in reference:
        return reference, None
    module_ref, resource = reference.split("!", 1)
    return module_ref, resource


def resolve_module_id(reference: str, base_id: str) -> str:
    """
    Resolve a relative reference against the referencing module id.

    Non-relative references are returned unchanged. ``..`` never climbs above
    the top level; surplus ``..`` terms are kept in the result.

    Examples:
        >>> resolve_module_id("./util", "er/main")
        'er/util'

        >>> resolve_module_id("../lib", "app/ui/View")
        'app/lib'

        >>> resolve_module_id("er", "app")
        'er'
    """
    if not reference.startswith("."):
        return reference

    base_path = base_id.split("/")
    name_path = reference.split("/")
    base_len = len(base_path) - 1
    cut_base_terms = 0
    cut_name_terms = 0

    for term in name_path:
        if term == "..":
            if cut_base_terms < base_len:
                cut_base_terms += 1
                cut_name_terms += 1
            else:
                break
        elif term == ".":
            cut_name_terms += 1
        else:
            break

    return "/".join(base_path[: base_len - cut_base_terms] + name_path[cut_name_terms:])


class DependencyMapper:
    """
    Applies the module.conf ``map`` table to dependency ids.

    The outer table is keyed by referencing-module prefix (``*`` allowed as a
    catch-all), the inner tables by dependency prefix:

        {"app": {"underscore": "lodash"}, "*": {"jquery": "zepto"}}

    Example:
        >>> mapper = DependencyMapper({"app": {"underscore": "lodash"}})
        >>> mapper.rename("app/main", "underscore/array")
        'lodash/array'
    """

    def __init__(self, map_config: Optional[Mapping[str, Mapping[str, str]]] = None):
        self._index = create_sorted_index(map_config, allow_asterisk=True)
        for entry in self._index:
            entry.value = create_sorted_index(entry.value)

    def rename(self, module_id: str, dep_id: str) -> str:
        """
        Rename ``dep_id`` as seen from ``module_id``.

        The first matching outer entry selects the inner table; the first
        matching inner entry replaces its prefix. No match passes ``dep_id``
        through unchanged.
        """
        for outer in self._index:
            if not outer.matches(module_id):
                continue
            for inner in outer.value:
                if inner.matches(dep_id):
                    renamed = inner.value + dep_id[len(inner.key) :]
                    logger.debug("Dependency renamed", module_id=module_id, dep_id=dep_id, renamed=renamed)
                    return renamed
        return dep_id

    def normalize(self, reference: str, base_id: str) -> str:
        """Plugin split, relative resolution and rename, in that order."""
        module_ref, _ = split_plugin(reference)
        return self.rename(base_id, resolve_module_id(module_ref, base_id))


def module_ids_for_file(path: str, config: ModuleConfig) -> List[str]:
    """
    Every module id a source file is reachable by.

    Args:
        path: '/'-separated path of the source file, relative to the
            directory holding module.conf (e.g. "src/common/tpl.js")
        config: Module configuration providing baseUrl, paths and packages

    Returns:
        Ids in registration order: one id per matching ``paths`` alias in
        module.conf order, then the baseUrl-relative id, then package ids
        (bare package name before its main module). Empty when the file is
        outside baseUrl and every package.

    Examples:
        >>> config = ModuleConfig.model_validate({"baseUrl": "src", "paths": {"tpl": "common/tpl"}})
        >>> module_ids_for_file("src/common/tpl.js", config)
        ['tpl', 'common/tpl']
    """
    base_url = posixpath.normpath(config.base_url or ".")
    file_path = posixpath.normpath(path)
    if file_path.endswith(".js"):
        file_path = file_path[:-3]

    ids: List[str] = []

    def add(module_id: str) -> None:
        if module_id and module_id not in ids:
            ids.append(module_id)

    def relative_to(root: str) -> Optional[str]:
        rel = posixpath.relpath(file_path, root)
        if rel == "." or rel.startswith("../") or rel == "..":
            return None
        return rel

    base_id = relative_to(base_url)
    if base_id is not None:
        # aliases first, in module.conf order: the first id is canonical
        for alias, target in config.paths.items():
            target = posixpath.normpath(target)
            if prefix_matches(target, base_id):
                add(alias + base_id[len(target) :])
        add(base_id)

    for package in config.packages:
        if not package.location:
            continue
        location = posixpath.normpath(posixpath.join(base_url, package.location))
        rel = relative_to(location)
        if rel is None:
            continue
        if rel == package.main_name:
            add(package.name)
        add(f"{package.name}/{rel}")

    return ids
