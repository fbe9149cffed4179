"""
Bundle Engine
=============

Walks the dependency graph of one entry module and stitches the inlined
modules into a single text, dependencies first, each module exactly once.

The walk is depth-first in declaration order and runs on an explicit stack.
Every frame shares one ``TraversalContext``; its classifier is the exclusion
ledger for the whole call. A dependency is marked excluded before the walk
descends into it, which is what stops cycles and de-duplicates diamonds.

Without a classifier the engine only emits the entry itself plus its alias or
package proxies.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

from amdpack_common import BundleDefaults, get_logger

from .dependency_mapper import DependencyMapper
from .pattern_classifier import PatternClassifier
from .registry import ModuleRecord, ModuleRegistry
from .source_service import quote_module_id

logger = get_logger("build.engine")


@dataclass
class Fragment:
    """One emitted piece of the bundle."""

    text: str
    proxy: bool = False


@dataclass
class TraversalContext:
    """State shared by every step of one top-level bundle call."""

    classifier: Optional[PatternClassifier]
    fragments: List[Fragment] = field(default_factory=list)
    emitted: List[str] = field(default_factory=list)
    """Module ids in emission order"""


@dataclass
class _Frame:
    module_id: str
    record: ModuleRecord
    pending: Iterator[str]


def join_fragments(fragments: Sequence[Fragment]) -> str:
    """
    Join fragments with a blank line; proxies get one more on each side.

    Surrounding whitespace of each fragment is dropped, so a source file's
    trailing newline never adds to the separator.

    Examples:
        >>> join_fragments([Fragment("a"), Fragment("b")])
        'a\\n\\nb'

        >>> join_fragments([Fragment("a"), Fragment("p", proxy=True), Fragment("b")])
        'a\\n\\n\\np\\n\\n\\nb'
    """
    parts: List[str] = []
    previous: Optional[Fragment] = None
    for fragment in fragments:
        text = fragment.text.strip()
        if not text:
            continue
        if previous is not None:
            parts.append(BundleDefaults.FRAGMENT_SEPARATOR)
            if fragment.proxy or previous.proxy:
                parts.append(BundleDefaults.PROXY_PADDING)
        parts.append(text)
        previous = fragment
    return "".join(parts)


class BundleEngine:
    """
    Produces the bundle text for one entry module.

    Example:
        >>> engine = BundleEngine("app", registry, PatternClassifier([], registry.get_all_modules()))
        >>> print(engine.bundle())
        define('lib', [], function () { return 'lib'; });

        define('app', ['./lib'], function () { return 'app'; });
    """

    def __init__(
        self,
        module_id: str,
        registry: ModuleRegistry,
        classifier: Optional[PatternClassifier] = None,
        mapper: Optional[DependencyMapper] = None,
    ):
        """
        Initialize the engine.

        Args:
            module_id: Entry module id
            registry: Source of module records
            classifier: Include/exclude state for this call; None means
                single-module mode
            mapper: Dependency id mapper, built from module.conf ``map``
                when omitted
        """
        self.module_id = module_id
        self.registry = registry
        self.classifier = classifier
        self.mapper = mapper or DependencyMapper(registry.config.map)

    def bundle(self) -> str:
        """
        Bundle the entry module.

        Returns:
            Joined text of every emitted module and proxy

        Raises:
            ModuleLookupError: If a reachable module has no source
            ParseError: If a reachable module cannot be parsed
        """
        context = TraversalContext(classifier=self.classifier)
        stack = [self._enter(self.module_id, context)]

        while stack:
            frame = stack[-1]
            dep_id = next(frame.pending, None)
            if dep_id is None:
                stack.pop()
                self._emit(frame, context)
                continue
            logger.debug("Inlining dependency", module_id=dep_id, parent=frame.module_id, depth=len(stack))
            stack.append(self._enter(dep_id, context))

        logger.info("Bundle built", module_id=self.module_id, modules=len(context.emitted))
        return join_fragments(context.fragments)

    def _enter(self, module_id: str, context: TraversalContext) -> _Frame:
        record = self.registry.get_module_record(module_id)
        classifier = context.classifier
        if classifier is None:
            return _Frame(module_id, record, iter(()))

        classifier.add_exclude(module_id)
        for defined_id in record.defined_ids:
            classifier.add_exclude(defined_id)

        # explicitly included modules join the walk as pseudo-definitions
        work: List[Tuple[str, List[str]]] = [
            (definition.id or module_id, definition.actual_dependencies) for definition in record.definitions
        ]
        work += [(included, [included]) for included in classifier.includes]
        return _Frame(module_id, record, self._dependencies(work, classifier))

    def _dependencies(self, work: List[Tuple[str, List[str]]], classifier: PatternClassifier) -> Iterator[str]:
        # lazy: each check must see the ledger as left by earlier subtrees
        for base_id, references in work:
            for reference in references:
                dep_id = self.mapper.normalize(reference, base_id)
                if classifier.is_excluded(dep_id):
                    continue
                classifier.add_exclude(dep_id)
                yield dep_id

    def _emit(self, frame: _Frame, context: TraversalContext) -> None:
        context.fragments.append(Fragment(self.registry.render(frame.record)))
        context.emitted.append(frame.module_id)

        package = frame.record.package
        if package is not None:
            if context.classifier is not None:
                context.classifier.add_exclude(package.name)
            text = BundleDefaults.PACKAGE_PROXY_TEMPLATE.format(
                name=quote_module_id(package.name),
                module=quote_module_id(package.module),
            )
            context.fragments.append(Fragment(text, proxy=True))
            return

        for alias in self.registry.get_alias_group(frame.module_id) or []:
            if alias == frame.module_id:
                continue
            if context.classifier is not None:
                if context.classifier.is_excluded(alias):
                    continue
                context.classifier.add_exclude(alias)
            text = BundleDefaults.ALIAS_PROXY_TEMPLATE.format(
                alias=quote_module_id(alias),
                target=quote_module_id(frame.module_id),
            )
            context.fragments.append(Fragment(text, proxy=True))
