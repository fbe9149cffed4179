"""
Combine Pattern Classification
==============================

Decides, for one bundle call, which module ids are pulled into the bundle
(included), which are kept out (excluded) and which are left to the
dependency walk (unknown).

Patterns are evaluated left to right. A ``!`` pattern excludes, any other
pattern includes; a match only counts when its polarity differs from the
status reached so far, so the last opposite-polarity match wins:

    ["!er", "!er/**", "er/main", "er/View"]
        er            -> EXCLUDE
        er/main       -> INCLUDE
        er/controller -> EXCLUDE

Usage:
    from amdpack_sdk.build import PatternClassifier

    classifier = PatternClassifier(["!er/**", "er/main"], known_ids)
    classifier.is_included("er/main")   # True
    classifier.add_exclude("er/main")   # inlined, never emit again
"""

from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Union

from amdpack_common import RESERVED_MODULE_IDS, get_logger
from amdpack_schema import CombinePatternSpec

from .path_matcher import satisfy

logger = get_logger("build.classifier")

Matcher = Callable[[str, str], bool]


class ClassificationStatus(Enum):
    """Outcome of classifying one module id."""

    UNKNOWN = "unknown"
    """No pattern matched"""

    INCLUDE = "include"
    """Explicitly pulled into the bundle"""

    EXCLUDE = "exclude"
    """Kept out of the bundle, or already emitted"""


class PatternClassifier:
    """
    Include/exclude state for one top-level bundle call.

    The classifier owns a single ordered ``id -> status`` table. The include
    set and the exclusion ledger are both views over it, so an id can never
    be in both. The table only moves ids towards EXCLUDE once bundling
    starts (``add_exclude``); it is shared by every step of the traversal
    and must not be reused across top-level calls.

    Attributes:
        RESERVED_IDS: Loader-provided ids that are always excluded
    """

    RESERVED_IDS = RESERVED_MODULE_IDS

    def __init__(
        self,
        patterns: Optional[Iterable[str]] = None,
        known_ids: Iterable[str] = (),
        matcher: Matcher = satisfy,
    ):
        """
        Build the classifier and classify every known id once.

        Args:
            patterns: Ordered globs, ``!`` prefix marks an exclusion
            known_ids: Universe of registered module ids
            matcher: Glob primitive, ``satisfy`` by default

        Raises:
            ConfigError: If a pattern is malformed
        """
        self._patterns: List[str] = list(patterns or [])
        self._matcher = matcher
        self._status: Dict[str, ClassificationStatus] = {
            module_id: ClassificationStatus.EXCLUDE for module_id in self.RESERVED_IDS
        }

        for module_id in known_ids:
            self.classify(module_id)

        logger.debug(
            "PatternClassifier initialized",
            patterns=self._patterns,
            includes=len(self.includes),
            excludes=len(self.excludes),
        )

    @classmethod
    def from_combine_spec(
        cls,
        spec: Union[bool, int, CombinePatternSpec, None],
        known_ids: Iterable[str] = (),
    ) -> "PatternClassifier":
        """
        Build a classifier from a module.conf ``combine`` value.

        ``True`` (or any truthy number) means "combine with no patterns":
        every reachable dependency is inlined.
        """
        patterns = spec.patterns() if isinstance(spec, CombinePatternSpec) else []
        return cls(patterns, known_ids)

    @property
    def patterns(self) -> List[str]:
        return list(self._patterns)

    @property
    def includes(self) -> List[str]:
        """Included ids, most recently included last."""
        return [k for k, v in self._status.items() if v is ClassificationStatus.INCLUDE]

    @property
    def excludes(self) -> List[str]:
        """The exclusion ledger."""
        return [k for k, v in self._status.items() if v is ClassificationStatus.EXCLUDE]

    def _set_status(self, module_id: str, status: ClassificationStatus) -> None:
        # re-insert so the include set keeps "last included" order
        self._status.pop(module_id, None)
        self._status[module_id] = status

    def classify(self, module_id: str) -> ClassificationStatus:
        """
        Run ``module_id`` through the pattern list and record the outcome.

        Reserved ids are never reclassified.
        """
        if module_id in self.RESERVED_IDS:
            return ClassificationStatus.EXCLUDE

        status = ClassificationStatus.UNKNOWN
        for pattern in self._patterns:
            if pattern.startswith("!"):
                if status is not ClassificationStatus.EXCLUDE and self._matcher(module_id, pattern[1:]):
                    status = ClassificationStatus.EXCLUDE
            elif status is not ClassificationStatus.INCLUDE and self._matcher(module_id, pattern):
                status = ClassificationStatus.INCLUDE

        self._set_status(module_id, status)
        return status

    def status(self, module_id: str) -> ClassificationStatus:
        """Recorded status, classifying on demand for ids not seen yet."""
        status = self._status.get(module_id)
        if status is None:
            status = self.classify(module_id)
        return status

    def is_excluded(self, module_id: str) -> bool:
        """Check if a module must be kept out of the bundle."""
        return self.status(module_id) is ClassificationStatus.EXCLUDE

    def is_included(self, module_id: str) -> bool:
        """Check if a module is explicitly pulled into the bundle."""
        return self.status(module_id) is ClassificationStatus.INCLUDE

    def add_exclude(self, module_id: str) -> None:
        """
        Force ``module_id`` into the exclusion ledger.

        Used once a module's code is (about to be) emitted so later
        encounters short-circuit whatever the patterns say.
        """
        if self._status.get(module_id) is ClassificationStatus.EXCLUDE:
            return
        self._set_status(module_id, ClassificationStatus.EXCLUDE)
