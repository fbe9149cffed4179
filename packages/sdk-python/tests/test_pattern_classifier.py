"""
Tests for PatternClassifier.

Tests cover:
- Pattern list construction (files vs include/exclude)
- Left-to-right, opposite-polarity-overrides classification
- Include set / exclusion ledger mutual exclusion
- Reserved loader ids
- add_exclude semantics
"""

import pytest

from amdpack_common import ConfigError
from amdpack_schema import CombinePatternSpec
from amdpack_sdk.build import ClassificationStatus, PatternClassifier

RESERVED = {"require", "exports", "module"}

ER_UNIVERSE = ["er/main", "er/View", "er/controller", "er/google", "er/baidu", "er"]


class TestPatternClassifierConstruction:
    """Test building classifiers."""

    def test_empty(self):
        """No patterns: nothing included, only reserved ids excluded"""
        classifier = PatternClassifier(None, ["er/main", "esui/main", "etpl/main", "underscore"])

        assert classifier.patterns == []
        assert classifier.includes == []
        assert set(classifier.excludes) == RESERVED

    def test_files_spec(self):
        spec = CombinePatternSpec(files=["!jquery", "esui/main", "er/main"])
        classifier = PatternClassifier.from_combine_spec(spec, ["er/main", "esui/main", "etpl/main", "underscore"])

        assert classifier.patterns == ["!jquery", "esui/main", "er/main"]
        assert classifier.is_included("er/main")
        assert classifier.is_included("esui/main")
        assert set(classifier.excludes) == RESERVED

    def test_include_exclude_spec(self):
        spec = CombinePatternSpec(include=["esui/main", "er/main"], exclude=["jquery"])
        classifier = PatternClassifier.from_combine_spec(spec, ["er/main", "esui/main", "etpl/main", "underscore"])

        assert classifier.patterns == ["esui/main", "er/main", "!jquery"]
        assert classifier.is_included("er/main")
        assert classifier.is_included("esui/main")
        assert set(classifier.excludes) == RESERVED

    @pytest.mark.parametrize("setting", [True, 1])
    def test_boolean_spec_has_no_patterns(self, setting):
        classifier = PatternClassifier.from_combine_spec(setting, ["app", "lib"])

        assert classifier.patterns == []
        assert not classifier.is_excluded("lib")
        assert not classifier.is_included("lib")

    def test_malformed_pattern_raises(self):
        with pytest.raises(ConfigError):
            PatternClassifier(["er/[abc"], ["er/main"])


class TestClassificationOrder:
    """Test the left-to-right classification rule."""

    def test_exclude_then_include(self):
        """Later inclusions override earlier exclusions"""
        classifier = PatternClassifier(["!er", "!er/**", "er/main", "er/View"], ER_UNIVERSE)

        assert classifier.is_included("er/View")
        assert classifier.is_included("er/main")
        assert classifier.is_excluded("er/controller")
        assert classifier.is_excluded("er")
        assert set(classifier.excludes) == RESERVED | {"er", "er/baidu", "er/controller", "er/google"}

    def test_interleaved_patterns(self):
        """A later exclusion overrides an earlier inclusion"""
        classifier = PatternClassifier(["!er", "er/main", "!er/**", "er/View"], ER_UNIVERSE)

        assert classifier.is_included("er/View")
        assert not classifier.is_included("er/main")
        assert classifier.is_excluded("er/main")
        assert not classifier.is_included("er/google")
        assert classifier.is_excluded("er/google")
        assert set(classifier.excludes) == RESERVED | {
            "er",
            "er/controller",
            "er/baidu",
            "er/main",
            "er/google",
        }

    def test_same_polarity_match_is_noop(self):
        """Repeated same-polarity matches do not change the outcome"""
        classifier = PatternClassifier(["er/**", "er/main", "!er/View"], ER_UNIVERSE)

        assert classifier.classify("er/main") is ClassificationStatus.INCLUDE
        assert classifier.classify("er/View") is ClassificationStatus.EXCLUDE

    def test_no_match_is_unknown(self):
        classifier = PatternClassifier(["!er/**"], ["esui/main"])

        assert classifier.status("esui/main") is ClassificationStatus.UNKNOWN
        assert not classifier.is_included("esui/main")
        assert not classifier.is_excluded("esui/main")

    def test_ids_outside_universe_classified_on_demand(self):
        classifier = PatternClassifier(["!jquery/**", "jquery/core"], [])

        assert classifier.is_excluded("jquery/ajax")
        assert classifier.is_included("jquery/core")
        assert "jquery/core" in classifier.includes

    def test_custom_matcher(self):
        """The glob primitive is pluggable"""
        classifier = PatternClassifier(["!prefix"], ["prefix/a", "other"], matcher=lambda i, p: i.startswith(p))

        assert classifier.is_excluded("prefix/a")
        assert not classifier.is_excluded("other")


class TestClassifierInvariants:
    """Test properties that hold for every id."""

    PATTERNS = ["!er", "er/main", "!er/**", "er/View", "esui/*", "!esui/Button"]
    UNIVERSE = ER_UNIVERSE + ["esui/Button", "esui/Panel", "etpl", "require"]

    def test_never_included_and_excluded(self):
        classifier = PatternClassifier(self.PATTERNS, self.UNIVERSE)
        classifier.add_exclude("esui/Panel")

        for module_id in self.UNIVERSE + ["unknown/x"]:
            assert not (classifier.is_included(module_id) and classifier.is_excluded(module_id))
        assert not set(classifier.includes) & set(classifier.excludes)

    def test_repeated_queries_are_idempotent(self):
        classifier = PatternClassifier(self.PATTERNS, self.UNIVERSE)
        first = {m: (classifier.is_included(m), classifier.is_excluded(m)) for m in self.UNIVERSE}
        second = {m: (classifier.is_included(m), classifier.is_excluded(m)) for m in self.UNIVERSE}

        assert first == second

    def test_reserved_ids_always_excluded(self):
        """Loader ids stay excluded even when a pattern includes them"""
        classifier = PatternClassifier(["**"], ["require", "exports", "module", "app"])

        for module_id in RESERVED:
            assert classifier.is_excluded(module_id)
            assert not classifier.is_included(module_id)
        assert classifier.is_included("app")


class TestAddExclude:
    """Test add_exclude."""

    def test_add_exclude_overrides_patterns(self):
        classifier = PatternClassifier(["er/main"], ["er/main"])
        assert classifier.is_included("er/main")

        classifier.add_exclude("er/main")

        assert classifier.is_excluded("er/main")
        assert not classifier.is_included("er/main")
        assert "er/main" not in classifier.includes

    def test_add_exclude_unknown_id(self):
        classifier = PatternClassifier([], [])
        classifier.add_exclude("lib")

        assert classifier.is_excluded("lib")
        assert "lib" in classifier.excludes

    def test_add_exclude_is_idempotent(self):
        classifier = PatternClassifier([], [])
        classifier.add_exclude("lib")
        classifier.add_exclude("lib")

        assert classifier.excludes.count("lib") == 1

    def test_includes_keep_inclusion_order(self):
        classifier = PatternClassifier(["!er/**", "er/main", "er/View"], ["er/main", "er/View", "er/controller"])

        assert classifier.includes == ["er/main", "er/View"]
        classifier.add_exclude("er/main")
        assert classifier.includes == ["er/View"]
