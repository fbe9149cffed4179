"""
Tests for ModuleRegistry.

Tests cover:
- Source binding and alias groups
- Missing sources
- Naming of anonymous definitions
- Parse memoization
- Package lookup
"""

import pytest

from amdpack_common import ModuleLookupError, ParseError
from amdpack_schema import ModuleConfig
from amdpack_sdk.build import AmdSourceService, ModuleRegistry, PackageDescriptor, get_package_info


class CountingSourceService(AmdSourceService):
    """Source service that records how often it parses."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def parse(self, source):
        self.calls += 1
        return super().parse(source)


@pytest.fixture
def package_config():
    return ModuleConfig.model_validate(
        {
            "baseUrl": "src",
            "packages": [
                {"name": "er", "location": "../dep/er/src"},
                {"name": "inf-ria", "location": "../dep/inf-ria/src", "main": "startup.js"},
            ],
        }
    )


class TestRegistration:
    """Test binding ids to sources."""

    def test_text_source_is_encoded(self):
        registry = ModuleRegistry()
        registry.register_module_ids(["app"], "define(function () {});")

        assert registry.get_source("app") == b"define(function () {});"

    def test_get_all_modules_keeps_registration_order(self, amd_source):
        registry = ModuleRegistry()
        registry.register_module_ids(["lib"], amd_source("lib"))
        registry.register_module_ids(["app"], amd_source("app"))
        registry.register_module_ids(["er", "er/main"], amd_source("er/main"))

        assert registry.get_all_modules() == ["lib", "app", "er", "er/main"]

    def test_alias_group(self, amd_source):
        registry = ModuleRegistry()
        registry.register_module_ids(["xtpl", "xtpl2", "common/xtpl"], amd_source("xtpl"))

        assert registry.get_alias_group("xtpl2") == ["xtpl", "xtpl2", "common/xtpl"]
        assert registry.get_source("common/xtpl") == registry.get_source("xtpl")

    def test_single_id_has_no_alias_group(self, amd_source):
        registry = ModuleRegistry()
        registry.register_module_ids(["app"], amd_source("app"))

        assert registry.get_alias_group("app") is None
        assert registry.get_alias_group("unknown") is None

    def test_first_alias_group_wins(self, amd_source):
        registry = ModuleRegistry()
        registry.register_module_ids(["a", "b"], amd_source("a"))
        registry.register_module_ids(["b", "c"], amd_source("b"))

        assert registry.get_alias_group("b") == ["a", "b"]
        assert registry.get_alias_group("c") is None

    def test_register_file(self, package_config, amd_source):
        registry = ModuleRegistry(package_config)

        assert registry.register_file("dep/er/src/main.js", amd_source("er/main")) == ["er", "er/main"]
        assert registry.register_file("src/app.js", amd_source("app")) == ["app"]
        assert registry.register_file("tools/build.js", amd_source("build")) == []
        assert registry.get_all_modules() == ["er", "er/main", "app"]
        assert registry.get_alias_group("er") == ["er", "er/main"]


class TestGetSource:
    def test_missing_source(self):
        registry = ModuleRegistry()

        with pytest.raises(ModuleLookupError) as exc_info:
            registry.get_source("nope")

        assert exc_info.value.module_id == "nope"
        assert exc_info.value.code == "MODULE_NOT_FOUND"
        assert str(exc_info.value) == "Get code failed, moduleId = nope"

    def test_missing_source_is_lookup_error(self):
        with pytest.raises(LookupError):
            ModuleRegistry().get_module_record("nope")


class TestGetPackage:
    def test_package_name_and_main(self, package_config):
        expected = PackageDescriptor(name="er", location="../dep/er/src", main="main", module="er/main")

        assert get_package_info("er", package_config) == expected
        assert get_package_info("er/main", package_config) == expected

    def test_custom_main(self, package_config):
        assert get_package_info("inf-ria", package_config).module == "inf-ria/startup"

    def test_not_a_package(self, package_config):
        assert get_package_info("er/View", package_config) is None
        assert get_package_info("app", package_config) is None


class TestGetModuleRecord:
    """Test parsing and naming definitions."""

    def test_anonymous_definition_named_after_module(self, amd_source):
        registry = ModuleRegistry()
        registry.register_module_ids(["app"], amd_source("app", ["./lib"]))

        record = registry.get_module_record("app")

        assert record.defined_ids == ["app"]
        assert record.package is None
        assert record.definitions[0].actual_dependencies == ["./lib"]

    def test_anonymous_definition_named_after_package_main(self, package_config, amd_source):
        registry = ModuleRegistry(package_config)
        registry.register_module_ids(["inf-ria", "inf-ria/startup"], amd_source("startup"))

        record = registry.get_module_record("inf-ria")

        assert record.defined_ids == ["inf-ria/startup"]
        assert record.package.name == "inf-ria"

    def test_named_definition_kept(self):
        registry = ModuleRegistry()
        registry.register_module_ids(["bar"], b"define('foo', [], function () {});")

        assert registry.get_module_record("bar").defined_ids == ["foo"]

    def test_several_named_definitions(self):
        registry = ModuleRegistry()
        registry.register_module_ids(["ab"], b"define('a', [], {});\ndefine('b', ['a'], {});")

        assert registry.get_module_record("ab").defined_ids == ["a", "b"]

    def test_mixed_anonymous_definitions_rejected(self):
        registry = ModuleRegistry()
        registry.register_module_ids(["mixed"], b"define('a', [], {});\ndefine([], {});")

        with pytest.raises(ParseError, match="moduleId = mixed"):
            registry.get_module_record("mixed")

    def test_parse_error_names_module(self):
        registry = ModuleRegistry()
        registry.register_module_ids(["broken"], b"define(function () {")

        with pytest.raises(ParseError) as exc_info:
            registry.get_module_record("broken")

        assert exc_info.value.module_id == "broken"
        assert exc_info.value.message == "Parse code failed, moduleId = broken"

    def test_parsed_definitions_not_mutated(self, amd_source):
        registry = ModuleRegistry()
        registry.register_module_ids(["app"], amd_source("app"))

        record = registry.get_module_record("app")

        assert record.parsed.definitions[0].id is None

    def test_memoized(self, amd_source):
        service = CountingSourceService()
        registry = ModuleRegistry(source_service=service)
        registry.register_module_ids(["app"], amd_source("app"))

        first = registry.get_module_record("app")
        second = registry.get_module_record("app")

        assert first is second
        assert service.calls == 1

    def test_reregistration_invalidates(self, amd_source):
        service = CountingSourceService()
        registry = ModuleRegistry(source_service=service)
        registry.register_module_ids(["app"], amd_source("app"))
        registry.get_module_record("app")

        registry.register_module_ids(["app"], amd_source("app", ["lib"]))

        assert registry.get_module_record("app").definitions[0].dependencies == ["lib"]
        assert service.calls == 2


def test_render(amd_source, rendered):
    registry = ModuleRegistry()
    registry.register_module_ids(["app"], amd_source("app", ["./lib", "er"]))

    assert registry.render(registry.get_module_record("app")) == rendered("app", ["./lib", "er"])
