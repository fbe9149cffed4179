"""Pytest configuration and fixtures for build system tests.

Module sources are generated the same way throughout: each module's factory
returns its own name, so rendered output shows which file produced it.
"""

import json
from typing import Callable, Optional, Sequence

import pytest

from amdpack_common import BundleDefaults
from amdpack_sdk.build import AmdSourceService, quote_module_id


def _quote(value: str) -> str:
    return "'" + value + "'"


@pytest.fixture
def amd_source() -> Callable[..., bytes]:
    """Build AMD source whose factory returns ``name``."""

    def make(name: str, deps: Optional[Sequence[str]] = None, newline: bool = False) -> bytes:
        factory = f'function () {{ return "{name}"; }}'
        if deps is None:
            text = f"define({factory});"
        else:
            text = f"define({json.dumps(list(deps))}, {factory});"
        return (text + ("\n" if newline else "")).encode("utf-8")

    return make


@pytest.fixture
def rendered() -> Callable[..., str]:
    """Expected bundle text for a module produced by ``amd_source``."""

    def render(module_id: str, deps: Sequence[str] = (), name: Optional[str] = None) -> str:
        dep_list = ", ".join(_quote(dep) for dep in deps)
        factory = f'function () {{ return "{name or module_id}"; }}'
        return f"define('{module_id}', [{dep_list}], {factory});"

    return render


@pytest.fixture
def package_proxy() -> Callable[[str, str], str]:
    def render(name: str, module: str) -> str:
        return BundleDefaults.PACKAGE_PROXY_TEMPLATE.format(name=quote_module_id(name), module=quote_module_id(module))

    return render


@pytest.fixture
def alias_proxy() -> Callable[[str, str], str]:
    def render(alias: str, target: str) -> str:
        return BundleDefaults.ALIAS_PROXY_TEMPLATE.format(alias=quote_module_id(alias), target=quote_module_id(target))

    return render


@pytest.fixture(scope="session")
def source_service() -> AmdSourceService:
    """One parser for the whole session."""
    return AmdSourceService()
