"""Shared pytest fixtures for pants-qtdeploy tests."""

from __future__ import annotations

import pytest
from pants.engine.fs import Digest, DigestContents
from pants.engine.rules import QueryRule
from pants.testutil.option_util import create_subsystem
from pants.testutil.rule_runner import RuleRunner

from qtdeploy import rules as qtdeploy_rules
from qtdeploy.platforms import MacOSFrameworkPlatform, WindowsDllPlatform
from qtdeploy.providers import (
    ParsedQmlModule,
    QtDeployLayout,
    ResolvedRuntimeClosure,
    ScannedQmlImports,
)
from qtdeploy.rules import (
    BuildQtDeployLayoutRequest,
    ParseQmlModuleRequest,
    ResolveRuntimeClosureRequest,
    ScanQmlImportsRequest,
)
from qtdeploy.subsystem import QtDeploySubsystem
from qtdeploy.target_types import QtDeployBundle

QT_LIB = "/opt/Qt/6.8.0/macos/lib"
QT_BIN = "C:/Qt/6.8.0/msvc2022_64/bin"


@pytest.fixture
def macos_platform() -> MacOSFrameworkPlatform:
    """A macOS platform rooted at a fake Qt library directory."""
    return MacOSFrameworkPlatform(lib_path=QT_LIB, arch="arm64")


@pytest.fixture
def windows_platform() -> WindowsDllPlatform:
    """A release Windows platform rooted at a fake Qt binary directory."""
    return WindowsDllPlatform(bin_path=QT_BIN, toolchain_path="C:/VS/bin/Hostx64/x64")


@pytest.fixture
def windows_debug_platform() -> WindowsDllPlatform:
    return WindowsDllPlatform(bin_path=QT_BIN, toolchain_path="C:/VS/bin/Hostx64/x64", debug=True)


@pytest.fixture
def qt_deploy_subsystem() -> QtDeploySubsystem:
    """Create a QtDeploySubsystem for testing."""
    return create_subsystem(
        QtDeploySubsystem,
        platform="macos",
        otool="otool",
        toolchain_path="",
        qmlimportscanner="qmlimportscanner",
        arch="arm64",
        lib_path=QT_LIB,
        bin_path="",
        qt_major_version="6",
        plugins_path="/opt/Qt/6.8.0/macos/plugins",
        qml_path="/opt/Qt/6.8.0/macos/qml",
        namespace_prefix="Qt",
        debug=False,
        install_contents_path="Contents",
        bash="/bin/bash",
    )


def create_qtdeploy_rule_runner(*extra_target_types: type) -> RuleRunner:
    """Create a RuleRunner instance configured for Qt deployment testing."""
    return RuleRunner(
        target_types=[
            QtDeployBundle,
            *extra_target_types,
        ],
        rules=[
            *qtdeploy_rules.rules(),
            QueryRule(ResolvedRuntimeClosure, (ResolveRuntimeClosureRequest,)),
            QueryRule(ScannedQmlImports, (ScanQmlImportsRequest,)),
            QueryRule(ParsedQmlModule, (ParseQmlModuleRequest,)),
            QueryRule(QtDeployLayout, (BuildQtDeployLayoutRequest,)),
            QueryRule(DigestContents, (Digest,)),
        ],
    )


@pytest.fixture
def qtdeploy_rule_runner() -> RuleRunner:
    """Create a RuleRunner instance for Qt deployment testing."""
    return create_qtdeploy_rule_runner()
