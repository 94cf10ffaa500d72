"""Unit tests for Qt deployment rule helper functions."""

from __future__ import annotations

import pytest
from pants.build_graph.address import Address

from qtdeploy.layout import QmlImport, module_library_files
from qtdeploy.platforms import MacOSFrameworkPlatform, WindowsDllPlatform
from qtdeploy.providers import ScannedQmlImports
from qtdeploy.rules import (
    _dedupe,
    _qml_imports_as_entries,
    _qt_module_info,
    _target_output_dir,
    _tool_process_env,
)

QT_LIB = "/opt/Qt/6.8.0/macos/lib"
QT_BIN = "C:/Qt/6.8.0/msvc2022_64/bin"


class TestDedupe:
    """Tests for _dedupe helper function."""

    def test_empty_list(self) -> None:
        assert _dedupe([]) == ()

    def test_preserves_order(self) -> None:
        assert _dedupe(["b", "a", "b", "c", "a"]) == ("b", "a", "c")


class TestTargetOutputDir:
    """Tests for _target_output_dir helper function."""

    def test_target_with_spec_path(self) -> None:
        address = Address("src/app", target_name="bundle")
        assert _target_output_dir("layout", address) == "__pants_qtdeploy__/layout/src/app/bundle"

    def test_target_at_root(self) -> None:
        address = Address("", target_name="root")
        assert _target_output_dir("layout", address) == "__pants_qtdeploy__/layout/_root_/root"

    def test_missing_target_name_uses_fallback(self) -> None:
        assert _target_output_dir("layout", Address("src")) == "__pants_qtdeploy__/layout/src/src"


class TestToolProcessEnv:
    def test_adds_absolute_tool_directories(self, monkeypatch: pytest.MonkeyPatch) -> None:
        class DummyQtDeploy:
            otool = "/usr/bin/otool"
            qmlimportscanner = "/opt/Qt/6.8.0/macos/libexec/qmlimportscanner"

        monkeypatch.setenv("PATH", "/bin")
        env = _tool_process_env(DummyQtDeploy())
        assert env["PATH"] == "/usr/bin:/opt/Qt/6.8.0/macos/libexec:/bin"

    def test_relative_tools_keep_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        class DummyQtDeploy:
            otool = "otool"
            qmlimportscanner = "qmlimportscanner"

        monkeypatch.setenv("PATH", "/bin")
        monkeypatch.setenv("HOME", "/home/dev")
        assert _tool_process_env(DummyQtDeploy()) == {"PATH": "/bin", "HOME": "/home/dev"}


class TestQtModuleInfo:
    """Tests for parsing `qt_modules` entries."""

    def test_default_linker_name(self, macos_platform: MacOSFrameworkPlatform) -> None:
        module = _qt_module_info("core", (), macos_platform)

        assert module.name == "core"
        assert module.lib_name_for_linker == "QtCore"
        assert module.lib_file_path == f"{QT_LIB}/QtCore.framework/QtCore"
        assert module.has_library is True
        assert module.is_static_library is False

    def test_windows_default_linker_name(self, windows_platform: WindowsDllPlatform) -> None:
        module = _qt_module_info("core", (), windows_platform)

        assert module.lib_name_for_linker == "Qt6Core"
        assert module.lib_file_path == f"{QT_BIN}/Qt6Core.dll"
        assert module_library_files(module, windows_platform) == (f"{QT_BIN}/Qt6Core.dll",)

    def test_windows_debug_module_file(self, windows_debug_platform: WindowsDllPlatform) -> None:
        module = _qt_module_info("quick", (), windows_debug_platform)
        assert module_library_files(module, windows_debug_platform) == (f"{QT_BIN}/Qt6Quickd.dll",)

    def test_explicit_linker_name(self, macos_platform: MacOSFrameworkPlatform) -> None:
        module = _qt_module_info("quickcontrols2=Qt6QuickControls2", (), macos_platform)
        assert module.name == "quickcontrols2"
        assert module.lib_name_for_linker == "Qt6QuickControls2"

    def test_static_module(self, macos_platform: MacOSFrameworkPlatform) -> None:
        module = _qt_module_info("svg", ("svg",), macos_platform)
        assert module.is_static_library is True
        assert module.has_library is False

    def test_empty_name(self, macos_platform: MacOSFrameworkPlatform) -> None:
        with pytest.raises(ValueError, match="module name is empty"):
            _qt_module_info("=Qt6Core", (), macos_platform)


def test_qml_imports_as_entries() -> None:
    scanned = ScannedQmlImports(
        imports=(
            QmlImport(
                name="QtQuick",
                directory="/qml/QtQuick",
                plugin="qtquick2plugin",
                plugin_path="/qml/QtQuick/libqtquick2plugin.dylib",
            ),
        )
    )
    assert _qml_imports_as_entries(scanned) == [
        {"name": "QtQuick", "path": "/qml/QtQuick", "plugin": "qtquick2plugin"}
    ]
