"""Unit tests for the Qt deployment subsystem."""

from __future__ import annotations

from pants.testutil.option_util import create_subsystem

from qtdeploy.platforms import MacOSFrameworkPlatform, WindowsDllPlatform
from qtdeploy.subsystem import QtDeploySubsystem


class TestQtDeploySubsystem:
    """Tests for QtDeploySubsystem."""

    def test_options_scope(self) -> None:
        assert QtDeploySubsystem.options_scope == "qt-deploy"

    def test_tool_options_exist(self) -> None:
        for option in ("otool", "toolchain_path", "qmlimportscanner", "bash"):
            assert hasattr(QtDeploySubsystem, option), f"QtDeploySubsystem should have {option} option"

    def test_layout_options_exist(self) -> None:
        for option in ("lib_path", "bin_path", "qt_major_version", "plugins_path", "qml_path", "install_contents_path"):
            assert hasattr(QtDeploySubsystem, option)

    def test_deploy_platform_macos(self, qt_deploy_subsystem: QtDeploySubsystem) -> None:
        platform = qt_deploy_subsystem.deploy_platform()

        assert isinstance(platform, MacOSFrameworkPlatform)
        assert platform.lib_path == "/opt/Qt/6.8.0/macos/lib"
        assert platform.arch == "arm64"
        assert platform.namespace_prefix == "Qt"


def test_deploy_platform_windows() -> None:
    subsystem = create_subsystem(
        QtDeploySubsystem,
        platform="windows",
        otool="otool",
        toolchain_path="C:/VS/bin",
        qmlimportscanner="qmlimportscanner",
        arch="x64",
        lib_path="",
        bin_path="C:/Qt/bin",
        qt_major_version="6",
        plugins_path="C:/Qt/plugins",
        qml_path="C:/Qt/qml",
        namespace_prefix="Qt",
        debug=True,
        install_contents_path="",
        bash="/bin/bash",
    )

    platform = subsystem.deploy_platform()

    assert isinstance(platform, WindowsDllPlatform)
    assert platform.bin_path == "C:/Qt/bin"
    assert platform.plugin_file_name("qwindows") == "qwindowsd.dll"
    assert platform.default_linker_name("core") == "Qt6Core"
