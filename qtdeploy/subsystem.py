"""Subsystem options for the Qt toolchain used by the deployment backend."""

from __future__ import annotations

from pants.option.option_types import BoolOption, StrOption
from pants.option.subsystem import Subsystem

from qtdeploy.platforms import PLATFORM_CHOICES, DeployPlatform, select_platform


class QtDeploySubsystem(Subsystem):
    options_scope = "qt-deploy"
    help = "Qt toolchain and bundle layout configuration for the Qt deployment backend."

    platform = StrOption(
        default="macos",
        help=f"Target platform of the bundle. One of: {', '.join(PLATFORM_CHOICES)}.",
    )
    otool = StrOption(default="otool", help="Command used to invoke otool (macOS).")
    toolchain_path = StrOption(default="", help="Directory containing dumpbin.exe (Windows).")
    qmlimportscanner = StrOption(default="qmlimportscanner", help="Command used to invoke qmlimportscanner.")
    arch = StrOption(default="arm64", help="Architecture passed to `otool -arch`.")
    lib_path = StrOption(default="", help="Qt library directory holding the frameworks (macOS).")
    bin_path = StrOption(default="", help="Qt binary directory holding the DLLs (Windows).")
    qt_major_version = StrOption(
        default="6",
        help="Qt major version embedded in DLL names, e.g. `Qt6Core.dll` (Windows).",
    )
    plugins_path = StrOption(default="", help="Qt plugin directory.")
    qml_path = StrOption(default="", help="Qt QML import directory.")
    namespace_prefix = StrOption(
        default="Qt",
        help="Only libraries and QML imports whose name starts with this prefix are deployed.",
    )
    debug = BoolOption(default=False, help="Deploy debug builds of Qt DLLs and plugins (Windows).")
    install_contents_path = StrOption(
        default="Contents",
        help="Path of the bundle contents below the install root (empty for flat bundles).",
    )
    bash = StrOption(default="/bin/bash", help="Path to bash used for shell pipeline steps.")

    def deploy_platform(self) -> DeployPlatform:
        return select_platform(
            self.platform,
            lib_path=self.lib_path,
            bin_path=self.bin_path,
            otool=self.otool,
            toolchain_path=self.toolchain_path,
            qt_major_version=self.qt_major_version,
            arch=self.arch,
            namespace_prefix=self.namespace_prefix,
            debug=self.debug,
        )
