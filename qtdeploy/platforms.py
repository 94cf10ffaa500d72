"""Platform strategies for inspecting and laying out Qt runtime dependencies.

A deployment targets exactly one platform. The strategy is chosen once by
`select_platform` and consumed everywhere else, so no other module needs to
branch on the operating system.
"""

from __future__ import annotations

import posixpath
import re
import shlex
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from qtdeploy.errors import FormatMismatch
from qtdeploy.layout import framework_contents, framework_layout
from qtdeploy.tool_output import parse_dumpbin_output, parse_otool_output

if TYPE_CHECKING:
    from qtdeploy.layout import QtModuleInfo

# @rpath/QtCore.framework/Versions/A/QtCore -> QtCore.framework/Versions/A/QtCore
_RPATH_FRAMEWORK_RE = re.compile(r"^@rpath/(?P<relative>(?P<name>.+)\.framework/Versions/A/(?P=name))$")

PLATFORM_CHOICES = ("macos", "windows")


def _capitalize(name: str) -> str:
    return name[:1].upper() + name[1:] if name else name


def split_command(command: str) -> tuple[str, ...]:
    parts = tuple(shlex.split(command))
    if not parts:
        raise ValueError("Tool command cannot be empty.")
    return parts


class DeployPlatform(ABC):
    """Everything about a deployment that depends on the target OS."""

    name: str
    library_install_dir: str
    plugin_install_dir: str
    qml_install_dir: str

    def __init__(self, namespace_prefix: str = "Qt", debug: bool = False) -> None:
        self.namespace_prefix = namespace_prefix
        self.debug = debug

    @property
    @abstractmethod
    def tool_name(self) -> str:
        ...

    @property
    @abstractmethod
    def library_dir(self) -> str:
        """Qt directory the runtime libraries are deployed from."""

    @abstractmethod
    def inspect_argv(self, binary: str) -> tuple[str, ...]:
        """Command line of the dependency inspection tool for `binary`."""

    @abstractmethod
    def parse_dependencies(self, binary: str, output: str) -> tuple[str, ...]:
        """Absolute paths of the in-namespace libraries `binary` links against."""

    @abstractmethod
    def plugin_file_name(self, plugin_name: str) -> str:
        ...

    @abstractmethod
    def expand_to_install_paths(self, library: str) -> tuple[str, ...]:
        """All files that must be installed to ship `library`."""

    def default_linker_name(self, module_name: str) -> str:
        """Library name a Qt module links as when the build does not name one."""
        return f"{self.namespace_prefix}{_capitalize(module_name)}"

    @abstractmethod
    def module_library_path(self, linker_name: str) -> str:
        ...

    @abstractmethod
    def module_binary_files(self, module: QtModuleInfo) -> tuple[str, ...]:
        ...


class MacOSFrameworkPlatform(DeployPlatform):
    """Qt built as frameworks, inspected with `otool -L`."""

    name = "macos"
    library_install_dir = "Frameworks"
    plugin_install_dir = "PlugIns"
    qml_install_dir = "Resources/qml"

    def __init__(
        self,
        lib_path: str = "",
        otool: str = "otool",
        arch: str = "arm64",
        namespace_prefix: str = "Qt",
        debug: bool = False,
    ) -> None:
        super().__init__(namespace_prefix=namespace_prefix, debug=debug)
        self.lib_path = lib_path
        self.otool = otool
        self.arch = arch

    @property
    def tool_name(self) -> str:
        return "otool"

    @property
    def library_dir(self) -> str:
        return self.lib_path

    def inspect_argv(self, binary: str) -> tuple[str, ...]:
        return (*split_command(self.otool), "-L", binary, "-arch", self.arch)

    def parse_dependencies(self, binary: str, output: str) -> tuple[str, ...]:
        rpath_prefix = f"@rpath/{self.namespace_prefix}"
        deps: list[str] = []
        for dep in parse_otool_output(binary, output):
            if not dep.startswith(rpath_prefix):
                continue
            match = _RPATH_FRAMEWORK_RE.match(dep)
            if not match:
                raise FormatMismatch("otool", dep, "expected a versioned framework reference")
            deps.append(posixpath.join(self.lib_path, match.group("relative")))
        return tuple(deps)

    def plugin_file_name(self, plugin_name: str) -> str:
        return f"lib{plugin_name}.dylib"

    def expand_to_install_paths(self, library: str) -> tuple[str, ...]:
        return framework_contents(library)

    def module_library_path(self, linker_name: str) -> str:
        return posixpath.join(self.lib_path, f"{linker_name}.framework", linker_name)

    def module_binary_files(self, module: QtModuleInfo) -> tuple[str, ...]:
        suffix = ".framework/"
        index = module.lib_file_path.rfind(suffix)
        if index < 0:
            raise FormatMismatch(
                "framework", module.lib_file_path, f"Qt module `{module.name}` is not a framework"
            )
        framework_path = module.lib_file_path[: index + len(suffix) - 1]
        return framework_layout(framework_path, posixpath.basename(module.lib_file_path))


class WindowsDllPlatform(DeployPlatform):
    """Qt built as flat DLLs, inspected with `dumpbin /dependents`."""

    name = "windows"
    library_install_dir = ""
    plugin_install_dir = "plugins"
    qml_install_dir = "qml"

    def __init__(
        self,
        bin_path: str = "",
        toolchain_path: str = "",
        qt_major_version: str = "6",
        namespace_prefix: str = "Qt",
        debug: bool = False,
    ) -> None:
        super().__init__(namespace_prefix=namespace_prefix, debug=debug)
        self.bin_path = bin_path
        self.toolchain_path = toolchain_path
        self.qt_major_version = qt_major_version

    @property
    def tool_name(self) -> str:
        return "dumpbin"

    @property
    def library_dir(self) -> str:
        return self.bin_path

    @property
    def debug_suffix(self) -> str:
        return "d" if self.debug else ""

    def inspect_argv(self, binary: str) -> tuple[str, ...]:
        dumpbin = posixpath.join(self.toolchain_path, "dumpbin.exe")
        return (dumpbin, "/nologo", "/dependents", binary)

    def parse_dependencies(self, binary: str, output: str) -> tuple[str, ...]:
        # The namespace filter deliberately ignores the debug suffix.
        return tuple(
            posixpath.join(self.bin_path, dep)
            for dep in parse_dumpbin_output(binary, output, self.namespace_prefix)
        )

    def plugin_file_name(self, plugin_name: str) -> str:
        return f"{plugin_name}{self.debug_suffix}.dll"

    def expand_to_install_paths(self, library: str) -> tuple[str, ...]:
        return (library,)

    def default_linker_name(self, module_name: str) -> str:
        # Qt6Core.dll, not QtCore.dll.
        return f"{self.namespace_prefix}{self.qt_major_version}{_capitalize(module_name)}"

    def module_library_path(self, linker_name: str) -> str:
        return posixpath.join(self.bin_path, f"{linker_name}.dll")

    def module_binary_files(self, module: QtModuleInfo) -> tuple[str, ...]:
        basename = posixpath.basename(module.lib_name_for_linker).split(".", 1)[0]
        return (posixpath.join(self.bin_path, f"{basename}{self.debug_suffix}.dll"),)


def select_platform(
    name: str,
    *,
    lib_path: str = "",
    bin_path: str = "",
    otool: str = "otool",
    toolchain_path: str = "",
    arch: str = "arm64",
    qt_major_version: str = "6",
    namespace_prefix: str = "Qt",
    debug: bool = False,
) -> DeployPlatform:
    if name == "macos":
        return MacOSFrameworkPlatform(
            lib_path=lib_path,
            otool=otool,
            arch=arch,
            namespace_prefix=namespace_prefix,
            debug=debug,
        )
    if name == "windows":
        return WindowsDllPlatform(
            bin_path=bin_path,
            toolchain_path=toolchain_path,
            qt_major_version=qt_major_version,
            namespace_prefix=namespace_prefix,
            debug=debug,
        )
    raise ValueError(f"Unknown deployment platform `{name}`. Valid choices: {', '.join(PLATFORM_CHOICES)}")
