"""Map resolved Qt artifacts to their install locations inside a bundle.

Everything here is a pure function over paths: nothing touches the
filesystem or runs a process.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable

from qtdeploy.errors import FormatMismatch, MalformedPluginReference

if TYPE_CHECKING:
    from qtdeploy.platforms import DeployPlatform
    from qtdeploy.qmldir import ModuleDescriptor

_FRAMEWORK_LIB_RE = re.compile(r"^(?P<framework>(?:.*/)?(?P<name>[^/]+)\.framework)/.+/(?P=name)$")

FRAMEWORK_VERSION = "A"


@dataclass(frozen=True)
class QtModuleInfo:
    """What the build knows about one linked Qt module."""

    name: str
    has_library: bool = True
    is_static_library: bool = False
    lib_name_for_linker: str = ""
    lib_file_path: str = ""


@dataclass(frozen=True)
class PluginReference:
    plugin_type: str
    name: str


@dataclass(frozen=True)
class QmlImport:
    """A QML import reported by qmlimportscanner, with its plugin binary."""

    name: str
    directory: str
    plugin: str
    plugin_path: str


@dataclass(frozen=True)
class InstallEntry:
    source: str
    destination: str


def framework_layout(framework_path: str, framework_name: str) -> tuple[str, ...]:
    versions_path = f"{framework_path}/Versions"
    version_path = f"{versions_path}/{FRAMEWORK_VERSION}"
    return (
        f"{framework_path}/{framework_name}",
        f"{framework_path}/Resources",
        f"{versions_path}/Current",
        f"{version_path}/Resources/Info.plist",
        f"{version_path}/{framework_name}",
    )


def framework_contents(framework_lib_path: str) -> tuple[str, ...]:
    """Expand the binary inside a framework to every file the framework needs.

    `framework_lib_path` must look like ``.../Name.framework/<anything>/Name``.
    """
    match = _FRAMEWORK_LIB_RE.match(framework_lib_path)
    if not match:
        raise FormatMismatch("framework", framework_lib_path, "invalid framework library path")
    return framework_layout(match.group("framework"), match.group("name"))


def module_library_files(module: QtModuleInfo, platform: DeployPlatform) -> tuple[str, ...]:
    # `core` always ships a library even when the build does not say so.
    if module.name != "core" and not module.has_library:
        return ()
    if module.is_static_library:
        return ()
    return platform.module_binary_files(module)


def parse_plugin_reference(reference: str) -> PluginReference:
    parts = reference.split("/")
    if len(parts) != 2 or not all(parts):
        raise MalformedPluginReference(reference)
    return PluginReference(plugin_type=parts[0], name=parts[1])


def plugin_names_to_file_names(references: Iterable[str], platform: DeployPlatform) -> tuple[str, ...]:
    """Turn ``plugintype/pluginname`` references into plugin paths relative to the plugin root."""
    file_names: list[str] = []
    for reference in references:
        plugin = parse_plugin_reference(reference)
        file_names.append(posixpath.join(plugin.plugin_type, platform.plugin_file_name(plugin.name)))
    return tuple(file_names)


def collect_qml_imports(entries: Iterable[dict[str, Any]], platform: DeployPlatform) -> tuple[QmlImport, ...]:
    """Keep the scanner entries that carry an in-namespace plugin."""
    imports: list[QmlImport] = []
    for entry in entries:
        plugin = entry.get("plugin")
        name = entry.get("name") or ""
        if not plugin or not name.startswith(platform.namespace_prefix):
            continue
        directory = entry.get("path") or ""
        imports.append(
            QmlImport(
                name=name,
                directory=directory,
                plugin=plugin,
                plugin_path=posixpath.join(directory, platform.plugin_file_name(plugin)),
            )
        )
    return tuple(imports)


def module_uri_to_path(uri: str) -> str:
    return uri.replace(".", "/")


def qml_module_files(descriptor: ModuleDescriptor, module_dir: str) -> tuple[str, ...]:
    """Source files of one QML module: its qmldir, component files and plugins."""
    files = [posixpath.join(module_dir, "qmldir")]
    files.extend(posixpath.join(module_dir, path) for path in sorted(descriptor.files))
    files.extend(posixpath.join(module_dir, plugin) for plugin in sorted(descriptor.plugins))
    return tuple(files)


def to_target_path(
    file_path: str,
    from_dir: str,
    install_root: str,
    contents_path: str,
    install_dir: str,
) -> str:
    """Rebase `file_path` from `from_dir` onto ``install_root/contents_path/install_dir``."""
    base = from_dir.rstrip("/")
    if file_path != base and not file_path.startswith(f"{base}/"):
        raise ValueError(f"`{file_path}` is not located under `{from_dir}`")
    relative = file_path[len(base) :].lstrip("/")
    target_dir = posixpath.join(install_root, contents_path, install_dir)
    return posixpath.join(target_dir, relative) if relative else target_dir.rstrip("/")


def install_entries(
    files: Iterable[str],
    from_dir: str,
    install_root: str,
    contents_path: str,
    install_dir: str,
) -> tuple[InstallEntry, ...]:
    return tuple(
        InstallEntry(
            source=path,
            destination=to_target_path(path, from_dir, install_root, contents_path, install_dir),
        )
        for path in files
    )
