"""Provider data structures for Qt deployment rules."""

from __future__ import annotations

from dataclasses import dataclass

from pants.engine.fs import Digest

from qtdeploy.layout import InstallEntry, QmlImport
from qtdeploy.qmldir import ModuleDescriptor


@dataclass(frozen=True)
class ResolvedRuntimeClosure:
    """Transitive in-namespace runtime libraries of one binary."""

    binary: str
    dependencies: tuple[str, ...]


@dataclass(frozen=True)
class ScannedQmlImports:
    imports: tuple[QmlImport, ...]


@dataclass(frozen=True)
class ParsedQmlModule:
    uri: str
    directory: str
    descriptor: ModuleDescriptor


@dataclass(frozen=True)
class QtDeployLayout:
    """Where every deployed Qt file comes from and where it goes in the bundle."""

    digest: Digest
    install_entries: tuple[InstallEntry, ...]
    dependency_list_path: str
    qml_imports_path: str
