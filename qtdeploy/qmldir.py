"""Parser for QML module definition (`qmldir`) files.

Each line is one statement. The statement kind is chosen by its leading
keyword, and a line that starts with a known keyword but does not match the
full form of that statement is an error: a module deployed from a partially
understood qmldir would silently miss files.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from typing import Callable, Union

from qtdeploy.errors import GrammarError
from qtdeploy.platforms import DeployPlatform

_VERSION = r"(?:auto|\d+(?:\.\d+)*)"

_MODULE_RE = re.compile(r"^module\s+(?P<name>[\w.]+)?$")
_PLUGIN_RE = re.compile(r"^(?P<optional>optional\s+)?plugin\s+(?P<name>\w+)(?:\s+(?P<path>[\w/]+))?$")
_DEPENDS_RE = re.compile(rf"^depends\s+(?P<name>[\w.]+)(?:\s+(?P<version>{_VERSION}))?$")
_IMPORT_RE = re.compile(
    rf"^(?:default\s+)?(?P<optional>optional\s+)?import\s+(?P<name>[\w.]+)\s+(?P<version>{_VERSION})$"
)
_TYPEINFO_RE = re.compile(r"^typeinfo\s+(?P<path>.+)$")
_INTERNAL_RE = re.compile(r"^internal\s+(?P<name>\w+)\s+(?P<path>.+)$")
_OBJECT_RE = re.compile(r"^(?:singleton\s+)?(?P<name>\w+)\s+(?P<version>\d+\.\d+)\s+(?P<path>.+)$")

IGNORED_KEYWORDS = frozenset({"linktarget", "prefer", "classname", "designersupported", "system"})


@dataclass(frozen=True)
class IgnoredStatement:
    """Comments, blank lines and keywords that do not affect deployment."""


@dataclass(frozen=True)
class ModuleStatement:
    name: str


@dataclass(frozen=True)
class PluginStatement:
    file_name: str
    optional: bool = False


@dataclass(frozen=True)
class DependsStatement:
    name: str


@dataclass(frozen=True)
class ImportStatement:
    name: str
    optional: bool = False


@dataclass(frozen=True)
class TypeInfoStatement:
    path: str


@dataclass(frozen=True)
class InternalStatement:
    name: str
    path: str


@dataclass(frozen=True)
class ObjectStatement:
    name: str
    version: str
    path: str


Statement = Union[
    IgnoredStatement,
    ModuleStatement,
    PluginStatement,
    DependsStatement,
    ImportStatement,
    TypeInfoStatement,
    InternalStatement,
    ObjectStatement,
]


@dataclass(frozen=True)
class ModuleDescriptor:
    """Everything a qmldir says about deploying its module."""

    module: str = ""
    plugins: frozenset[str] = field(default_factory=frozenset)
    depends: frozenset[str] = field(default_factory=frozenset)
    imports: frozenset[str] = field(default_factory=frozenset)
    optional_imports: frozenset[str] = field(default_factory=frozenset)
    files: frozenset[str] = field(default_factory=frozenset)


def _match(pattern: re.Pattern[str], line: str, raw_line: str, kind: str) -> re.Match[str]:
    match = pattern.match(line)
    if not match:
        raise GrammarError(raw_line, kind)
    return match


def _parse_module(line: str, raw_line: str, platform: DeployPlatform) -> Statement:
    match = _match(_MODULE_RE, line, raw_line, "module")
    return ModuleStatement(name=match.group("name") or "")


def _parse_plugin(line: str, raw_line: str, platform: DeployPlatform) -> Statement:
    match = _match(_PLUGIN_RE, line, raw_line, "plugin")
    file_name = platform.plugin_file_name(match.group("name"))
    if match.group("path"):
        file_name = posixpath.join(match.group("path"), file_name)
    return PluginStatement(file_name=file_name, optional=bool(match.group("optional")))


def _parse_depends(line: str, raw_line: str, platform: DeployPlatform) -> Statement:
    match = _match(_DEPENDS_RE, line, raw_line, "depends")
    return DependsStatement(name=match.group("name"))


def _parse_import(line: str, raw_line: str, platform: DeployPlatform) -> Statement:
    match = _match(_IMPORT_RE, line, raw_line, "import")
    return ImportStatement(name=match.group("name"), optional=bool(match.group("optional")))


def _parse_typeinfo(line: str, raw_line: str, platform: DeployPlatform) -> Statement:
    match = _match(_TYPEINFO_RE, line, raw_line, "typeinfo")
    return TypeInfoStatement(path=match.group("path"))


def _parse_internal(line: str, raw_line: str, platform: DeployPlatform) -> Statement:
    match = _match(_INTERNAL_RE, line, raw_line, "internal")
    return InternalStatement(name=match.group("name"), path=match.group("path"))


def _parse_object(line: str, raw_line: str, platform: DeployPlatform) -> Statement:
    match = _match(_OBJECT_RE, line, raw_line, "object declaration")
    return ObjectStatement(name=match.group("name"), version=match.group("version"), path=match.group("path"))


_StatementParser = Callable[[str, str, DeployPlatform], Statement]

_PARSERS: dict[str, _StatementParser] = {
    "module": _parse_module,
    "plugin": _parse_plugin,
    "depends": _parse_depends,
    "import": _parse_import,
    "typeinfo": _parse_typeinfo,
    "internal": _parse_internal,
}

# Modifiers that may precede a keyword, mapped to the keywords they may precede.
_MODIFIERS: dict[str, frozenset[str]] = {
    "optional": frozenset({"plugin", "import"}),
    "default": frozenset({"import"}),
}


def _keyword(words: list[str]) -> str:
    for word in words:
        if word not in _MODIFIERS:
            return word
    return ""


def parse_statement(raw_line: str, platform: DeployPlatform) -> Statement:
    """Parse one qmldir line into its statement variant."""
    line = raw_line.rstrip("\r\n")
    if not line.strip() or line.startswith("#"):
        return IgnoredStatement()
    if line[0].isspace():
        # Keywords only count at the start of a line.
        return _parse_object(line, raw_line, platform)

    words = line.split()
    if words[0] in IGNORED_KEYWORDS:
        return IgnoredStatement()

    keyword = _keyword(words)
    if words[0] in _MODIFIERS and keyword not in _MODIFIERS[words[0]]:
        # `optional Foo 1.0 Foo.qml` is neither a plugin nor an import.
        return _parse_object(line, raw_line, platform)
    parser = _PARSERS.get(keyword, _parse_object)
    return parser(line, raw_line, platform)


def parse_qmldir(text: str, platform: DeployPlatform) -> ModuleDescriptor:
    """Parse the contents of a qmldir file.

    A later `module` line replaces an earlier one. Plugin names are turned into
    platform file names right away, since they are only ever used as files.
    """
    module = ""
    plugins: set[str] = set()
    depends: set[str] = set()
    imports: set[str] = set()
    optional_imports: set[str] = set()
    files: set[str] = set()

    for raw_line in text.splitlines():
        statement = parse_statement(raw_line, platform)
        if isinstance(statement, IgnoredStatement):
            continue
        elif isinstance(statement, ModuleStatement):
            module = statement.name
        elif isinstance(statement, PluginStatement):
            plugins.add(statement.file_name)
        elif isinstance(statement, DependsStatement):
            depends.add(statement.name)
        elif isinstance(statement, ImportStatement):
            (optional_imports if statement.optional else imports).add(statement.name)
        elif isinstance(statement, (TypeInfoStatement, InternalStatement, ObjectStatement)):
            files.add(statement.path)
        else:
            raise TypeError(f"Unhandled qmldir statement: {statement!r}")

    return ModuleDescriptor(
        module=module,
        plugins=frozenset(plugins),
        depends=frozenset(depends),
        imports=frozenset(imports),
        optional_imports=frozenset(optional_imports),
        files=frozenset(files),
    )
