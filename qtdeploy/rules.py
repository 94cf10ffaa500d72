"""Rules for resolving, scanning, and laying out Qt runtime deployments."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging
import os
import posixpath
import shlex

from pants.base.glob_match_error_behavior import GlobMatchErrorBehavior
from pants.build_graph.address import Address
from pants.engine.fs import (
    CreateDigest,
    Digest,
    DigestContents,
    FileContent,
    PathGlobs,
)
from pants.engine.internals.graph import resolve_target
from pants.engine.internals.selectors import Get, MultiGet
from pants.engine.process import Process, ProcessCacheScope, ProcessResult
from pants.engine.rules import collect_rules, implicitly, rule
from pants.engine.target import WrappedTarget, WrappedTargetRequest

from qtdeploy.closure import DependencyClosure
from qtdeploy.layout import (
    InstallEntry,
    QtModuleInfo,
    collect_qml_imports,
    install_entries,
    module_library_files,
    module_uri_to_path,
    plugin_names_to_file_names,
    qml_module_files,
)
from qtdeploy.platforms import DeployPlatform, split_command
from qtdeploy.providers import (
    ParsedQmlModule,
    QtDeployLayout,
    ResolvedRuntimeClosure,
    ScannedQmlImports,
)
from qtdeploy.qmldir import parse_qmldir
from qtdeploy.sidechannel import (
    format_dependency_list,
    format_qml_imports,
    merge_dependency_lists,
    merge_qml_imports,
    parse_qml_imports,
)
from qtdeploy.subsystem import QtDeploySubsystem
from qtdeploy.target_types import (
    QtDeployBinariesField,
    QtDeployBundle,
    QtDeployDependencyListsField,
    QtDeployInstallRootField,
    QtDeployQmlImportPathField,
    QtDeployQmlImportsFilesField,
    QtDeployQmlModulesField,
    QtDeployQrcFilesField,
    QtDeployQtModulesField,
    QtDeployQtPluginsField,
    QtDeployStaticQtModulesField,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolveRuntimeClosureRequest:
    binary: str


@dataclass(frozen=True)
class ScanQmlImportsRequest:
    qrc_files: tuple[str, ...]
    import_path: str


@dataclass(frozen=True)
class ParseQmlModuleRequest:
    uri: str


@dataclass(frozen=True)
class BuildQtDeployLayoutRequest:
    address: Address


def _dedupe(items: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return tuple(out)


def _target_output_dir(kind: str, address: Address) -> str:
    spec_path = address.spec_path if address.spec_path else "_root_"
    target_name = address.target_name or "_unnamed_"
    return f"__pants_qtdeploy__/{kind}/{spec_path}/{target_name}"


def _tool_process_env(qt_deploy: QtDeploySubsystem) -> dict[str, str]:
    tool_dirs: list[str] = []
    for command in (qt_deploy.otool, qt_deploy.qmlimportscanner):
        binary = split_command(command)[0]
        if os.path.isabs(binary):
            tool_dirs.append(str(Path(binary).parent))

    path_parts: list[str] = list(_dedupe(tool_dirs))
    existing_path = os.environ.get("PATH")
    if existing_path:
        path_parts.append(existing_path)

    env: dict[str, str] = {}
    if path_parts:
        env["PATH"] = ":".join(path_parts)

    home = os.environ.get("HOME")
    if home:
        env["HOME"] = home

    return env


def _qt_module_info(
    spec: str,
    static_modules: tuple[str, ...],
    platform: DeployPlatform,
) -> QtModuleInfo:
    """Describe a `qt_modules` entry: `name` or `name=libNameForLinker`."""
    name, sep, linker_name = spec.partition("=")
    name = name.strip()
    if not name:
        raise ValueError(f"Invalid Qt module `{spec}`: the module name is empty.")
    if not sep:
        linker_name = platform.default_linker_name(name)
    linker_name = linker_name.strip()
    return QtModuleInfo(
        name=name,
        has_library=name not in static_modules,
        is_static_library=name in static_modules,
        lib_name_for_linker=linker_name,
        lib_file_path=platform.module_library_path(linker_name),
    )


def _qml_imports_as_entries(scanned: ScannedQmlImports) -> list[dict[str, str]]:
    return [
        {"name": imp.name, "path": imp.directory, "plugin": imp.plugin}
        for imp in scanned.imports
    ]


async def _read_side_channel_files(
    paths: tuple[str, ...],
    field_alias: str,
    owner: Address,
) -> tuple[tuple[str, str], ...]:
    """`(path, text)` of the repository files a side-channel field names."""
    if not paths:
        return ()
    digest = await Get(
        Digest,
        PathGlobs(
            paths,
            glob_match_error_behavior=GlobMatchErrorBehavior.error,
            description_of_origin=f"the `{field_alias}` field on `{owner}`",
        ),
    )
    contents = await Get(DigestContents, Digest, digest)
    return tuple((file_content.path, file_content.content.decode()) for file_content in contents)


async def _resolve_wrapped_target(address: Address, description_of_origin: str) -> WrappedTarget:
    return await resolve_target(
        WrappedTargetRequest(address, description_of_origin=description_of_origin),
        **implicitly(),
    )


@rule(desc="Resolve Qt runtime dependencies")
async def resolve_runtime_closure(
    request: ResolveRuntimeClosureRequest,
    qt_deploy: QtDeploySubsystem,
) -> ResolvedRuntimeClosure:
    platform = qt_deploy.deploy_platform()
    closure = DependencyClosure(request.binary)

    while True:
        binary = closure.pop()
        if binary is None:
            break
        result = await Get(
            ProcessResult,
            Process(
                argv=platform.inspect_argv(binary),
                env=_tool_process_env(qt_deploy),
                description=f"Inspect runtime dependencies of {binary} with {platform.tool_name}",
                cache_scope=ProcessCacheScope.PER_SESSION,
            ),
        )
        closure.record(binary, platform.parse_dependencies(binary, result.stdout.decode()))

    logger.debug(f"{request.binary} needs {len(closure.resolved)} Qt libraries at runtime")
    return ResolvedRuntimeClosure(
        binary=request.binary,
        dependencies=tuple(sorted(closure.result())),
    )


@rule(desc="Scan QML imports")
async def scan_qml_imports(
    request: ScanQmlImportsRequest,
    qt_deploy: QtDeploySubsystem,
) -> ScannedQmlImports:
    platform = qt_deploy.deploy_platform()

    # qmlimportscanner also reads the QML files each resource collection lists.
    input_globs = _dedupe([posixpath.join(posixpath.dirname(qrc), "**") for qrc in request.qrc_files])
    input_digest = await Get(Digest, PathGlobs(input_globs))

    argv = [
        *split_command(qt_deploy.qmlimportscanner),
        "-qrcFiles",
        *request.qrc_files,
        "-importPath",
        request.import_path,
    ]
    result = await Get(
        ProcessResult,
        Process(
            argv=tuple(argv),
            env=_tool_process_env(qt_deploy),
            input_digest=input_digest,
            description=f"Scan QML imports of {', '.join(request.qrc_files)}",
            cache_scope=ProcessCacheScope.PER_SESSION,
        ),
    )

    imports = collect_qml_imports(parse_qml_imports(result.stdout.decode()), platform)
    return ScannedQmlImports(imports=imports)


@rule(desc="Parse QML module definition")
async def parse_qml_module(
    request: ParseQmlModuleRequest,
    qt_deploy: QtDeploySubsystem,
) -> ParsedQmlModule:
    directory = posixpath.join(qt_deploy.qml_path, module_uri_to_path(request.uri))
    qmldir_path = posixpath.join(directory, "qmldir")

    result = await Get(
        ProcessResult,
        Process(
            argv=(qt_deploy.bash, "-c", f"cat {shlex.quote(qmldir_path)}"),
            env=_tool_process_env(qt_deploy),
            description=f"Read qmldir of QML module {request.uri}",
            cache_scope=ProcessCacheScope.PER_SESSION,
        ),
    )

    descriptor = parse_qmldir(result.stdout.decode(), qt_deploy.deploy_platform())
    return ParsedQmlModule(uri=request.uri, directory=directory, descriptor=descriptor)


@rule(desc="Compute Qt deployment layout")
async def build_qt_deploy_layout(
    request: BuildQtDeployLayoutRequest,
    qt_deploy: QtDeploySubsystem,
) -> QtDeployLayout:
    wrapped = await _resolve_wrapped_target(request.address, f"the target `{request.address}`")
    target = wrapped.target
    if target.alias != QtDeployBundle.alias:
        raise ValueError(f"Expected `{QtDeployBundle.alias}` target, got `{target.alias}` at {target.address}")

    platform = qt_deploy.deploy_platform()
    install_root = target[QtDeployInstallRootField].value or ""
    contents_path = qt_deploy.install_contents_path

    qrc_files = tuple(target[QtDeployQrcFilesField].value or ())
    scanned = ScannedQmlImports(imports=())
    if qrc_files:
        import_path = target[QtDeployQmlImportPathField].value or qt_deploy.qml_path
        scanned = await Get(ScannedQmlImports, ScanQmlImportsRequest(qrc_files, import_path))

    recorded_imports = await _read_side_channel_files(
        tuple(target[QtDeployQmlImportsFilesField].value or ()),
        QtDeployQmlImportsFilesField.alias,
        target.address,
    )
    if recorded_imports:
        imports = collect_qml_imports(merge_qml_imports(recorded_imports), platform)
        scanned = ScannedQmlImports(imports=tuple(dict.fromkeys((*scanned.imports, *imports))))

    # QML modules pull in the modules they depend on and import.
    module_roots = _dedupe(
        [
            *tuple(target[QtDeployQmlModulesField].value or ()),
            *tuple(imp.name for imp in scanned.imports),
        ]
    )
    modules: list[ParsedQmlModule] = []
    module_closure = DependencyClosure(*module_roots)
    while True:
        uri = module_closure.pop()
        if uri is None:
            break
        parsed = await Get(ParsedQmlModule, ParseQmlModuleRequest(uri))
        modules.append(parsed)
        module_closure.record(
            uri,
            sorted(
                name
                for name in (*parsed.descriptor.depends, *parsed.descriptor.imports)
                if name.startswith(platform.namespace_prefix)
            ),
        )

    static_modules = tuple(target[QtDeployStaticQtModulesField].value or ())
    qt_modules = tuple(
        _qt_module_info(spec, static_modules, platform)
        for spec in target[QtDeployQtModulesField].value or ()
    )
    module_libraries = tuple(module_library_files(module, platform) for module in qt_modules)

    plugin_files = tuple(
        posixpath.join(qt_deploy.plugins_path, rel)
        for rel in plugin_names_to_file_names(target[QtDeployQtPluginsField].value or (), platform)
    )
    qml_plugin_files = tuple(
        posixpath.join(module.directory, plugin)
        for module in modules
        for plugin in sorted(module.descriptor.plugins)
    )

    # The binary itself is the last entry of a module's library files.
    closure_starts = _dedupe(
        [
            *tuple(target[QtDeployBinariesField].value or ()),
            *tuple(files[-1] for files in module_libraries if files),
            *plugin_files,
            *qml_plugin_files,
        ]
    )
    closures = (
        await MultiGet(
            Get(ResolvedRuntimeClosure, ResolveRuntimeClosureRequest(binary)) for binary in closure_starts
        )
        if closure_starts
        else ()
    )
    # Lists from earlier build phases are already resolved.
    recorded_dependencies = merge_dependency_lists(
        await _read_side_channel_files(
            tuple(target[QtDeployDependencyListsField].value or ()),
            QtDeployDependencyListsField.alias,
            target.address,
        )
    )
    runtime_dependencies = tuple(
        sorted({dep for closure in closures for dep in closure.dependencies} | recorded_dependencies)
    )

    library_files = _dedupe(
        [
            *tuple(path for files in module_libraries for path in files),
            *tuple(path for dep in runtime_dependencies for path in platform.expand_to_install_paths(dep)),
        ]
    )

    candidates: list[InstallEntry] = [
        *install_entries(library_files, platform.library_dir, install_root, contents_path, platform.library_install_dir),
        *install_entries(plugin_files, qt_deploy.plugins_path, install_root, contents_path, platform.plugin_install_dir),
    ]
    for module in modules:
        candidates.extend(
            install_entries(
                qml_module_files(module.descriptor, module.directory),
                qt_deploy.qml_path,
                install_root,
                contents_path,
                platform.qml_install_dir,
            )
        )

    entries: dict[str, InstallEntry] = {}
    for entry in candidates:
        entries.setdefault(entry.destination, entry)

    output_dir = _target_output_dir("layout", target.address)
    dependency_list_path = f"{output_dir}/runtime_dependencies.txt"
    qml_imports_path = f"{output_dir}/qml_imports.json"
    digest = await Get(
        Digest,
        CreateDigest(
            (
                FileContent(dependency_list_path, format_dependency_list(runtime_dependencies).encode()),
                FileContent(qml_imports_path, format_qml_imports(_qml_imports_as_entries(scanned)).encode()),
            )
        ),
    )

    return QtDeployLayout(
        digest=digest,
        install_entries=tuple(entries[destination] for destination in sorted(entries)),
        dependency_list_path=dependency_list_path,
        qml_imports_path=qml_imports_path,
    )


def rules() -> list:
    return [
        *collect_rules(),
    ]
