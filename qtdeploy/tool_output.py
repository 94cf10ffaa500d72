"""Parsers for the output of `otool -L` and `dumpbin /dependents`."""

from __future__ import annotations

import logging
import re

from qtdeploy.errors import FormatMismatch

logger = logging.getLogger(__name__)

# `otool -L` dependency entry, e.g.
#     @rpath/QtCore.framework/Versions/A/QtCore (compatibility version 6.0.0, current version 6.8.0)
_OTOOL_DEPENDENCY_RE = re.compile(
    r"^\s+(?P<path>.+) \(compatibility version \d+\.\d+\.\d+, current version \d+\.\d+\.\d+\)$"
)

DUMPBIN_DEPENDENCIES_MARKER = "  Image has the following dependencies:"


def _dedupe(items: list[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return tuple(out)


def parse_otool_output(binary: str, output: str) -> tuple[str, ...]:
    """Parse `otool -L <binary>` output into the binary's direct dependencies.

    The first non-empty line restates the inspected binary; every following
    entry names one load command. Entries that do not look like a load command
    are logged and skipped. No filtering happens here: callers decide which
    dependencies belong to the deployment.
    """
    lines = [line.rstrip("\r") for line in output.splitlines()]
    while lines and not lines[0].strip():
        lines.pop(0)

    if not lines:
        raise FormatMismatch("otool", "", f"empty output for `{binary}`")
    if not lines[0].startswith(binary):
        raise FormatMismatch("otool", lines[0], f"expected the first line to name `{binary}`")

    deps: list[str] = []
    for line in lines[1:]:
        match = _OTOOL_DEPENDENCY_RE.match(line)
        if match:
            deps.append(match.group("path"))
        elif line.strip():
            logger.warning(f"Unmatched dependency line in otool output for {binary}: {line}")

    return _dedupe(deps)


def parse_dumpbin_output(binary: str, output: str, namespace_prefix: str) -> tuple[str, ...]:
    """Parse `dumpbin /dependents <binary>` output.

    The dependency block starts two lines after the
    ``Image has the following dependencies:`` marker and runs until the next
    blank line. Only DLLs whose name starts with `namespace_prefix` are kept.
    """
    lines = [line.rstrip("\r") for line in output.splitlines()]
    try:
        marker_index = lines.index(DUMPBIN_DEPENDENCIES_MARKER)
    except ValueError:
        raise FormatMismatch(
            "dumpbin", DUMPBIN_DEPENDENCIES_MARKER.strip(), f"marker not found in output for `{binary}`"
        ) from None

    deps: list[str] = []
    for line in lines[marker_index + 2 :]:
        name = line.strip()
        if not name:
            break
        if name.startswith(namespace_prefix):
            deps.append(name)

    return _dedupe(deps)
