"""Plain files passed between deployment phases.

Runtime dependencies travel as a newline separated list of paths; QML
imports travel as the JSON array qmlimportscanner prints.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

logger = logging.getLogger(__name__)


def parse_dependency_list(text: str) -> tuple[str, ...]:
    return tuple(line.strip() for line in text.splitlines() if line.strip())


def format_dependency_list(dependencies: Iterable[str]) -> str:
    return "".join(f"{dep}\n" for dep in dependencies)


def merge_dependency_lists(files: Iterable[tuple[str, str]]) -> frozenset[str]:
    """Union of several dependency lists, given as `(path, text)` pairs."""
    merged: set[str] = set()
    for path, text in files:
        dependencies = parse_dependency_list(text)
        logger.debug(f"Read {len(dependencies)} dependencies from {path}")
        merged.update(dependencies)
    return frozenset(merged)


def parse_qml_imports(text: str) -> list[dict[str, Any]]:
    entries = json.loads(text)
    if not isinstance(entries, list):
        raise ValueError(f"Expected a JSON array of QML imports, got {type(entries).__name__}")
    return entries


def merge_qml_imports(files: Iterable[tuple[str, str]]) -> list[dict[str, Any]]:
    """Concatenate the scanner arrays of several JSON files, given as `(path, text)` pairs."""
    entries: list[dict[str, Any]] = []
    for path, text in files:
        parsed = parse_qml_imports(text)
        logger.debug(f"Read {len(parsed)} QML imports from {path}")
        entries.extend(parsed)
    return entries


def format_qml_imports(entries: Iterable[dict[str, Any]]) -> str:
    return json.dumps(list(entries), indent=2)
