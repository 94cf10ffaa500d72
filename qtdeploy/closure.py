"""Transitive runtime dependency closure of native binaries."""

from __future__ import annotations

import logging
import subprocess
from typing import Callable, Iterable

from qtdeploy.platforms import DeployPlatform

logger = logging.getLogger(__name__)

Inspector = Callable[[str], str]


class DependencyClosure:
    """Worklist state of one closure computation.

    A binary is marked visited when it is taken off the worklist and before
    its own dependencies are inspected, so every binary is expanded at most
    once and cycles terminate. Roots are visited but never part of the result.
    """

    def __init__(self, *roots: str) -> None:
        self.roots = frozenset(roots)
        self.visited: set[str] = set()
        self.resolved: set[str] = set()
        self._pending: list[str] = list(reversed(roots))

    def pop(self) -> str | None:
        """Take the next unvisited binary off the worklist and mark it visited."""
        while self._pending:
            binary = self._pending.pop()
            if binary in self.visited:
                continue
            self.visited.add(binary)
            if binary not in self.roots:
                self.resolved.add(binary)
            return binary
        return None

    def record(self, binary: str, direct_dependencies: Iterable[str]) -> None:
        if binary not in self.visited:
            raise ValueError(f"`{binary}` was recorded before being visited")
        pending = [dep for dep in direct_dependencies if dep not in self.visited]
        # Reversed so the first direct dependency is expanded first.
        self._pending.extend(reversed(pending))

    def result(self) -> frozenset[str]:
        return frozenset(self.resolved)


def subprocess_inspector(platform: DeployPlatform) -> Inspector:
    """Run the platform's inspection tool directly, outside of any build engine."""

    def inspect(binary: str) -> str:
        argv = platform.inspect_argv(binary)
        logger.debug(f"Inspecting {binary}: {' '.join(argv)}")
        completed = subprocess.run(argv, check=True, capture_output=True, text=True)
        return completed.stdout

    return inspect


def resolve_runtime_dependencies(
    start_binary: str,
    platform: DeployPlatform,
    inspect: Inspector | None = None,
) -> frozenset[str]:
    """Absolute paths of every in-namespace library `start_binary` needs at runtime.

    `inspect` returns the inspection tool output for a binary and defaults to
    running the tool with `subprocess`. Its failures propagate unchanged.
    """
    if inspect is None:
        inspect = subprocess_inspector(platform)

    closure = DependencyClosure(start_binary)
    while True:
        binary = closure.pop()
        if binary is None:
            break
        closure.record(binary, platform.parse_dependencies(binary, inspect(binary)))

    logger.debug(f"Resolved {len(closure.resolved)} runtime dependencies of {start_binary}")
    return closure.result()
