"""Errors raised while resolving a Qt deployment."""

from __future__ import annotations


class QtDeployError(ValueError):
    """Base class for deployment resolution failures."""


class FormatMismatch(QtDeployError):
    """Dependency inspection tool output does not have the expected shape.

    This usually means the tool changed its output format, so it is never
    retried or tolerated.
    """

    def __init__(self, tool: str, line: str, reason: str) -> None:
        self.tool = tool
        self.line = line
        super().__init__(f"Cannot parse {tool} output ({reason}): {line!r}")


class GrammarError(QtDeployError):
    """A qmldir line could not be parsed."""

    def __init__(self, line: str, kind: str) -> None:
        self.line = line
        self.kind = kind
        super().__init__(f"Cannot parse the {kind} string: {line!r}")


class MalformedPluginReference(QtDeployError):
    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(
            f'Invalid plugin reference `{reference}`. Specify plugins in format "plugintype/pluginname".'
        )
