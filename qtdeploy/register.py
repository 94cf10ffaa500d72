"""Registration entrypoint for the Qt deployment Pants backend."""

from __future__ import annotations

from qtdeploy import rules as qtdeploy_rules
from qtdeploy.target_types import QtDeployBundle


def target_types() -> list[type]:
    return [
        QtDeployBundle,
    ]


def rules() -> list:
    return [
        *qtdeploy_rules.rules(),
    ]
