"""Build execution targets from their configuration."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import TargetConfig
from ..errors import TargetConfigurationError
from .base import Target
from .hub import TackleHubTarget, TackleUITarget
from .kantra import KantraTarget
from .rpc import KaiRPCTarget, VSCodeTarget

TARGET_TYPES = ("kantra", "tackle-hub", "tackle-ui", "kai-rpc", "vscode")


def new_target(config: TargetConfig, *, log: Optional[logging.Logger] = None) -> Target:
    """Construct the target declared by ``config``.

    Missing backend sub-configuration fails here, before any test runs.
    """

    target_type = config.type
    if target_type == "kantra":
        return KantraTarget(config.kantra, log=log)
    if target_type == "tackle-hub":
        return TackleHubTarget(config.tackle_hub, log=log)
    if target_type == "tackle-ui":
        return TackleUITarget(config.tackle_ui, log=log)
    if target_type == "kai-rpc":
        return KaiRPCTarget(config.kai_rpc, log=log)
    if target_type == "vscode":
        return VSCodeTarget(config.vscode, log=log)

    raise TargetConfigurationError(f"unknown target type: {target_type!r}")


__all__ = ["TARGET_TYPES", "new_target"]
