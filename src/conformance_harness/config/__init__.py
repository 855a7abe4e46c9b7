"""Harness configuration models and YAML loaders."""

from .loader import discover_tests, load_harness_config, load_test_definition, parse_target_config
from .models import (
    HarnessConfig,
    KaiRPCConfig,
    KantraConfig,
    TackleHubConfig,
    TackleUIConfig,
    TargetConfig,
    VSCodeConfig,
)

__all__ = [
    "HarnessConfig",
    "KaiRPCConfig",
    "KantraConfig",
    "TackleHubConfig",
    "TackleUIConfig",
    "TargetConfig",
    "VSCodeConfig",
    "discover_tests",
    "load_harness_config",
    "load_test_definition",
    "parse_target_config",
]
