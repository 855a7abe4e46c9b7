"""Execution targets: one implementation per analysis backend."""

from .base import Target
from .factory import TARGET_TYPES, new_target
from .hub import TackleHubTarget, TackleUITarget, TaskPoller, TaskState, classify_state
from .kantra import KantraTarget, build_args
from .labels import parse_label_selector
from .materializer import InputMaterializer, parse_application_reference
from .rpc import KaiRPCTarget, VSCodeTarget

__all__ = [
    "InputMaterializer",
    "KaiRPCTarget",
    "KantraTarget",
    "TARGET_TYPES",
    "TackleHubTarget",
    "TackleUITarget",
    "Target",
    "TaskPoller",
    "TaskState",
    "VSCodeTarget",
    "build_args",
    "classify_state",
    "new_target",
    "parse_application_reference",
    "parse_label_selector",
]
