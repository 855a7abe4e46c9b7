"""Execution target interface."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Optional

from ..errors import PreconditionError
from ..models import ExecutionResult, TestDefinition

OUTPUT_DIRNAME = "output"
OUTPUT_FILENAME = "output.yaml"


class Target(ABC):
    """Abstract base class describing one analysis backend.

    Implementations hold only immutable configuration so one instance can
    serve many test executions; per-run state lives in the work directory
    namespaced by test name.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identity, also used to select the matching comparer."""

    @abstractmethod
    def execute(
        self,
        test: TestDefinition,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExecutionResult:
        """Run ``test`` against the backend and return the completed result."""


def check_maven_settings(test: TestDefinition, maven_settings: str) -> None:
    if test.require_maven_settings and not maven_settings:
        raise PreconditionError(
            f"test {test.name} requires maven settings but none configured in target config"
        )


__all__ = ["OUTPUT_DIRNAME", "OUTPUT_FILENAME", "Target", "check_maven_settings"]
