"""Orchestration layer used by the CLI to run conformance tests."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .errors import ExecutionCancelledError, ExecutionError, FixtureError, HarnessError
from .models import ExecutionResult, TestDefinition, dump_rulesets
from .targets import Target
from .validation import ValidationResult, validate_documents

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


@dataclass(slots=True)
class TestOutcome:
    """Result of running one test against one target."""

    __test__ = False  # not a pytest test class

    test: TestDefinition
    target: str
    result: Optional[ExecutionResult] = None
    validation: Optional[ValidationResult] = None
    error: Optional[str] = None

    @property
    def status(self) -> OutcomeStatus:
        if self.error is not None or self.validation is None:
            return OutcomeStatus.ERROR
        return OutcomeStatus.PASSED if self.validation.passed else OutcomeStatus.FAILED

    @property
    def passed(self) -> bool:
        return self.status == OutcomeStatus.PASSED

    def to_dict(self) -> Dict[str, Any]:
        errors = self.validation.errors if self.validation else []
        return {
            "name": self.test.name,
            "target": self.target,
            "status": self.status.value,
            "fixture": str(self.test.expected_output_path),
            "duration": round(self.result.duration, 3) if self.result else None,
            "error": self.error,
            "errors": [
                {
                    "path": error.path,
                    "message": error.message,
                    "expected": error.expected,
                    "actual": error.actual,
                }
                for error in errors
            ],
        }


class HarnessService:
    """Run tests on a target and validate the output against fixtures."""

    def __init__(self, *, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    # ------------------------------------------------------------------
    def run_test(
        self,
        target: Target,
        test: TestDefinition,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> TestOutcome:
        """Execute ``test`` on ``target`` and validate the result.

        Harness failures propagate as :class:`HarnessError`; mismatches
        are reported in the returned outcome.
        """

        self._log.info("Running test=%s target=%s", test.name, target.name)
        result = target.execute(test, cancel_event=cancel_event)

        actual_text = self._actual_text(result)
        expected_text = self._expected_text(test)

        validation = validate_documents(str(test.test_dir), target.name, actual_text, expected_text)
        if validation.passed:
            self._log.info("Test passed test=%s target=%s", test.name, target.name)
        else:
            self._log.warning(
                "Test failed test=%s target=%s errors=%d",
                test.name,
                target.name,
                len(validation.errors),
            )
        return TestOutcome(test=test, target=target.name, result=result, validation=validation)

    def run_suite(
        self,
        target: Target,
        tests: Sequence[TestDefinition],
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[TestOutcome]:
        """Run every test, recording harness failures per test instead of aborting."""

        outcomes: List[TestOutcome] = []
        for test in tests:
            if cancel_event is not None and cancel_event.is_set():
                outcomes.append(
                    TestOutcome(test=test, target=target.name, error="cancelled before start")
                )
                continue
            try:
                outcomes.append(self.run_test(target, test, cancel_event=cancel_event))
            except ExecutionCancelledError as exc:
                self._log.warning("Test cancelled test=%s target=%s", test.name, target.name)
                outcomes.append(TestOutcome(test=test, target=target.name, error=str(exc)))
            except HarnessError as exc:
                self._log.error(
                    "Test errored test=%s target=%s error=%s", test.name, target.name, exc
                )
                outcomes.append(TestOutcome(test=test, target=target.name, error=str(exc)))
        return outcomes

    # ------------------------------------------------------------------
    @staticmethod
    def _actual_text(result: ExecutionResult) -> str:
        if result.rulesets is not None:
            return dump_rulesets(result.rulesets)
        if result.output_file is None:
            raise ExecutionError("analysis produced no output file")
        try:
            return result.output_file.read_text(encoding="utf-8")
        except OSError as exc:
            raise ExecutionError(f"failed to read analysis output {result.output_file}") from exc

    @staticmethod
    def _expected_text(test: TestDefinition) -> str:
        path = test.expected_output_path
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise FixtureError(f"expected output not found: {path}") from exc
        except OSError as exc:
            raise FixtureError(f"failed to read expected output {path}") from exc


__all__ = ["HarnessService", "TestOutcome", "OutcomeStatus"]
