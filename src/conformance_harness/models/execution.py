"""Test definition and execution result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .ruleset import RuleSet

DEFAULT_CONTEXT_LINES = 10
DEFAULT_TIMEOUT_SECONDS = 1800.0
DEFAULT_EXPECTED_OUTPUT = "expected-output.yaml"


class AnalysisMode(str, Enum):
    """Analyzer modes supported by every backend."""

    SOURCE_ONLY = "source-only"
    FULL = "full"


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    """Backend independent description of one analysis scenario."""

    application: str
    analysis_mode: AnalysisMode = AnalysisMode.FULL
    context_lines: int = DEFAULT_CONTEXT_LINES
    label_selector: str = ""
    incident_selector: str = ""
    target: List[str] = field(default_factory=list)
    source: List[str] = field(default_factory=list)
    rules: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class TestDefinition:
    """A conformance test loaded from a ``test.yaml`` file."""

    __test__ = False  # not a pytest test class

    name: str
    analysis: AnalysisConfig
    test_dir: Path
    work_dir: Path
    description: str = ""
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    require_maven_settings: bool = False
    expected_output: str = DEFAULT_EXPECTED_OUTPUT

    @property
    def expected_output_path(self) -> Path:
        return self.test_dir / self.expected_output


@dataclass(slots=True)
class ExecutionResult:
    """Outcome of running one backend against one test."""

    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    output_file: Optional[Path] = None
    duration: float = 0.0
    rulesets: Optional[List["RuleSet"]] = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass(slots=True)
class Labels:
    """Parsed label selector: labels to include and labels to exclude."""

    included: List[str] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)

    def to_selector(self) -> str:
        """Render the labels back into ``||`` separated selector syntax."""

        terms = list(self.included) + [f"!{label}" for label in self.excluded]
        return " || ".join(terms)
