"""Data models for analyzer output, test definitions and execution results."""

from .execution import (
    AnalysisConfig,
    AnalysisMode,
    ExecutionResult,
    Labels,
    TestDefinition,
)
from .ruleset import (
    Category,
    Incident,
    Link,
    RuleSet,
    Violation,
    dump_rulesets,
    load_rulesets,
    parse_rulesets,
)

__all__ = [
    "AnalysisConfig",
    "AnalysisMode",
    "Category",
    "ExecutionResult",
    "Incident",
    "Labels",
    "Link",
    "RuleSet",
    "TestDefinition",
    "Violation",
    "dump_rulesets",
    "load_rulesets",
    "parse_rulesets",
]
