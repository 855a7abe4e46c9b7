"""Compare actual analyzer rulesets against an expected fixture."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence

from ..models import RuleSet, Violation, parse_rulesets
from ..normalization import normalize_yaml_paths
from .comparers import KantraComparer, ValidationError, get_comparer


@dataclass(slots=True)
class ValidationResult:
    errors: List[ValidationError] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.errors


def validate(actual: Sequence[RuleSet], expected: Sequence[RuleSet]) -> ValidationResult:
    """Validate with the strict CLI comparer and no test directory."""

    return validate_files("", "kantra", actual, expected)


def validate_files(
    test_dir: str,
    target_type: str,
    actual: Sequence[RuleSet],
    expected: Sequence[RuleSet],
) -> ValidationResult:
    """Check that everything in ``expected`` is present in ``actual``.

    Extra actual rulesets, rules and incidents are tolerated. Errors are
    reported per location, e.g. ``ruleset/<name>/violations/<rule>``.
    """

    comparer = get_comparer(target_type, test_dir)

    actual_by_name: Dict[str, RuleSet] = {}
    for ruleset in actual:
        actual_by_name.setdefault(ruleset.name, ruleset)

    errors: List[ValidationError] = []
    for expected_ruleset in expected:
        base = f"ruleset/{expected_ruleset.name}"
        actual_ruleset = actual_by_name.get(expected_ruleset.name)
        if actual_ruleset is None:
            errors.append(
                ValidationError(
                    base,
                    f"Did not find expected ruleset: {expected_ruleset.name}",
                    expected=expected_ruleset.name,
                )
            )
            continue
        errors.extend(_compare_ruleset(comparer, expected_ruleset, actual_ruleset, base))

    return ValidationResult(errors)


def validate_documents(
    test_dir: str,
    target_type: str,
    actual_text: str,
    expected_text: str,
) -> ValidationResult:
    """Normalize and parse both YAML documents, then validate them.

    Raises :class:`~conformance_harness.errors.FixtureError` when either
    document is not a valid ruleset list.
    """

    actual = parse_rulesets(normalize_yaml_paths(actual_text, test_dir, target_type))
    expected = parse_rulesets(normalize_yaml_paths(expected_text, test_dir, target_type))
    return validate_files(test_dir, target_type, actual, expected)


# ---------------------------------------------------------------------------
# Ruleset comparison


def _compare_ruleset(
    comparer: KantraComparer, expected: RuleSet, actual: RuleSet, base: str
) -> List[ValidationError]:
    errors: List[ValidationError] = []

    if expected.errors != actual.errors:
        for key, message in expected.errors.items():
            error = comparer.compare_error(message, actual.errors.get(key), f"{base}/errors/{key}")
            if error is not None:
                errors.append(error)

    if expected.tags != actual.tags:
        for tag in expected.tags:
            error = comparer.compare_tag(tag, actual.tags, f"{base}/tags")
            if error is not None:
                errors.append(error)

    if expected.insights != actual.insights:
        errors.extend(
            _compare_rules(comparer, expected.insights, actual.insights, f"{base}/insights", "Insights")
        )

    if expected.violations != actual.violations:
        errors.extend(
            _compare_rules(
                comparer, expected.violations, actual.violations, f"{base}/violations", "violations"
            )
        )

    if expected.unmatched != actual.unmatched:
        for rule in expected.unmatched:
            error = comparer.compare_unmatched(rule, actual.unmatched, f"{base}/unmatched")
            if error is not None:
                errors.append(error)

    if expected.skipped != actual.skipped:
        for rule in expected.skipped:
            error = comparer.compare_skipped(rule, actual.skipped, f"{base}/skipped")
            if error is not None:
                errors.append(error)

    return errors


def _compare_rules(
    comparer: KantraComparer,
    expected: Mapping[str, Violation],
    actual: Mapping[str, Violation],
    base: str,
    kind: str,
) -> List[ValidationError]:
    errors: List[ValidationError] = []
    singular = "insight" if kind == "Insights" else "violation"

    for rule_id, expected_violation in expected.items():
        path = f"{base}/{rule_id}"
        actual_violation = actual.get(rule_id)
        if actual_violation is None:
            errors.append(
                ValidationError(
                    path, f"Did not find expected {singular}: {rule_id}", expected=rule_id
                )
            )
            continue

        found = comparer.compare_violation(expected_violation, actual_violation, path)
        if found:
            detail = "\n\t".join(error.message for error in found)
            errors.append(
                ValidationError(
                    path,
                    f"Did not find {kind}\n\t{detail}",
                    expected=expected_violation.to_dict(),
                    actual=actual_violation.to_dict(),
                )
            )

    return errors


__all__ = ["ValidationResult", "validate", "validate_documents", "validate_files"]
