"""Backend scoped comparison of expected and actual analyzer findings."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Type

from ..models import Incident, Violation

SOURCE_DIRNAME = "source"


@dataclass(slots=True)
class ValidationError:
    """One difference between the expected fixture and the actual output."""

    path: str
    message: str
    expected: Any = None
    actual: Any = None


class KantraComparer:
    """Strict comparer used for the CLI backend and as the shared base.

    Incident reconciliation is existence based: an expected incident is
    satisfied by any actual incident with the same normalized path, message,
    line number and variables, regardless of ordering. One actual incident
    may satisfy several expected ones.
    """

    def __init__(self, test_dir: str = "") -> None:
        self.test_dir = test_dir

    # Single values -----------------------------------------------------------
    def compare_tag(self, expected: str, actual: Sequence[str], path: str) -> Optional[ValidationError]:
        if expected in actual:
            return None
        return ValidationError(path, f"Did not find expected tag: {expected}", expected=expected)

    def compare_error(self, expected: str, actual: Optional[str], path: str) -> Optional[ValidationError]:
        if expected == actual:
            return None
        return ValidationError(
            path, f"Did not find expected error: {expected}", expected=expected, actual=actual
        )

    def compare_unmatched(
        self, expected: str, actual: Sequence[str], path: str
    ) -> Optional[ValidationError]:
        if expected in actual:
            return None
        return ValidationError(
            path, f"Did not find expected unmatched rule: {expected}", expected=expected
        )

    def compare_skipped(
        self, expected: str, actual: Sequence[str], path: str
    ) -> Optional[ValidationError]:
        if expected in actual:
            return None
        return ValidationError(
            path, f"Did not find expected skipped rule: {expected}", expected=expected
        )

    # Violations --------------------------------------------------------------
    def compare_violation(
        self, expected: Violation, actual: Violation, path: str
    ) -> List[ValidationError]:
        errors: List[ValidationError] = []

        if expected.category != actual.category:
            errors.append(
                ValidationError(
                    path,
                    f"Did not find expected category: {_value(expected.category)}",
                    expected=_value(expected.category),
                    actual=_value(actual.category),
                )
            )

        if expected.effort != actual.effort:
            errors.append(
                ValidationError(
                    path,
                    f"Did not find expected effort: {expected.effort}",
                    expected=expected.effort,
                    actual=actual.effort,
                )
            )

        actual_titles = {link.title for link in actual.links}
        for link in expected.links:
            if link.title not in actual_titles:
                errors.append(
                    ValidationError(
                        path, f"Did not find expected link: {link.title}", expected=link.to_dict()
                    )
                )

        for label in expected.labels:
            if label not in actual.labels:
                errors.append(
                    ValidationError(path, f"Did not find expected label: {label}", expected=label)
                )

        missing = [
            incident
            for incident in expected.incidents
            if not any(self.incident_matches(incident, candidate) for candidate in actual.incidents)
        ]
        if missing:
            errors.append(self._missing_incidents_error(path, missing, expected, actual))

        return errors

    def incident_matches(self, expected: Incident, actual: Incident) -> bool:
        if expected.code_snip and actual.code_snip:
            if expected.code_snip.strip() != actual.code_snip.strip():
                return False

        if not expected.uri or not actual.uri:
            if expected.uri != actual.uri:
                return False
        elif self.expected_source_path(expected) not in actual.filename:
            return False

        return same_occurrence(expected, actual)

    def expected_source_path(self, incident: Incident) -> str:
        """Return the expected path relative to ``<test_dir>/source`` when under it."""

        filename = incident.filename
        if self.test_dir:
            source_root = posixpath.join(self.test_dir, SOURCE_DIRNAME)
            if filename.startswith(source_root.rstrip("/") + "/"):
                return posixpath.relpath(filename, source_root)
        return filename

    def _missing_incidents_error(
        self,
        path: str,
        missing: Sequence[Incident],
        expected: Violation,
        actual: Violation,
    ) -> ValidationError:
        uris = [incident.uri for incident in missing if incident.uri]
        message = f"Missing {len(missing)} incident(s)"
        if uris:
            message += f" for files: {', '.join(uris)}"
        return ValidationError(
            path,
            message,
            expected=f"{len(expected.incidents)} incidents",
            actual=f"{len(actual.incidents)} incidents (missing {len(missing)})",
        )


class TackleHubComparer(KantraComparer):
    """Hub results carry no per-incident code snippets; match without them."""

    def incident_matches(self, expected: Incident, actual: Incident) -> bool:
        if self.expected_source_path(expected) not in actual.filename:
            return False
        return same_occurrence(expected, actual)


def same_occurrence(expected: Incident, actual: Incident) -> bool:
    return (
        expected.message == actual.message
        and expected.line_number == actual.line_number
        and expected.variables == actual.variables
    )


def _value(category: Any) -> Any:
    return getattr(category, "value", category)


COMPARERS: Dict[str, Type[KantraComparer]] = {
    "kantra": KantraComparer,
    "tackle-hub": TackleHubComparer,
    "tackle-ui": TackleHubComparer,
    "kai-rpc": KantraComparer,
    "vscode": KantraComparer,
}


def get_comparer(target_type: str, test_dir: str = "") -> KantraComparer:
    try:
        comparer_cls = COMPARERS[target_type]
    except KeyError:
        raise ValueError(f"no comparer registered for target type: {target_type!r}") from None
    return comparer_cls(test_dir)


__all__ = [
    "COMPARERS",
    "KantraComparer",
    "TackleHubComparer",
    "ValidationError",
    "get_comparer",
    "same_occurrence",
]
