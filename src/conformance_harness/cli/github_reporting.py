"""Helpers for publishing conformance results to GitHub Actions surfaces."""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, MutableMapping, Sequence

STATUS_ORDER = ["passed", "failed", "error"]
SUMMARY_LIMIT = 10


def _normalize_counts(raw_counts: Mapping[str, int] | None) -> MutableMapping[str, int]:
    counts: MutableMapping[str, int] = {status: 0 for status in STATUS_ORDER}
    for status, value in (raw_counts or {}).items():
        status_key = str(status).lower()
        if status_key in counts:
            counts[status_key] = int(value)
    return counts


def format_summary(report: Mapping[str, object]) -> str:
    """Render a Markdown job summary for the provided report."""

    summary: Mapping[str, object] = report.get("summary") or {}
    metadata: Mapping[str, object] = report.get("metadata") or {}
    tests: Sequence[Mapping[str, object]] = report.get("tests") or []

    total = int(summary.get("total_tests", len(tests)))
    counts = _normalize_counts(summary.get("counts"))

    lines: List[str] = [
        "# Analyzer Conformance Report",
        "",
        f"**Total tests:** {total}",
        "",
        "| Status | Tests |",
        "| --- | ---: |",
    ]
    for status in STATUS_ORDER:
        lines.append(f"| {status.title()} | {counts[status]} |")

    if metadata:
        lines.extend(["", "## Metadata", ""])
        for key in sorted(metadata):
            lines.append(f"- **{key}:** {metadata[key]}")

    failing = [test for test in tests if str(test.get("status", "")).lower() != "passed"]
    if failing:
        lines.extend(["", "## Failures", ""])
        for test in failing[:SUMMARY_LIMIT]:
            name = str(test.get("name", "")).strip()
            target = str(test.get("target", "")).strip()
            status = str(test.get("status", "error")).lower()

            bullet = f"- **{status.title()}** `{name}`"
            if target:
                bullet += f" on `{target}`"
            error = str(test.get("error") or "").strip()
            if error:
                bullet += f": {error.splitlines()[0]}"
            lines.append(bullet)

            for path, messages in group_errors(test).items():
                lines.append(f"  - `{path}`: {len(messages)} error(s)")

        remaining = len(failing) - SUMMARY_LIMIT
        if remaining > 0:
            lines.append(f"- ...and {remaining} more failing tests.")

    lines.append("")
    return "\n".join(lines)


def group_errors(test: Mapping[str, object]) -> Dict[str, List[str]]:
    """Group a test's validation messages by their error path."""

    grouped: Dict[str, List[str]] = {}
    for error in test.get("errors") or []:
        if not isinstance(error, Mapping):
            continue
        path = str(error.get("path") or "").strip() or "-"
        message = str(error.get("message") or "").strip()
        grouped.setdefault(path, []).append(message)
    return grouped


def iter_annotations(report: Mapping[str, object]) -> Iterable[str]:
    """Generate GitHub Actions workflow command annotations for failing tests."""

    tests: Sequence[Mapping[str, object]] = report.get("tests") or []
    for test in tests:
        status = str(test.get("status", "")).lower()
        if status == "passed":
            continue

        name = str(test.get("name", "")).strip()
        target = str(test.get("target", "")).strip()
        fixture = str(test.get("fixture") or "").strip()
        base_title = " - ".join(part for part in (target, name) if part)

        attributes: List[str] = []
        if fixture:
            attributes.append(f"file={fixture}")

        error = str(test.get("error") or "").strip()
        if error or status == "error":
            body = error or "Test did not produce a result."
            yield _command(attributes, base_title, body)
            continue

        for path, messages in group_errors(test).items():
            title = f"{base_title} - {path}" if base_title else path
            yield _command(attributes, title, "\n".join(messages))


def _command(attributes: Sequence[str], title: str, body: str) -> str:
    body = body.replace("%", "%25").replace("\r", "").replace("\n", "%0A")
    segment = list(attributes)
    if title:
        segment.append(f"title={_escape_property(title)}")

    attribute_segment = ""
    if segment:
        attribute_segment = " " + ",".join(segment)
    return f"::error{attribute_segment}::{body}"


def _escape_property(value: str) -> str:
    return (
        value.replace("%", "%25")
        .replace("\r", "")
        .replace("\n", "%0A")
        .replace(":", "%3A")
        .replace(",", "%2C")
    )


def _load_report(path: Path) -> Mapping[str, object]:
    raw = path.read_text(encoding="utf-8-sig")
    if not raw.strip():
        return {}

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse report JSON from '{path}': {exc.msg}.") from exc

    if not isinstance(data, Mapping):
        raise ValueError("Report JSON must be an object.")
    return data


def _write_summary(report: Mapping[str, object], destination: Path | None) -> None:
    if destination is None:
        return

    content = format_summary(report)
    destination.parent.mkdir(parents=True, exist_ok=True)
    with destination.open("a", encoding="utf-8") as handle:
        handle.write(content)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Publish conformance results as GitHub job summary and annotations."
    )
    parser.add_argument("report", type=Path, help="Path to the harness report JSON file.")
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional explicit path for the GitHub job summary output.",
    )

    args = parser.parse_args(argv)

    summary_path = args.summary_path
    if summary_path is None:
        summary_env = os.getenv("GITHUB_STEP_SUMMARY")
        if summary_env:
            summary_path = Path(summary_env)

    report = _load_report(args.report)

    _write_summary(report, summary_path)

    for command in iter_annotations(report):
        print(command)

    return 0


def run() -> None:  # pragma: no cover - wrapper for console entry point
    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
