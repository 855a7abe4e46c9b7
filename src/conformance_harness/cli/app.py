"""Command-line interface implementation for the conformance harness."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Sequence

from ..config import TargetConfig, discover_tests, load_harness_config
from ..errors import HarnessError
from ..service import HarnessService, OutcomeStatus, TestOutcome
from ..targets import TARGET_TYPES, Target, new_target

DEFAULT_CONFIG = Path("harness.yaml")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(slots=True)
class HarnessReport:
    """Collection of test outcomes plus contextual metadata."""

    outcomes: Sequence[TestOutcome]
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return all(outcome.passed for outcome in self.outcomes)

    def counts_by_status(self) -> dict[str, int]:
        counts = {status.value: 0 for status in OutcomeStatus}
        for outcome in self.outcomes:
            counts[outcome.status.value] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": dict(self.metadata),
            "summary": {
                "total_tests": len(self.outcomes),
                "counts": self.counts_by_status(),
            },
            "tests": [outcome.to_dict() for outcome in self.outcomes],
        }


def render_table(report: HarnessReport) -> str:
    """Render outcomes as a simple text table for terminal output."""

    if not report.outcomes:
        return "No tests executed."

    headers = ("Status", "Target", "Test", "Details")
    rows = [headers]
    for outcome in report.outcomes:
        rows.append(
            (
                outcome.status.value,
                outcome.target,
                outcome.test.name,
                _details(outcome),
            )
        )

    widths = [max(len(str(row[idx])) for row in rows) for idx in range(len(headers))]

    def format_row(values: tuple[str, str, str, str]) -> str:
        return "  ".join(value.ljust(width) for value, width in zip(values, widths, strict=True))

    lines = [format_row(headers)]
    lines.append("  ".join("=" * width for width in widths))
    for row in rows[1:]:
        lines.append(format_row(row).rstrip())

    for outcome in report.outcomes:
        if outcome.validation is None or outcome.validation.passed:
            continue
        lines.extend(["", f"{outcome.test.name} ({outcome.target}):"])
        for error in outcome.validation.errors:
            message = error.message.replace("\n\t", "\n      ")
            lines.append(f"  - {error.path}: {message}")

    return "\n".join(lines)


def _details(outcome: TestOutcome) -> str:
    if outcome.error is not None:
        return outcome.error.splitlines()[0] if outcome.error else "-"
    if outcome.validation is not None and outcome.validation.errors:
        return f"{len(outcome.validation.errors)} validation error(s)"
    return "-"


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""

    parser = argparse.ArgumentParser(
        prog="conformance-harness", description="Analyzer conformance test harness"
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser(
        "run", help="Run conformance tests against the configured analysis backends."
    )
    run_parser.add_argument(
        "tests",
        type=Path,
        nargs="*",
        help="Test definition files or directories searched for test.yaml files.",
    )
    run_parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Path to the harness configuration YAML file.",
    )
    run_parser.add_argument(
        "--target",
        dest="targets",
        action="append",
        choices=list(TARGET_TYPES),
        default=None,
        help="Only run against the named target type. May be repeated.",
    )
    run_parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format for test results.",
    )
    run_parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Also write the JSON report to this file.",
    )
    run_parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        type=str.upper,
        help="Logging verbosity.",
    )

    return parser


def create_service() -> HarnessService:
    """Create the harness service used by the ``run`` command."""

    return HarnessService()


def create_targets(configs: Sequence[TargetConfig]) -> List[Target]:
    return [new_target(config) for config in configs]


def _select_targets(
    configs: Sequence[TargetConfig], requested: Sequence[str] | None
) -> List[TargetConfig]:
    if not configs:
        raise HarnessError("no targets configured")
    if not requested:
        return list(configs)

    selected = [config for config in configs if config.type in requested]
    if not selected:
        raise HarnessError(f"no configured target matches: {', '.join(requested)}")
    return selected


def _format_report(report: HarnessReport, *, output_format: str) -> str:
    if output_format not in {"table", "json"}:
        raise ValueError("format must be either 'table' or 'json'")

    if output_format == "json":
        return json.dumps(report.to_dict(), indent=2)
    return render_table(report)


def _handle_run(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_harness_config(args.config)
        target_configs = _select_targets(config.targets, args.targets)
        tests = discover_tests(args.tests or [Path.cwd()], config.work_dir)
        if not tests:
            raise HarnessError("no test definitions found")
        targets = create_targets(target_configs)
    except HarnessError as exc:
        print(f"Error: {exc}")
        return 2

    service = create_service()
    outcomes: List[TestOutcome] = []
    for target in targets:
        outcomes.extend(service.run_suite(target, tests))

    report = HarnessReport(
        outcomes=outcomes,
        metadata={
            "config": str(args.config),
            "work_dir": str(config.work_dir),
            "targets": ", ".join(target.name for target in targets),
        },
    )

    if args.report is not None:
        args.report.parent.mkdir(parents=True, exist_ok=True)
        args.report.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")

    print(_format_report(report, output_format=args.format))
    return 0 if report.passed else 1


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by tests and the ``python -m`` invocation."""

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        return _handle_run(args)

    parser.print_help()
    return 0


def run() -> None:  # pragma: no cover - thin wrapper for module execution
    """Execute the CLI and exit with the produced status code."""

    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
