"""Integration tests for the ``conformance-harness run`` command."""

from __future__ import annotations

import io
import json
from contextlib import redirect_stdout
from pathlib import Path

import pytest

from conformance_harness.cli import app, github_reporting
from conformance_harness.models import ExecutionResult
from conformance_harness.targets import Target

FIXTURES_ROOT = Path(__file__).resolve().parents[1] / "fixtures"
ACTUAL_FILENAME = "actual-output.yaml"

HARNESS_YAML = """\
workDir: work
targets:
  - type: kantra
    kantra:
      binaryPath: /usr/local/bin/kantra
  - type: kai-rpc
    kaiRPC:
      host: localhost
      port: 8000
"""


class StubTarget(Target):
    """Target replacement that replays the recorded output next to each test."""

    def __init__(self, name: str) -> None:
        self._name = name
        self.executed: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def execute(self, test, *, cancel_event=None):
        self.executed.append(test.name)
        return ExecutionResult(output_file=test.test_dir / ACTUAL_FILENAME)


@pytest.fixture(autouse=True)
def stub_targets(monkeypatch: pytest.MonkeyPatch) -> list[StubTarget]:
    """Replace backend construction with fixture-backed stubs."""

    created: list[StubTarget] = []

    def factory(configs):
        targets = [StubTarget(config.type) for config in configs]
        created.extend(targets)
        return targets

    monkeypatch.setattr(app, "create_targets", factory)
    return created


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "harness.yaml"
    path.write_text(HARNESS_YAML, encoding="utf-8")
    return path


def invoke_cli(args: list[str]) -> tuple[int, str]:
    """Execute the CLI with the provided arguments and capture stdout."""

    stdout = io.StringIO()
    with redirect_stdout(stdout):
        exit_code = app.main(args)
    return exit_code, stdout.getvalue()


def test_passing_suite_exits_zero(config_path: Path, stub_targets) -> None:
    exit_code, output = invoke_cli(
        ["run", str(FIXTURES_ROOT / "passing"), "--config", str(config_path)]
    )

    assert exit_code == 0, output
    assert "local-storage" in output
    assert output.count("passed") == 2
    assert [target.name for target in stub_targets] == ["kantra", "kai-rpc"]
    assert stub_targets[0].executed == ["local-storage"]


def test_target_filter_limits_backends(config_path: Path, stub_targets) -> None:
    exit_code, _ = invoke_cli(
        [
            "run",
            str(FIXTURES_ROOT / "passing"),
            "--config",
            str(config_path),
            "--target",
            "kai-rpc",
        ]
    )

    assert exit_code == 0
    assert [target.name for target in stub_targets] == ["kai-rpc"]


def test_failing_suite_reports_errors(config_path: Path) -> None:
    exit_code, output = invoke_cli(
        [
            "run",
            str(FIXTURES_ROOT / "failing"),
            "--config",
            str(config_path),
            "--target",
            "kantra",
        ]
    )

    assert exit_code == 1
    assert "failed" in output
    assert "ruleset/quarkus/violations/javax-to-jakarta-00001" in output
    assert "Missing 1 incident(s)" in output
    assert "ruleset/discovery-rules" in output


def test_json_output_and_report_file(config_path: Path, tmp_path: Path) -> None:
    report_path = tmp_path / "reports" / "harness.json"

    exit_code, output = invoke_cli(
        [
            "run",
            str(FIXTURES_ROOT / "failing"),
            str(FIXTURES_ROOT / "passing"),
            "--config",
            str(config_path),
            "--target",
            "kantra",
            "--format",
            "json",
            "--report",
            str(report_path),
        ]
    )

    assert exit_code == 1
    payload = json.loads(output)
    assert payload == json.loads(report_path.read_text(encoding="utf-8"))
    assert payload["summary"] == {
        "total_tests": 2,
        "counts": {"passed": 1, "failed": 1, "error": 0},
    }
    statuses = {test["name"]: test["status"] for test in payload["tests"]}
    assert statuses == {"missing-incident": "failed", "local-storage": "passed"}
    assert payload["metadata"]["targets"] == "kantra"

    summary_path = tmp_path / "summary.md"
    stdout = io.StringIO()
    with redirect_stdout(stdout):
        assert github_reporting.main([str(report_path), "--summary-path", str(summary_path)]) == 0

    assert "| Failed | 1 |" in summary_path.read_text(encoding="utf-8")
    annotations = stdout.getvalue().splitlines()
    assert len(annotations) == 2
    assert all(line.startswith("::error file=") for line in annotations)


def test_missing_config_is_a_harness_error(tmp_path: Path) -> None:
    exit_code, output = invoke_cli(
        ["run", str(FIXTURES_ROOT / "passing"), "--config", str(tmp_path / "absent.yaml")]
    )

    assert exit_code == 2
    assert output.startswith("Error: Configuration file not found")


def test_unconfigured_target_is_rejected(config_path: Path) -> None:
    exit_code, output = invoke_cli(
        [
            "run",
            str(FIXTURES_ROOT / "passing"),
            "--config",
            str(config_path),
            "--target",
            "tackle-hub",
        ]
    )

    assert exit_code == 2
    assert "no configured target matches: tackle-hub" in output


def test_empty_test_directory_is_a_harness_error(config_path: Path, tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()

    exit_code, output = invoke_cli(["run", str(empty), "--config", str(config_path)])

    assert exit_code == 2
    assert "no test definitions found" in output


def test_no_command_prints_help() -> None:
    exit_code, output = invoke_cli([])

    assert exit_code == 0
    assert "conformance-harness" in output
