from pathlib import Path

import pytest

from conformance_harness.config import KantraConfig
from conformance_harness.errors import ExecutionError, PreconditionError, TargetConfigurationError
from conformance_harness.models import AnalysisConfig, AnalysisMode, ExecutionResult, TestDefinition
from conformance_harness.targets import KantraTarget, build_args


class DummyMaterializer:
    def __init__(self, path: str = "/input/app") -> None:
        self.path = path
        self.calls = []

    def materialize(self, application, test_dir):
        self.calls.append((application, test_dir))
        return self.path


class RecordingRunner:
    def __init__(self) -> None:
        self.calls = []

    def __call__(self, executable, args, *, cwd=None, timeout=None):
        self.calls.append({"executable": executable, "args": args, "cwd": cwd, "timeout": timeout})
        return ExecutionResult(exit_code=0, stdout="ok")


def make_test(tmp_path: Path, **overrides) -> TestDefinition:
    analysis = overrides.pop("analysis", AnalysisConfig(application="/srv/app"))
    test_dir = tmp_path / "tests" / "sample"
    test_dir.mkdir(parents=True, exist_ok=True)
    values = {
        "name": "sample",
        "analysis": analysis,
        "test_dir": test_dir,
        "work_dir": tmp_path / "work",
        "timeout": 90.0,
    }
    values.update(overrides)
    return TestDefinition(**values)


def test_build_args_full_contract():
    analysis = AnalysisConfig(
        application="/srv/app",
        analysis_mode=AnalysisMode.SOURCE_ONLY,
        context_lines=5,
        label_selector="konveyor.io/target=quarkus",
        incident_selector="!package=io.konveyor",
        target=["quarkus", "cloud-readiness"],
        source=["java-ee"],
        rules=["rules/a.yaml"],
    )

    args = build_args(analysis, "/in", "/out", "/m2/settings.xml")

    assert args == [
        "analyze",
        "--context-lines",
        "5",
        "--input",
        "/in",
        "--output",
        "/out",
        "--label-selector",
        "konveyor.io/target=quarkus",
        "--incident-selector",
        "!package=io.konveyor",
        "--maven-settings",
        "/m2/settings.xml",
        "-t",
        "quarkus",
        "-t",
        "cloud-readiness",
        "-s",
        "java-ee",
        "--rules",
        "rules/a.yaml",
        "--mode",
        "source-only",
        "--run-local=false",
        "--overwrite",
    ]


def test_build_args_minimal_is_deterministic():
    analysis = AnalysisConfig(application="/srv/app")

    first = build_args(analysis, "/in", "/out")
    second = build_args(analysis, "/in", "/out")

    assert first == second
    assert first == [
        "analyze",
        "--context-lines",
        "10",
        "--input",
        "/in",
        "--output",
        "/out",
        "--mode",
        "full",
        "--run-local=false",
        "--overwrite",
    ]


def test_binary_resolved_from_path(monkeypatch):
    monkeypatch.setattr(
        "conformance_harness.targets.kantra.shutil.which", lambda name: f"/usr/bin/{name}"
    )

    target = KantraTarget()

    assert target.binary_path == "/usr/bin/kantra"
    assert target.name == "kantra"


def test_binary_missing_fails_at_construction(monkeypatch):
    monkeypatch.setattr("conformance_harness.targets.kantra.shutil.which", lambda name: None)

    with pytest.raises(TargetConfigurationError, match="kantra binary not found in PATH"):
        KantraTarget(KantraConfig())


def test_execute_runs_binary_in_work_dir(tmp_path):
    runner = RecordingRunner()
    materializer = DummyMaterializer()
    target = KantraTarget(
        KantraConfig(binary_path="/opt/kantra", maven_settings="/m2/settings.xml"),
        materializer=materializer,
        command_runner=runner,
    )
    test = make_test(tmp_path)

    result = target.execute(test)

    work_dir = (tmp_path / "work" / "sample").resolve()
    output_dir = work_dir / "output"
    assert materializer.calls == [("/srv/app", test.test_dir)]
    assert runner.calls[0]["executable"] == "/opt/kantra"
    assert runner.calls[0]["cwd"] == work_dir
    assert runner.calls[0]["timeout"] == 90.0
    assert "--maven-settings" not in runner.calls[0]["args"]
    assert runner.calls[0]["args"][3:7] == ["--input", "/input/app", "--output", str(output_dir)]
    assert output_dir.is_dir()
    assert result.output_file == output_dir / "output.yaml"


def test_execute_forwards_maven_settings_when_required(tmp_path):
    runner = RecordingRunner()
    target = KantraTarget(
        KantraConfig(binary_path="/opt/kantra", maven_settings="/m2/settings.xml"),
        materializer=DummyMaterializer(),
        command_runner=runner,
    )

    target.execute(make_test(tmp_path, require_maven_settings=True))

    args = runner.calls[0]["args"]
    assert args[args.index("--maven-settings") + 1] == "/m2/settings.xml"


def test_execute_requires_configured_maven_settings_before_touching_disk(tmp_path):
    runner = RecordingRunner()
    materializer = DummyMaterializer()
    target = KantraTarget(
        KantraConfig(binary_path="/opt/kantra"), materializer=materializer, command_runner=runner
    )

    with pytest.raises(PreconditionError, match="requires maven settings"):
        target.execute(make_test(tmp_path, require_maven_settings=True))

    assert not (tmp_path / "work").exists()
    assert materializer.calls == []
    assert runner.calls == []


def test_execute_requires_test_dir(tmp_path):
    target = KantraTarget(
        KantraConfig(binary_path="/opt/kantra"),
        materializer=DummyMaterializer(),
        command_runner=RecordingRunner(),
    )

    with pytest.raises(ExecutionError, match="test directory not available"):
        target.execute(make_test(tmp_path, test_dir=tmp_path / "missing"))
