"""Load harness and test definition YAML documents."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import yaml

from ..errors import ConfigError
from ..models import AnalysisConfig, AnalysisMode, TestDefinition
from ..models.execution import (
    DEFAULT_CONTEXT_LINES,
    DEFAULT_EXPECTED_OUTPUT,
    DEFAULT_TIMEOUT_SECONDS,
)
from .models import (
    DEFAULT_POLL_INTERVAL,
    HarnessConfig,
    KaiRPCConfig,
    KantraConfig,
    TackleHubConfig,
    TackleUIConfig,
    TargetConfig,
    VSCodeConfig,
)

TEST_FILENAME = "test.yaml"
DEFAULT_WORK_DIR = ".harness-work"


def load_harness_config(path: Path) -> HarnessConfig:
    """Load ``harness.yaml``; relative paths resolve against its directory."""

    data = _load_document(path)
    base_dir = path.resolve().parent

    work_dir = Path(str(data.get("workDir") or DEFAULT_WORK_DIR)).expanduser()
    if not work_dir.is_absolute():
        work_dir = base_dir / work_dir

    targets: List[TargetConfig] = []
    for entry in data.get("targets", []) or []:
        if not isinstance(entry, Mapping):
            raise ConfigError(f"Target entries must be mappings: {path}")
        targets.append(parse_target_config(entry, base_dir=base_dir))

    return HarnessConfig(work_dir=work_dir, targets=targets)


def parse_target_config(data: Mapping[str, Any], *, base_dir: Path | None = None) -> TargetConfig:
    """Build a :class:`TargetConfig` from its YAML mapping."""

    target_type = str(data.get("type") or "").strip()

    kantra = _section(data, "kantra")
    hub = _section(data, "tackleHub")
    ui = _section(data, "tackleUI")
    rpc = _section(data, "kaiRPC")
    vscode = _section(data, "vscode")

    return TargetConfig(
        type=target_type,
        kantra=KantraConfig(
            binary_path=str(kantra.get("binaryPath") or ""),
            maven_settings=_path_value(kantra.get("mavenSettings"), base_dir),
        )
        if kantra is not None
        else None,
        tackle_hub=TackleHubConfig(**_remote_fields(hub, base_dir)) if hub is not None else None,
        tackle_ui=TackleUIConfig(**_remote_fields(ui, base_dir)) if ui is not None else None,
        kai_rpc=KaiRPCConfig(
            host=str(rpc.get("host") or ""),
            port=_int_value(rpc.get("port"), "kaiRPC.port"),
        )
        if rpc is not None
        else None,
        vscode=VSCodeConfig(
            extension_id=str(vscode.get("extensionId") or ""),
            extensions_dir=_path_value(vscode.get("extensionsDir"), base_dir),
        )
        if vscode is not None
        else None,
    )


def load_test_definition(path: Path, work_root: Path) -> TestDefinition:
    """Load one ``test.yaml``; its directory becomes the test directory."""

    data = _load_document(path)

    name = str(data.get("name") or "").strip()
    if not name:
        raise ConfigError(f"Test definition is missing a name: {path}")

    analysis_data = data.get("analysis")
    if not isinstance(analysis_data, Mapping):
        raise ConfigError(f"Test definition is missing an analysis section: {path}")

    application = str(analysis_data.get("application") or "").strip()
    if not application:
        raise ConfigError(f"Test analysis is missing an application: {path}")

    mode_value = str(analysis_data.get("analysisMode") or AnalysisMode.FULL.value)
    try:
        mode = AnalysisMode(mode_value.strip().lower())
    except ValueError as exc:
        raise ConfigError(f"Unknown analysis mode '{mode_value}' in {path}") from exc

    analysis = AnalysisConfig(
        application=application,
        analysis_mode=mode,
        context_lines=_int_value(
            analysis_data.get("contextLines", DEFAULT_CONTEXT_LINES), "contextLines"
        ),
        label_selector=str(analysis_data.get("labelSelector") or ""),
        incident_selector=str(analysis_data.get("incidentSelector") or ""),
        target=_string_list(analysis_data.get("target")),
        source=_string_list(analysis_data.get("source")),
        rules=_string_list(analysis_data.get("rules")),
    )

    timeout = data.get("timeout", DEFAULT_TIMEOUT_SECONDS)
    try:
        timeout_value = float(timeout)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid timeout '{timeout}' in {path}") from exc

    test_dir = path.resolve().parent
    return TestDefinition(
        name=name,
        analysis=analysis,
        test_dir=test_dir,
        work_dir=work_root,
        description=str(data.get("description") or ""),
        timeout=timeout_value,
        require_maven_settings=bool(data.get("requireMavenSettings", False)),
        expected_output=str(data.get("expectedOutput") or DEFAULT_EXPECTED_OUTPUT),
    )


def discover_tests(paths: Sequence[Path], work_root: Path) -> List[TestDefinition]:
    """Load every ``test.yaml`` found under ``paths`` (files or directories)."""

    definitions: List[TestDefinition] = []
    for test_file in _iter_test_files(paths):
        definitions.append(load_test_definition(test_file, work_root))
    return definitions


def _iter_test_files(paths: Sequence[Path]) -> Iterable[Path]:
    seen: set[Path] = set()
    for path in paths:
        if path.is_file():
            candidates = [path]
        elif path.is_dir():
            candidates = sorted(path.rglob(TEST_FILENAME))
        else:
            raise ConfigError(f"Test path not found: {path}")

        for candidate in candidates:
            resolved = candidate.resolve()
            if resolved in seen:
                continue
            seen.add(resolved)
            yield resolved


def _load_document(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:  # pragma: no cover - filesystem errors surfaced to caller
        raise ConfigError(f"Failed to read configuration file {path}") from exc

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in configuration file {path}") from exc

    if not isinstance(data, Mapping):
        raise ConfigError(f"Configuration file must be a mapping: {path}")

    return dict(data)


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ConfigError(f"Target section '{key}' must be a mapping")
    return value


def _remote_fields(data: Mapping[str, Any], base_dir: Path | None) -> Dict[str, Any]:
    interval = data.get("pollInterval", DEFAULT_POLL_INTERVAL)
    try:
        poll_interval = float(interval)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid pollInterval '{interval}'") from exc

    return {
        "url": str(data.get("url") or "").rstrip("/"),
        "token": str(data.get("token") or ""),
        "username": str(data.get("username") or ""),
        "password": str(data.get("password") or ""),
        "maven_settings": _path_value(data.get("mavenSettings"), base_dir),
        "poll_interval": poll_interval,
    }


def _path_value(value: Any, base_dir: Path | None) -> str:
    if not value:
        return ""
    path = Path(str(value)).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return str(path)


def _int_value(value: Any, name: str) -> int:
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid integer for {name}: {value}") from exc


def _string_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


__all__ = [
    "TEST_FILENAME",
    "discover_tests",
    "load_harness_config",
    "load_test_definition",
    "parse_target_config",
]
