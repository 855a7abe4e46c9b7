"""Execution target shelling out to the ``kantra`` CLI."""

from __future__ import annotations

import logging
import shutil
import threading
from pathlib import Path
from typing import Callable, List, Optional

from ..config import KantraConfig
from ..errors import ExecutionError, TargetConfigurationError
from ..models import AnalysisConfig, AnalysisMode, ExecutionResult, TestDefinition
from .base import OUTPUT_DIRNAME, OUTPUT_FILENAME, Target, check_maven_settings
from .materializer import InputMaterializer, prepare_work_dir
from .process import log_result, run_command

logger = logging.getLogger(__name__)

KANTRA_BINARY = "kantra"


def build_args(
    analysis: AnalysisConfig,
    input_path: str,
    output_dir: str,
    maven_settings: str = "",
) -> List[str]:
    """Return the ``kantra analyze`` argument list for ``analysis``."""

    args = ["analyze", "--context-lines", str(analysis.context_lines)]
    args.extend(["--input", input_path])
    args.extend(["--output", output_dir])

    if analysis.label_selector:
        args.extend(["--label-selector", analysis.label_selector])
    if analysis.incident_selector:
        args.extend(["--incident-selector", analysis.incident_selector])
    if maven_settings:
        args.extend(["--maven-settings", maven_settings])

    for target in analysis.target:
        args.extend(["-t", target])
    for source in analysis.source:
        args.extend(["-s", source])
    for rule in analysis.rules:
        args.extend(["--rules", rule])

    if analysis.analysis_mode is AnalysisMode.SOURCE_ONLY:
        args.extend(["--mode", "source-only"])
    else:
        args.extend(["--mode", "full"])

    # container mode sidesteps host dependency resolution
    args.append("--run-local=false")
    args.append("--overwrite")
    return args


class KantraTarget(Target):
    """Run ``kantra analyze`` locally against a materialized input."""

    def __init__(
        self,
        config: KantraConfig | None = None,
        *,
        materializer: InputMaterializer | None = None,
        command_runner: Callable[..., ExecutionResult] | None = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        binary_path = config.binary_path if config is not None else ""
        if not binary_path:
            binary_path = shutil.which(KANTRA_BINARY) or ""
            if not binary_path:
                raise TargetConfigurationError("kantra binary not found in PATH")

        self.binary_path = binary_path
        self.maven_settings = config.maven_settings if config is not None else ""
        self._log = log or logger
        self._run = command_runner or run_command
        self._materializer = materializer or InputMaterializer(log=self._log)

    @property
    def name(self) -> str:
        return "kantra"

    # ------------------------------------------------------------------
    def execute(
        self,
        test: TestDefinition,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExecutionResult:
        self._log.info("Executing kantra analysis test=%s", test.name)

        check_maven_settings(test, self.maven_settings)

        test_dir = test.test_dir
        if not test_dir or not Path(test_dir).is_dir():
            raise ExecutionError(f"test directory not available for {test.name}")

        work_dir = prepare_work_dir(test.work_dir, test.name)
        input_path = self._materializer.materialize(test.analysis.application, Path(test_dir))

        output_dir = (work_dir / OUTPUT_DIRNAME).resolve()
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ExecutionError(f"failed to create output directory {output_dir}") from exc

        maven_settings = self.maven_settings if test.require_maven_settings else ""
        args = build_args(test.analysis, input_path, str(output_dir), maven_settings)
        result = self._run(self.binary_path, args, cwd=work_dir, timeout=test.timeout)
        result.output_file = output_dir / OUTPUT_FILENAME

        log_result(self._log, result)
        return result


__all__ = ["KANTRA_BINARY", "KantraTarget", "build_args"]
