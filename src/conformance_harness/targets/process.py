"""Run external commands and translate their failures into harness errors."""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path
from typing import List, Optional

from ..errors import CommandFailedError, CommandTimeoutError, ExecutionError
from ..models import ExecutionResult

logger = logging.getLogger(__name__)


def run_command(
    executable: str,
    args: List[str],
    *,
    cwd: Path | str | None = None,
    timeout: Optional[float] = None,
    env: Optional[dict[str, str]] = None,
) -> ExecutionResult:
    """Run ``executable`` synchronously and capture its output.

    The child is killed once ``timeout`` seconds elapse and
    :class:`CommandTimeoutError` is raised. A non-zero exit raises
    :class:`CommandFailedError` carrying the captured result.
    """

    command = [executable, *args]
    logger.debug("Running command cmd=%s cwd=%s timeout=%s", command, cwd, timeout)

    started = time.monotonic()
    try:
        completed = subprocess.run(
            command,
            cwd=cwd,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise ExecutionError(f"Executable not found: {executable}") from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandTimeoutError(
            f"Command '{' '.join(command)}' timed out after {timeout}s"
        ) from exc

    result = ExecutionResult(
        exit_code=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        duration=time.monotonic() - started,
    )

    if completed.returncode != 0:
        raise CommandFailedError(
            f"Command '{' '.join(command)}' failed with exit code {completed.returncode}",
            result,
        )

    return result


def log_result(log: logging.Logger, result: ExecutionResult) -> None:
    log.info(
        "Execution finished exit_code=%s duration=%.2fs output=%s",
        result.exit_code,
        result.duration,
        result.output_file,
    )
    if result.stderr:
        log.debug("stderr: %s", result.stderr)


__all__ = ["log_result", "run_command"]
