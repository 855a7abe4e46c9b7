"""Resolve application references into local analysis inputs."""

from __future__ import annotations

import logging
import os
import re
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from ..errors import ExecutionError, MaterializationError
from ..models import ExecutionResult
from .process import run_command

logger = logging.getLogger(__name__)

BINARY_EXTENSIONS = (".jar", ".war", ".ear")
LEGACY_BINARY_PREFIX = "binary:"
SOURCE_DIRNAME = "source"
CLONE_TIMEOUT_SECONDS = 5 * 60

_SSH_GIT_URL = re.compile(r"^[\w.+-]+@[\w.-]+:")


class ReferenceKind(str, Enum):
    BINARY = "binary"
    LEGACY_BINARY = "legacy-binary"
    GIT = "git"
    LOCAL = "local"


@dataclass(frozen=True, slots=True)
class ApplicationReference:
    """Classified application reference.

    ``ref`` and ``subpath`` are only populated for git references.
    """

    kind: ReferenceKind
    location: str
    ref: str = ""
    subpath: str = ""


def is_binary_file(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in BINARY_EXTENSIONS


def is_git_url(application: str) -> bool:
    return (
        application.startswith("http://")
        or application.startswith("https://")
        or bool(_SSH_GIT_URL.match(application))
    )


def parse_application_reference(application: str) -> ApplicationReference:
    """Classify ``application`` as binary, legacy binary, git or local path."""

    if is_binary_file(application):
        return ApplicationReference(ReferenceKind.BINARY, application)

    if application.startswith(LEGACY_BINARY_PREFIX):
        return ApplicationReference(
            ReferenceKind.LEGACY_BINARY, application[len(LEGACY_BINARY_PREFIX):]
        )

    if is_git_url(application):
        url, _, fragment = application.partition("#")
        ref, _, subpath = fragment.partition("/")
        return ApplicationReference(ReferenceKind.GIT, url, ref=ref, subpath=subpath)

    return ApplicationReference(ReferenceKind.LOCAL, application)


def parse_git_url(application: str) -> tuple[str, str]:
    """Split ``url#branch`` keeping the full branch (``feature/x`` stays whole)."""

    url, _, branch = application.partition("#")
    return url, branch


def prepare_work_dir(base: Path, test_name: str) -> Path:
    """Create the per-test work directory ``<base>/<test_name>``."""

    work_dir = (base / test_name).resolve()
    try:
        work_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise MaterializationError(f"Failed to create work directory {work_dir}") from exc
    return work_dir


CommandRunner = Callable[..., ExecutionResult]


class InputMaterializer:
    """Turn an application reference into a path an analyzer can read."""

    def __init__(
        self,
        *,
        git_bin: str = "git",
        command_runner: CommandRunner | None = None,
        clone_timeout: float = CLONE_TIMEOUT_SECONDS,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.git_bin = git_bin
        self.clone_timeout = clone_timeout
        self._run = command_runner or run_command
        self._log = log or logger

    def materialize(self, application: str, test_dir: Path) -> str:
        reference = parse_application_reference(application)

        if reference.kind is ReferenceKind.BINARY:
            self._log.info("Detected binary input file=%s", reference.location)
            return self._prepare_binary(reference.location, test_dir)

        if reference.kind is ReferenceKind.LEGACY_BINARY:
            return reference.location

        if reference.kind is ReferenceKind.GIT:
            return self._prepare_git(reference, test_dir)

        return reference.location

    # ------------------------------------------------------------------
    def _prepare_binary(self, binary_path: str, test_dir: Path) -> str:
        path = Path(binary_path)
        if path.is_absolute():
            if not path.exists():
                raise MaterializationError(f"binary file not found: {binary_path}")
            return str(path)

        resolved = test_dir / path
        if not resolved.exists():
            raise MaterializationError(f"binary file not found at {resolved}")

        self._log.info("Resolved relative binary path original=%s resolved=%s", binary_path, resolved)
        return str(resolved)

    def _prepare_git(self, reference: ApplicationReference, test_dir: Path) -> str:
        clone_dir = (test_dir / SOURCE_DIRNAME).resolve()
        input_dir = clone_dir / reference.subpath if reference.subpath else clone_dir

        if clone_dir.exists():
            self._log.info("Repository already exists, skipping clone dest=%s", clone_dir)
        else:
            self._clone(reference, clone_dir)

        if reference.subpath and not input_dir.exists():
            raise MaterializationError(
                f"specified path does not exist in repository {reference.location}"
                f" (ref {reference.ref or 'default'}): {reference.subpath}"
            )

        return str(input_dir)

    def _clone(self, reference: ApplicationReference, clone_dir: Path) -> None:
        self._log.info(
            "Cloning git repository url=%s ref=%s path=%s dest=%s",
            reference.location,
            reference.ref,
            reference.subpath,
            clone_dir,
        )

        git_args: List[str] = ["clone", "--depth", "1"]
        if reference.ref:
            git_args.extend(["--branch", reference.ref])
        git_args.extend([reference.location, str(clone_dir)])

        try:
            self._run(self.git_bin, git_args, cwd=None, timeout=self.clone_timeout)
        except ExecutionError as exc:
            raise MaterializationError(
                f"git clone failed for {reference.location} (ref {reference.ref or 'default'}): {exc}"
            ) from exc

        git_dir = clone_dir / ".git"
        try:
            shutil.rmtree(git_dir)
        except OSError as exc:
            self._log.warning("Failed to remove .git directory path=%s error=%s", git_dir, exc)
        else:
            self._log.info("Removed .git directory path=%s", git_dir)


__all__ = [
    "ApplicationReference",
    "InputMaterializer",
    "ReferenceKind",
    "SOURCE_DIRNAME",
    "is_binary_file",
    "is_git_url",
    "parse_application_reference",
    "parse_git_url",
    "prepare_work_dir",
]
