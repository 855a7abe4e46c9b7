"""Execution targets speaking the analyzer JSON-RPC protocol."""

from __future__ import annotations

import io
import json
import logging
import re
import socket
import subprocess
import threading
import time
from abc import abstractmethod
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Mapping, Optional

from ..config import KaiRPCConfig, VSCodeConfig
from ..errors import (
    ExecutionCancelledError,
    ExecutionError,
    ExecutionTimeoutError,
    RPCError,
    TargetConfigurationError,
)
from ..models import ExecutionResult, RuleSet, TestDefinition, dump_rulesets
from .base import OUTPUT_DIRNAME, OUTPUT_FILENAME, Target, check_maven_settings
from .materializer import InputMaterializer, prepare_work_dir

logger = logging.getLogger(__name__)

ANALYZE_METHOD = "analysis_engine.Analyze"
SERVER_RELATIVE_PATH = Path("assets") / "bin" / "kai-analyzer-rpc"
DEFAULT_EXTENSIONS_DIR = Path("~/.vscode/extensions")

_CONTENT_LENGTH = "content-length"
_VERSION_SUFFIX = re.compile(r"-(\d+(?:\.\d+)*)(?:-[\w.]+)?$")


def encode_message(payload: Mapping[str, Any]) -> bytes:
    """Frame ``payload`` with a ``Content-Length`` header."""

    body = json.dumps(payload).encode("utf-8")
    return f"Content-Length: {len(body)}\r\n\r\n".encode("ascii") + body


def read_message(stream: BinaryIO) -> Dict[str, Any]:
    """Read one framed JSON message from ``stream``."""

    headers: Dict[str, str] = {}
    while True:
        line = stream.readline()
        if not line:
            raise RPCError("connection closed before a complete message was received")
        decoded = line.decode("ascii", errors="replace").strip()
        if not decoded:
            break
        key, _, value = decoded.partition(":")
        headers[key.strip().lower()] = value.strip()

    try:
        length = int(headers[_CONTENT_LENGTH])
    except (KeyError, ValueError) as exc:
        raise RPCError("message is missing a valid Content-Length header") from exc

    body = stream.read(length)
    if len(body) < length:
        raise RPCError("connection closed in the middle of a message")

    try:
        message = json.loads(body.decode("utf-8"))
    except json.JSONDecodeError as exc:
        raise RPCError("message body was not valid JSON") from exc
    if not isinstance(message, dict):
        raise RPCError("message body must be a JSON object")
    return message


def read_response(stream: BinaryIO, request_id: Any) -> Dict[str, Any]:
    """Read frames until the response to ``request_id`` arrives.

    Notifications and responses to other requests are skipped.
    """

    while True:
        message = read_message(stream)
        if message.get("id") == request_id:
            return message
        logger.debug(
            "Skipping RPC frame method=%s id=%s", message.get("method"), message.get("id")
        )


def build_request(request_id: int, method: str, params: Mapping[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "method": method, "params": [dict(params)]}


def extract_result(message: Mapping[str, Any]) -> Any:
    error = message.get("error")
    if error:
        if isinstance(error, Mapping):
            raise RPCError(str(error.get("message") or error), code=error.get("code"))
        raise RPCError(str(error))
    return message.get("result")


def build_analyze_params(test: TestDefinition, input_path: str) -> Dict[str, Any]:
    return {
        "label_selector": test.analysis.label_selector,
        "incident_selector": test.analysis.incident_selector,
        "included_paths": [],
        "reset_cache": True,
        "location": input_path,
    }


def decode_rulesets(result: Any) -> List[RuleSet]:
    if not isinstance(result, Mapping):
        raise RPCError("analyze response did not contain a result object")
    return [RuleSet.from_dict(entry) for entry in result.get("Rulesets") or []]


class _RPCTarget(Target):
    """Shared flow: materialize input, call ``Analyze``, write the rulesets."""

    def __init__(
        self,
        *,
        materializer: InputMaterializer | None = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._log = log or logger
        self._materializer = materializer or InputMaterializer(log=self._log)

    def execute(
        self,
        test: TestDefinition,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExecutionResult:
        self._log.info("Executing RPC analysis test=%s target=%s", test.name, self.name)
        check_maven_settings(test, "")

        work_dir = prepare_work_dir(test.work_dir, test.name)
        input_path = self._materializer.materialize(test.analysis.application, test.test_dir)

        output_dir = (work_dir / OUTPUT_DIRNAME).resolve()
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ExecutionError(f"failed to create output directory {output_dir}") from exc

        if cancel_event is not None and cancel_event.is_set():
            raise ExecutionCancelledError(f"analysis for {test.name} cancelled")

        request = build_request(
            1, ANALYZE_METHOD, build_analyze_params(test, input_path)
        )
        started = time.monotonic()
        response, stderr = self._call(request, test, input_path)
        rulesets = decode_rulesets(extract_result(response))

        output_file = output_dir / OUTPUT_FILENAME
        output_file.write_text(dump_rulesets(rulesets), encoding="utf-8")

        return ExecutionResult(
            exit_code=0,
            stderr=stderr,
            output_file=output_file,
            duration=time.monotonic() - started,
            rulesets=rulesets,
        )

    @abstractmethod
    def _call(
        self, request: Mapping[str, Any], test: TestDefinition, input_path: str
    ) -> tuple[Dict[str, Any], str]:
        """Send ``request`` to the server and return its response and stderr."""


class KaiRPCTarget(_RPCTarget):
    """Call a running analyzer RPC server over TCP."""

    def __init__(
        self,
        config: KaiRPCConfig | None,
        *,
        materializer: InputMaterializer | None = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        if config is None or not config.host or not config.port:
            raise TargetConfigurationError("kai rpc configuration with host and port is required")
        super().__init__(materializer=materializer, log=log)
        self.host = config.host
        self.port = config.port

    @property
    def name(self) -> str:
        return "kai-rpc"

    def _call(
        self, request: Mapping[str, Any], test: TestDefinition, input_path: str
    ) -> tuple[Dict[str, Any], str]:
        self._log.info("Calling analyzer RPC server host=%s port=%s", self.host, self.port)
        try:
            with socket.create_connection((self.host, self.port), timeout=test.timeout) as conn:
                conn.sendall(encode_message(request))
                with conn.makefile("rb") as stream:
                    return read_response(stream, request["id"]), ""
        except socket.timeout as exc:
            raise ExecutionTimeoutError(
                f"analyzer RPC call to {self.host}:{self.port} timed out after {test.timeout}s"
            ) from exc
        except OSError as exc:
            raise ExecutionError(f"analyzer RPC call to {self.host}:{self.port} failed: {exc}") from exc


def find_extension_dir(extensions_dir: Path, extension_id: str) -> Path | None:
    """Return the newest installed ``<extension_id>-<version>`` directory."""

    if not extensions_dir.is_dir():
        return None

    prefix = f"{extension_id.lower()}-"
    candidates = [
        entry
        for entry in extensions_dir.iterdir()
        if entry.is_dir()
        and entry.name.lower().startswith(prefix)
        and entry.name[len(prefix):][:1].isdigit()
    ]
    if not candidates:
        return None
    return max(candidates, key=_version_key)


def _version_key(path: Path) -> tuple[int, ...]:
    match = _VERSION_SUFFIX.search(path.name)
    if not match:
        return ()
    return tuple(int(part) for part in match.group(1).split("."))


class VSCodeTarget(_RPCTarget):
    """Run the analyzer server bundled with the IDE extension over stdio."""

    def __init__(
        self,
        config: VSCodeConfig | None,
        *,
        materializer: InputMaterializer | None = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        if config is None or not config.extension_id:
            raise TargetConfigurationError("vscode configuration with an extension id is required")
        super().__init__(materializer=materializer, log=log)

        extensions_dir = Path(config.extensions_dir or DEFAULT_EXTENSIONS_DIR).expanduser()
        extension_dir = find_extension_dir(extensions_dir, config.extension_id)
        if extension_dir is None:
            raise TargetConfigurationError(
                f"extension {config.extension_id} not installed under {extensions_dir}"
            )

        server = extension_dir / SERVER_RELATIVE_PATH
        if not server.exists():
            raise TargetConfigurationError(f"analyzer server not found in extension: {server}")

        self.extension_id = config.extension_id
        self.server_path = server

    @property
    def name(self) -> str:
        return "vscode"

    def _call(
        self, request: Mapping[str, Any], test: TestDefinition, input_path: str
    ) -> tuple[Dict[str, Any], str]:
        command = [str(self.server_path), "-source-directory", input_path]
        for rule in test.analysis.rules:
            command.extend(["-rules", rule])

        self._log.info("Starting extension analyzer server cmd=%s", command)
        try:
            completed = subprocess.run(
                command,
                input=encode_message(request),
                capture_output=True,
                timeout=test.timeout,
            )
        except FileNotFoundError as exc:
            raise ExecutionError(f"Executable not found: {self.server_path}") from exc
        except subprocess.TimeoutExpired as exc:
            raise ExecutionTimeoutError(
                f"extension analyzer server timed out after {test.timeout}s"
            ) from exc

        stderr = completed.stderr.decode("utf-8", errors="replace") if completed.stderr else ""
        if completed.returncode != 0:
            raise ExecutionError(
                f"extension analyzer server exited with code {completed.returncode}: {stderr}"
            )

        return read_response(io.BytesIO(completed.stdout or b""), request["id"]), stderr


__all__ = [
    "ANALYZE_METHOD",
    "KaiRPCTarget",
    "VSCodeTarget",
    "build_analyze_params",
    "build_request",
    "decode_rulesets",
    "encode_message",
    "extract_result",
    "find_extension_dir",
    "read_message",
    "read_response",
]
