"""Execution target driving analysis tasks through the hub API."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..config import TackleHubConfig, TackleUIConfig
from ..errors import (
    ExecutionCancelledError,
    ExecutionError,
    ExecutionTimeoutError,
    HubRequestError,
    MaterializationError,
    TargetConfigurationError,
    TaskFailedError,
)
from ..models import (
    AnalysisConfig,
    AnalysisMode,
    Category,
    ExecutionResult,
    Incident,
    Link,
    RuleSet,
    TestDefinition,
    Violation,
    dump_rulesets,
)
from ..normalization import normalize_hub_path
from .base import OUTPUT_DIRNAME, OUTPUT_FILENAME, Target, check_maven_settings
from .hub_client import HubClient
from .labels import parse_label_selector
from .materializer import is_git_url, parse_git_url, prepare_work_dir

logger = logging.getLogger(__name__)

TARGET_LABEL = "konveyor.io/target"
SOURCE_LABEL = "konveyor.io/source"

TAG_SOURCE_RULESETS = {
    "language-discovery": "discovery-rules",
    "tech-discovery": "technology-usage",
}


class TaskState(str, Enum):
    """Lifecycle states of a hub task."""

    CREATED = "Created"
    READY = "Ready"
    PENDING = "Pending"
    POSTPONED = "Postponed"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class PollOutcome(str, Enum):
    CONTINUE = "continue"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def classify_state(state: TaskState | str | None) -> PollOutcome:
    """Map a task state onto what the poller should do next.

    Only ``Succeeded`` and ``Failed`` are terminal. ``Postponed`` goes back to
    ``Pending`` on the hub side, so it keeps polling like any other state.
    """

    if state == TaskState.SUCCEEDED:
        return PollOutcome.SUCCEEDED
    if state == TaskState.FAILED:
        return PollOutcome.FAILED
    return PollOutcome.CONTINUE


def failure_detail(task: Mapping[str, Any]) -> str:
    descriptions = [
        str(error.get("description") or "").strip()
        for error in task.get("errors") or []
        if isinstance(error, Mapping)
    ]
    descriptions = [description for description in descriptions if description]
    return "; ".join(descriptions) or f"task ended in state {task.get('state')}"


class TaskPoller:
    """Poll a task until it terminates, the deadline passes or the run is cancelled."""

    def __init__(
        self,
        fetch_task: Callable[[int], Mapping[str, Any]],
        *,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._fetch_task = fetch_task
        self.interval = interval
        self._clock = clock
        self._log = log or logger

    def wait(
        self,
        task_id: int,
        *,
        timeout: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> Mapping[str, Any]:
        event = cancel_event or threading.Event()
        deadline = self._clock() + timeout
        last_state: Any = None

        while True:
            if event.is_set():
                raise ExecutionCancelledError(f"analysis task {task_id} cancelled")

            task = self._fetch_task(task_id)
            if not isinstance(task, Mapping):
                raise HubRequestError(f"hub returned no task object for task {task_id}")
            state = task.get("state")
            if state != last_state:
                self._log.info("Task state changed task=%s state=%s", task_id, state)
                last_state = state

            outcome = classify_state(state)
            if outcome is PollOutcome.SUCCEEDED:
                return task
            if outcome is PollOutcome.FAILED:
                raise TaskFailedError(task_id, failure_detail(task))

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise ExecutionTimeoutError(
                    f"analysis task {task_id} did not finish within {timeout}s (last state {state})"
                )

            if event.wait(min(self.interval, remaining)):
                raise ExecutionCancelledError(f"analysis task {task_id} cancelled")

            if self._clock() >= deadline:
                raise ExecutionTimeoutError(
                    f"analysis task {task_id} did not finish within {timeout}s (last state {state})"
                )


def build_task_data(analysis: AnalysisConfig) -> Dict[str, Any]:
    """Translate an analysis scenario into analyzer addon task data."""

    labels = parse_label_selector(analysis.label_selector)
    included = list(labels.included)
    for target in analysis.target:
        label = f"{TARGET_LABEL}={target}"
        if label not in included:
            included.append(label)
    for source in analysis.source:
        label = f"{SOURCE_LABEL}={source}"
        if label not in included:
            included.append(label)

    return {
        "mode": {"withDeps": analysis.analysis_mode is not AnalysisMode.SOURCE_ONLY},
        "tagger": {"enabled": True},
        "verbosity": 0,
        "rules": {"labels": {"included": included, "excluded": list(labels.excluded)}},
    }


def convert_analysis(
    analysis: Mapping[str, Any],
    tags: Iterable[Mapping[str, Any]] = (),
) -> List[RuleSet]:
    """Rebuild analyzer rulesets from hub insights and application tags.

    Insights with zero effort become ruleset insights, the others violations.
    Tags are attributed to the ruleset that produced them via their source.
    """

    rulesets: Dict[str, RuleSet] = {}

    for insight in analysis.get("insights") or []:
        ruleset_name = str(insight.get("ruleset") or "")
        rule_id = str(insight.get("rule") or "")
        if not ruleset_name or not rule_id:
            continue

        ruleset = rulesets.setdefault(ruleset_name, RuleSet(name=ruleset_name))
        effort = int(insight.get("effort") or 0)
        violation = Violation(
            description=str(insight.get("description") or ""),
            category=_category(insight.get("category")),
            effort=effort or None,
            labels=[str(label) for label in insight.get("labels") or []],
            links=[Link.from_dict(link) for link in insight.get("links") or []],
            incidents=[_incident(incident) for incident in insight.get("incidents") or []],
        )
        if effort == 0:
            ruleset.insights[rule_id] = violation
        else:
            ruleset.violations[rule_id] = violation

    for tag in tags:
        ruleset_name = TAG_SOURCE_RULESETS.get(str(tag.get("source") or ""))
        if ruleset_name is None:
            continue
        ruleset = rulesets.setdefault(ruleset_name, RuleSet(name=ruleset_name))
        tag_name = str(tag.get("name") or "")
        if tag_name and tag_name not in ruleset.tags:
            ruleset.tags.append(tag_name)

    return list(rulesets.values())


def _resource_id(response: Any, resource: str) -> int:
    if isinstance(response, Mapping):
        try:
            return int(response["id"])
        except (KeyError, TypeError, ValueError):
            pass
    raise HubRequestError(f"hub response for created {resource} has no id")


def _category(value: Any) -> Category | None:
    if not value:
        return None
    try:
        return Category(str(value).strip().lower())
    except ValueError:
        logger.warning("Ignoring unknown insight category category=%s", value)
        return None


def _incident(data: Mapping[str, Any]) -> Incident:
    file_path = str(data.get("file") or "")
    line = data.get("line")
    return Incident(
        uri=f"file://{normalize_hub_path(file_path)}" if file_path else "",
        message=str(data.get("message") or ""),
        code_snip=str(data.get("codeSnip") or ""),
        line_number=int(line) if line is not None else None,
        variables=dict(data.get("facts") or {}),
    )


class TackleHubTarget(Target):
    """Submit an analysis task to the hub and collect its results."""

    _config_label = "tackle hub"

    def __init__(
        self,
        config: TackleHubConfig | TackleUIConfig | None,
        *,
        client: HubClient | None = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        if config is None or not config.url:
            raise TargetConfigurationError(f"{self._config_label} configuration is required")

        self.url = config.url
        self.maven_settings = config.maven_settings
        self.poll_interval = config.poll_interval
        self._log = log or logger
        self._client = client or HubClient(
            self._api_url(config.url),
            token=config.token,
            username=config.username,
            password=config.password,
            timeout=config.request_timeout,
        )

    @property
    def name(self) -> str:
        return "tackle-hub"

    def _api_url(self, url: str) -> str:
        return url

    # ------------------------------------------------------------------
    def execute(
        self,
        test: TestDefinition,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExecutionResult:
        self._log.info("Executing hub analysis test=%s target=%s", test.name, self.name)

        check_maven_settings(test, self.maven_settings)

        application = test.analysis.application
        if not is_git_url(application):
            raise MaterializationError(
                f"{self.name} only analyzes git repositories, got application {application}"
            )
        repository_url, branch = parse_git_url(application)

        work_dir = prepare_work_dir(test.work_dir, test.name)
        output_dir = (work_dir / OUTPUT_DIRNAME).resolve()
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ExecutionError(f"failed to create output directory {output_dir}") from exc

        started = time.monotonic()
        identity_id: Optional[int] = None
        application_id: Optional[int] = None
        try:
            if test.require_maven_settings:
                identity_id = self._create_maven_identity(test)

            application_id = self._create_application(test, repository_url, branch, identity_id)
            task = self._client.create_task(
                {
                    "name": f"{test.name}-analysis",
                    "addon": "analyzer",
                    "state": TaskState.READY.value,
                    "application": {"id": application_id},
                    "data": build_task_data(test.analysis),
                }
            )
            task_id = _resource_id(task, "task")
            self._log.info("Submitted analysis task task=%s application=%s", task_id, application_id)

            poller = TaskPoller(self._client.get_task, interval=self.poll_interval, log=self._log)
            try:
                final = poller.wait(task_id, timeout=test.timeout, cancel_event=cancel_event)
            except ExecutionTimeoutError:
                self._cancel_task(task_id)
                raise

            rulesets = self._collect_rulesets(application_id)
        finally:
            self._cleanup(application_id, identity_id)

        output_file = output_dir / OUTPUT_FILENAME
        output_file.write_text(dump_rulesets(rulesets), encoding="utf-8")

        activity = final.get("activity") or []
        return ExecutionResult(
            exit_code=0,
            stdout="\n".join(str(entry) for entry in activity),
            output_file=output_file,
            duration=time.monotonic() - started,
            rulesets=rulesets,
        )

    # ------------------------------------------------------------------
    def _create_application(
        self,
        test: TestDefinition,
        repository_url: str,
        branch: str,
        identity_id: Optional[int],
    ) -> int:
        payload: Dict[str, Any] = {
            "name": f"{test.name}-{uuid.uuid4().hex[:8]}",
            "description": test.description or f"conformance test {test.name}",
            "repository": {"kind": "git", "url": repository_url, "branch": branch},
        }
        if identity_id is not None:
            payload["identities"] = [{"id": identity_id}]

        return _resource_id(self._client.create_application(payload), "application")

    def _create_maven_identity(self, test: TestDefinition) -> int:
        settings_path = Path(self.maven_settings)
        try:
            settings = settings_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise MaterializationError(f"failed to read maven settings {settings_path}") from exc

        created = self._client.create_identity(
            {"name": f"{test.name}-maven-{uuid.uuid4().hex[:8]}", "kind": "maven", "settings": settings}
        )
        return _resource_id(created, "identity")

    def _collect_rulesets(self, application_id: int) -> List[RuleSet]:
        analysis = self._client.get_analysis(application_id)
        tags = self._client.get_tags(application_id)
        if not isinstance(analysis, Mapping) or not isinstance(tags, list):
            raise HubRequestError(f"hub returned malformed results for application {application_id}")
        try:
            return convert_analysis(analysis, tags)
        except (AttributeError, TypeError, ValueError) as exc:
            raise HubRequestError(
                f"hub returned malformed insights for application {application_id}: {exc}"
            ) from exc

    def _cancel_task(self, task_id: int) -> None:
        try:
            self._client.cancel_task(task_id)
        except ExecutionError as exc:
            self._log.warning("Failed to cancel task task=%s error=%s", task_id, exc)

    def _cleanup(self, application_id: Optional[int], identity_id: Optional[int]) -> None:
        if application_id is not None:
            try:
                self._client.delete_application(application_id)
            except ExecutionError as exc:
                self._log.warning(
                    "Failed to delete application application=%s error=%s", application_id, exc
                )
        if identity_id is not None:
            try:
                self._client.delete_identity(identity_id)
            except ExecutionError as exc:
                self._log.warning("Failed to delete identity identity=%s error=%s", identity_id, exc)


class TackleUITarget(TackleHubTarget):
    """Drive the hub through the UI's ``/hub`` reverse proxy."""

    _config_label = "tackle ui"

    @property
    def name(self) -> str:
        return "tackle-ui"

    def _api_url(self, url: str) -> str:
        return url.rstrip("/") + "/hub"


__all__ = [
    "PollOutcome",
    "TackleHubTarget",
    "TackleUITarget",
    "TaskPoller",
    "TaskState",
    "build_task_data",
    "classify_state",
    "convert_analysis",
    "failure_detail",
]
