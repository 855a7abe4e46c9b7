"""Analyzer output models: rulesets, violations and incidents."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import unquote, urlparse

import yaml

from ..errors import FixtureError


class Category(str, Enum):
    """Classification the analyzer assigns to a violation."""

    MANDATORY = "mandatory"
    OPTIONAL = "optional"
    POTENTIAL = "potential"


@dataclass(slots=True)
class Link:
    """External reference attached to a violation."""

    url: str = ""
    title: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Link":
        return cls(url=str(data.get("url") or ""), title=str(data.get("title") or ""))

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "title": self.title}


@dataclass(slots=True)
class Incident:
    """A single occurrence of a violation in the analyzed sources."""

    uri: str = ""
    message: str = ""
    code_snip: str = ""
    line_number: Optional[int] = None
    variables: Dict[str, Any] = field(default_factory=dict)

    @property
    def filename(self) -> str:
        """Return the filesystem path behind ``uri`` (``file://`` URIs only)."""

        if not self.uri:
            return ""
        parsed = urlparse(self.uri)
        if parsed.scheme != "file":
            return self.uri
        return unquote(parsed.path)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Incident":
        line = data.get("lineNumber")
        return cls(
            uri=str(data.get("uri") or ""),
            message=str(data.get("message") or ""),
            code_snip=str(data.get("codeSnip") or ""),
            line_number=int(line) if line is not None else None,
            variables=dict(data.get("variables") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"uri": self.uri, "message": self.message}
        if self.code_snip:
            payload["codeSnip"] = self.code_snip
        if self.line_number is not None:
            payload["lineNumber"] = self.line_number
        if self.variables:
            payload["variables"] = dict(self.variables)
        return payload


@dataclass(slots=True)
class Violation:
    """Finding for one rule; insights share the same shape."""

    description: str = ""
    category: Optional[Category] = None
    effort: Optional[int] = None
    labels: List[str] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    incidents: List[Incident] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Violation":
        category = data.get("category")
        effort = data.get("effort")
        try:
            parsed_category = Category(str(category).strip().lower()) if category else None
        except ValueError as exc:
            raise FixtureError(f"Unknown violation category: {category}") from exc
        return cls(
            description=str(data.get("description") or ""),
            category=parsed_category,
            effort=int(effort) if effort is not None else None,
            labels=[str(label) for label in data.get("labels") or []],
            links=[Link.from_dict(link) for link in data.get("links") or []],
            incidents=[Incident.from_dict(incident) for incident in data.get("incidents") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"description": self.description}
        if self.category is not None:
            payload["category"] = self.category.value
        if self.labels:
            payload["labels"] = list(self.labels)
        if self.incidents:
            payload["incidents"] = [incident.to_dict() for incident in self.incidents]
        if self.links:
            payload["links"] = [link.to_dict() for link in self.links]
        if self.effort is not None:
            payload["effort"] = self.effort
        return payload


@dataclass(slots=True)
class RuleSet:
    """Named bundle of analysis findings for one rule group."""

    name: str
    description: str = ""
    tags: List[str] = field(default_factory=list)
    violations: Dict[str, Violation] = field(default_factory=dict)
    insights: Dict[str, Violation] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    unmatched: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RuleSet":
        if not isinstance(data, Mapping):
            raise FixtureError("Each ruleset entry must be a mapping")
        name = data.get("name")
        if not name:
            raise FixtureError("Ruleset entry is missing a name")

        return cls(
            name=str(name),
            description=str(data.get("description") or ""),
            tags=[str(tag) for tag in data.get("tags") or []],
            violations=_violations(data.get("violations")),
            insights=_violations(data.get("insights")),
            errors={str(key): str(value) for key, value in (data.get("errors") or {}).items()},
            unmatched=[str(rule) for rule in data.get("unmatched") or []],
            skipped=[str(rule) for rule in data.get("skipped") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"name": self.name}
        if self.description:
            payload["description"] = self.description
        if self.tags:
            payload["tags"] = list(self.tags)
        if self.violations:
            payload["violations"] = {key: value.to_dict() for key, value in self.violations.items()}
        if self.insights:
            payload["insights"] = {key: value.to_dict() for key, value in self.insights.items()}
        if self.errors:
            payload["errors"] = dict(self.errors)
        if self.unmatched:
            payload["unmatched"] = list(self.unmatched)
        if self.skipped:
            payload["skipped"] = list(self.skipped)
        return payload


def _violations(raw: Any) -> Dict[str, Violation]:
    if not raw:
        return {}
    if not isinstance(raw, Mapping):
        raise FixtureError("Violations and insights must be keyed by rule id")
    return {str(rule_id): Violation.from_dict(body or {}) for rule_id, body in raw.items()}


def parse_rulesets(text: str) -> List[RuleSet]:
    """Parse analyzer output YAML into rulesets."""

    try:
        data = yaml.safe_load(text) or []
    except yaml.YAMLError as exc:
        raise FixtureError("Invalid YAML in ruleset document") from exc

    if not isinstance(data, list):
        raise FixtureError("Ruleset document must be a list of rulesets")

    try:
        return [RuleSet.from_dict(entry) for entry in data]
    except (TypeError, ValueError, AttributeError) as exc:
        raise FixtureError(f"Malformed ruleset document: {exc}") from exc


def load_rulesets(path: Path) -> List[RuleSet]:
    if not path.exists():
        raise FixtureError(f"Ruleset file not found: {path}")
    return parse_rulesets(path.read_text(encoding="utf-8"))


def dump_rulesets(rulesets: Iterable[RuleSet]) -> str:
    return yaml.safe_dump(
        [ruleset.to_dict() for ruleset in rulesets],
        sort_keys=False,
        allow_unicode=True,
    )
