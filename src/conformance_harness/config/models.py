"""Backend configuration: one sub-config per target type."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

DEFAULT_POLL_INTERVAL = 5.0


@dataclass(frozen=True, slots=True)
class KantraConfig:
    binary_path: str = ""
    maven_settings: str = ""


@dataclass(frozen=True, slots=True)
class TackleHubConfig:
    url: str = ""
    token: str = ""
    username: str = ""
    password: str = ""
    maven_settings: str = ""
    poll_interval: float = DEFAULT_POLL_INTERVAL
    request_timeout: float = 30.0


@dataclass(frozen=True, slots=True)
class TackleUIConfig:
    url: str = ""
    token: str = ""
    username: str = ""
    password: str = ""
    maven_settings: str = ""
    poll_interval: float = DEFAULT_POLL_INTERVAL
    request_timeout: float = 30.0


@dataclass(frozen=True, slots=True)
class KaiRPCConfig:
    host: str = ""
    port: int = 0


@dataclass(frozen=True, slots=True)
class VSCodeConfig:
    extension_id: str = ""
    extensions_dir: str = ""


@dataclass(frozen=True, slots=True)
class TargetConfig:
    """Tagged union selecting one backend by ``type``.

    Only the sub-config matching ``type`` is consulted; the factory rejects
    a missing one before any execution is attempted.
    """

    type: str
    kantra: Optional[KantraConfig] = None
    tackle_hub: Optional[TackleHubConfig] = None
    tackle_ui: Optional[TackleUIConfig] = None
    kai_rpc: Optional[KaiRPCConfig] = None
    vscode: Optional[VSCodeConfig] = None


@dataclass(frozen=True, slots=True)
class HarnessConfig:
    """Top level harness configuration."""

    work_dir: Path
    targets: List[TargetConfig] = field(default_factory=list)

    def target(self, target_type: str) -> TargetConfig | None:
        for config in self.targets:
            if config.type == target_type:
                return config
        return None
