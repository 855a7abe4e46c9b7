"""Rewrite backend specific paths in analyzer output to canonical prefixes."""

from __future__ import annotations

import re
from typing import List

CANONICAL_SOURCE = "file:///source/"
CANONICAL_M2 = "file:///m2/"

KANTRA_SOURCE_MOUNT = "file:///opt/input/source/"
HUB_SOURCE_MOUNT = re.compile(r"file:///shared/source/[^/]+/")
M2_MOUNTS = (
    "file:///m2/repository/",
    "file:///root/.m2/repository/",
    "file:///cache/m2/repository/",
)

HUB_CACHE_M2_REPOSITORY = "/cache/m2/repository/"
HUB_CACHE_M2 = "/cache/m2/"
HUB_M2 = "/m2/"

# backends that do not preserve code snippets per incident
SNIPLESS_TARGETS = frozenset({"tackle-hub", "tackle-ui"})

_CODE_SNIP_KEY = "codeSnip:"


def normalize_yaml_paths(text: str, test_dir: str = "", target_type: str = "") -> str:
    """Normalize analyzer output text before it is parsed and compared."""

    if test_dir:
        text = text.replace(test_dir, "")

    text = text.replace(KANTRA_SOURCE_MOUNT, CANONICAL_SOURCE)
    text = HUB_SOURCE_MOUNT.sub(CANONICAL_SOURCE, text)
    for mount in M2_MOUNTS:
        text = text.replace(mount, CANONICAL_M2)

    if target_type in SNIPLESS_TARGETS:
        text = strip_code_snips(text)

    return text


def strip_code_snips(text: str) -> str:
    """Drop ``codeSnip:`` entries, including their indented continuation lines."""

    kept: List[str] = []
    snip_indent: int | None = None

    for line in text.split("\n"):
        stripped = line.strip()
        indent = len(line) - len(line.lstrip(" \t"))

        if snip_indent is not None:
            if not stripped or indent > snip_indent:
                continue
            snip_indent = None

        # list items put the key after "- "
        key_part = stripped[2:] if stripped.startswith("- ") else stripped
        if key_part.startswith(_CODE_SNIP_KEY):
            if stripped.startswith("- "):
                kept.append(line[: indent + 1])
                snip_indent = indent + 2
            else:
                snip_indent = indent
            continue

        kept.append(line)

    return "\n".join(kept)


def normalize_hub_path(path: str) -> str:
    """Map the hub's dependency cache mount onto the canonical ``/m2/`` root."""

    path = path.replace(HUB_CACHE_M2_REPOSITORY, HUB_M2)
    return path.replace(HUB_CACHE_M2, HUB_M2)


__all__ = [
    "CANONICAL_M2",
    "CANONICAL_SOURCE",
    "SNIPLESS_TARGETS",
    "normalize_hub_path",
    "normalize_yaml_paths",
    "strip_code_snips",
]
