"""Path normalization applied to analyzer output before comparison."""

from .paths import (
    CANONICAL_M2,
    CANONICAL_SOURCE,
    SNIPLESS_TARGETS,
    normalize_hub_path,
    normalize_yaml_paths,
    strip_code_snips,
)

__all__ = [
    "CANONICAL_M2",
    "CANONICAL_SOURCE",
    "SNIPLESS_TARGETS",
    "normalize_hub_path",
    "normalize_yaml_paths",
    "strip_code_snips",
]
