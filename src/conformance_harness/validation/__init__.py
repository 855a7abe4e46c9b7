"""Validation of analyzer output against expected fixtures."""

from .comparers import KantraComparer, TackleHubComparer, ValidationError, get_comparer
from .engine import ValidationResult, validate, validate_documents, validate_files

__all__ = [
    "KantraComparer",
    "TackleHubComparer",
    "ValidationError",
    "ValidationResult",
    "get_comparer",
    "validate",
    "validate_documents",
    "validate_files",
]
