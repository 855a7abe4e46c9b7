"""Conformance harness running analyzer scenarios against multiple backends."""

from .errors import HarnessError

__all__ = ["HarnessError"]

__version__ = "0.1.0"
