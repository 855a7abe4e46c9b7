"""Command-line interface package for the conformance harness."""

from .app import HarnessReport, build_parser, create_service, main, render_table, run

__all__ = [
    "HarnessReport",
    "build_parser",
    "create_service",
    "main",
    "render_table",
    "run",
]
