"""Utility modules for console output."""

from forge_scangate.utils.console import render_report

__all__ = [
    "render_report",
]
