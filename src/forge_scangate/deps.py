"""Check that the external CLIs the gate shells out to are installed."""

from __future__ import annotations

import shutil


def missing_dependencies(required: list[str]) -> list[str]:
    """Return the names of required tools that are not on PATH, in input order."""
    return [tool for tool in required if shutil.which(tool) is None]
