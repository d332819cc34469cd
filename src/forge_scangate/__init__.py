"""FORGE plugin: scangate - gate builds on Amazon ECR image scan findings."""

from forge_scangate.constants import __version__
from forge_scangate.plugin import ScanGatePlugin

__all__ = [
    "ScanGatePlugin",
    "__version__",
    "create_plugin",
]


def create_plugin() -> ScanGatePlugin:
    """Entry point for FORGE plugin discovery."""
    return ScanGatePlugin()
