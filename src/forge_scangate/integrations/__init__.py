"""Integrations with external services."""

from forge_scangate.integrations.ecr import EcrScanBackend

__all__ = [
    "EcrScanBackend",
]
