"""
Exception hierarchy for the scan gate.

Every exception here is terminal to a gate run. The plugin turns them into a
FAILURE result whose summary is the exception message, so messages are written
to be shown to the user as a single line.

The benign "no scan exists yet" answer from the registry is deliberately not an
exception: the backend boundary maps it to ``None``.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from forge_scangate.core.gate import GateVerdict


class ScanGateException(Exception):
    """Base class for all scan gate failures."""


class ConfigError(ScanGateException):
    """Missing or invalid configuration input."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class BackendError(ScanGateException):
    """A registry call failed for a reason other than "scan not found"."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.detail = message


class ScanFailed(ScanGateException):
    """The registry reports the image scan itself as failed."""

    def __init__(self, description: Optional[str]):
        super().__init__(f"Image scan failed: {description or 'no description provided'}")
        self.description = description


class UnrecognizedStatus(ScanGateException):
    """The registry returned a scan status outside the known set."""

    def __init__(self, status: Optional[str], payload: Any):
        self.status = status
        self.payload = payload
        super().__init__(
            f'Unhandled scan status "{status}". API response: {json.dumps(payload, default=str)}'
        )


class ScanTimeout(ScanGateException):
    """The scan did not reach a terminal status before the configured timeout."""

    def __init__(self, elapsed: float, timeout: float):
        super().__init__(
            f"Image scan did not complete within {timeout:g}s (waited {elapsed:.1f}s)"
        )
        self.elapsed = elapsed
        self.timeout = timeout


class ScanCancelled(ScanGateException):
    """Cancellation was requested while waiting for the scan."""

    def __init__(self) -> None:
        super().__init__("Cancelled while waiting for image scan")


class StaleIgnoreEntry(ScanGateException):
    """One or more ignore-list entries matched no finding."""

    def __init__(self, unmatched: list[str]):
        super().__init__(
            "Ignore list contains CVE IDs that were not returned in the findings result set. "
            "They may be invalid or no longer be current vulnerabilities: "
            + ", ".join(unmatched)
        )
        self.unmatched = unmatched


class ThresholdBreach(ScanGateException):
    """Unignored findings at or above the fail threshold were detected."""

    def __init__(self, verdict: "GateVerdict"):
        threshold = verdict.threshold.value
        super().__init__(
            f"Detected {verdict.failing_count} vulnerabilities with severity >= {threshold} "
            "(the currently configured fail_threshold)."
        )
        self.verdict = verdict
