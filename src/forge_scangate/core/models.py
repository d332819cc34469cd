"""Data model shared by the gate pipeline and the registry backend."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, NamedTuple, Optional, Protocol, runtime_checkable

from forge_scangate.core.severity import Severity, SeverityCounts, classify


class ScanStatus(Enum):
    """Scan status as far as the gate is concerned."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    UNRECOGNIZED = "UNRECOGNIZED"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "ScanStatus":
        if raw in (cls.IN_PROGRESS.value, cls.COMPLETE.value, cls.FAILED.value):
            return cls(raw)
        return cls.UNRECOGNIZED


@dataclass(frozen=True)
class ImageRef:
    """Identifies one image in a registry repository."""

    repository: str
    tag: str
    registry_id: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.repository}:{self.tag}"


@dataclass(frozen=True)
class Finding:
    """
    A single reported vulnerability.

    Only ``name`` and ``severity`` drive the gate. The remaining fields are
    carried through untouched for display.
    """

    name: str
    severity: Severity
    description: str = ""
    uri: str = ""
    attributes: dict[str, str] = field(default_factory=dict, compare=False)
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Finding":
        """Build a Finding from an ``imageScanFindings.findings`` entry."""
        attributes = {
            item.get("key", ""): item.get("value", "")
            for item in data.get("attributes") or []
        }
        return cls(
            name=data.get("name", ""),
            severity=classify(data.get("severity")),
            description=data.get("description", ""),
            uri=data.get("uri", ""),
            attributes=attributes,
            raw=data,
        )

    def display(self) -> str:
        """One-line rendering used in the fail listing."""
        package = self.attributes.get("package_name")
        version = self.attributes.get("package_version")
        parts = [f"{self.name} [{self.severity.label}]"]
        if package:
            parts.append(f"{package} {version}".strip() if version else package)
        if self.uri:
            parts.append(self.uri)
        return " ".join(parts)


@dataclass(frozen=True)
class ScanRecord:
    """
    The registry's current knowledge of a scan.

    A lookup yields status and severity totals only. ``findings`` stays empty
    until the complete paginated list is attached with ``with_findings``.
    """

    status: ScanStatus
    raw_status: Optional[str]
    description: Optional[str] = None
    counts: Optional[SeverityCounts] = None
    findings: tuple[Finding, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ScanRecord":
        """Build a ScanRecord from a ``describe-image-scan-findings`` response."""
        scan_status = data.get("imageScanStatus") or {}
        raw_status = scan_status.get("status")
        status = ScanStatus.parse(raw_status)
        scan_findings = data.get("imageScanFindings") or {}

        counts = None
        if status is ScanStatus.COMPLETE:
            counts = SeverityCounts.from_backend(scan_findings.get("findingSeverityCounts"))

        return cls(
            status=status,
            raw_status=raw_status,
            description=scan_status.get("description"),
            counts=counts,
            raw=data,
        )

    def with_findings(self, findings: Iterable[Finding]) -> "ScanRecord":
        """Return a copy carrying the full, paginated findings list."""
        return replace(self, findings=tuple(findings))


class FindingsPage(NamedTuple):
    """One page of findings and the cursor for the next page (None when done)."""

    items: list[Finding]
    next_cursor: Optional[str]


@runtime_checkable
class ScanBackend(Protocol):
    """
    Capabilities the gate needs from an image scanning service.

    Implementations decide once, at this boundary, which errors mean "no scan
    exists yet": ``lookup_scan`` returns None for that case and raises
    BackendError for everything else.
    """

    def lookup_scan(self, image: ImageRef) -> Optional[ScanRecord]:
        ...

    def start_scan(self, image: ImageRef) -> None:
        ...

    def fetch_findings_page(self, image: ImageRef, cursor: Optional[str]) -> FindingsPage:
        ...
