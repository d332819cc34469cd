"""Builders and an in-memory backend shared by the test modules."""

from typing import Optional

from forge_scangate.core.models import (
    Finding,
    FindingsPage,
    ImageRef,
    ScanRecord,
)


def make_finding(name: str, severity: str = "HIGH", **kwargs) -> Finding:
    """Build a Finding the way the registry would return it."""
    return Finding.from_api({"name": name, "severity": severity, **kwargs})


def make_record(
    status: str,
    counts: Optional[dict] = None,
    description: Optional[str] = None,
) -> ScanRecord:
    """Build a ScanRecord from a raw describe-image-scan-findings payload."""
    payload: dict = {"imageScanStatus": {"status": status}}
    if description:
        payload["imageScanStatus"]["description"] = description
    if counts is not None:
        payload["imageScanFindings"] = {"findingSeverityCounts": counts}
    return ScanRecord.from_api(payload)


class FakeBackend:
    """In-memory ScanBackend that replays scripted lookups and pages."""

    def __init__(self, lookups=None, pages=None):
        self.lookups = list(lookups or [])
        self.pages = dict(pages or {None: ([], None)})
        self.lookup_calls = 0
        self.start_calls = 0
        self.page_calls: list[Optional[str]] = []

    def lookup_scan(self, image: ImageRef) -> Optional[ScanRecord]:
        self.lookup_calls += 1
        result = self.lookups.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def start_scan(self, image: ImageRef) -> None:
        self.start_calls += 1

    def fetch_findings_page(self, image: ImageRef, cursor: Optional[str]) -> FindingsPage:
        self.page_calls.append(cursor)
        items, next_cursor = self.pages[cursor]
        return FindingsPage(items=list(items), next_cursor=next_cursor)
