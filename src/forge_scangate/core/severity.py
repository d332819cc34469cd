"""
Severity tiers and per-severity tallies.

Tiers are totally ordered from most to least severe:
CRITICAL > HIGH > MEDIUM > LOW > INFORMATIONAL > UNDEFINED.
UNDEFINED means "severity unknown"; it is tallied but only counts towards a
gate failure when the threshold is INFORMATIONAL.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional

from forge_scangate.exceptions import ConfigError


class Severity(str, Enum):
    """Closed set of severity tiers, declared most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFORMATIONAL = "informational"
    UNDEFINED = "undefined"

    @property
    def rank(self) -> int:
        """Position in the severity order, 0 being the most severe."""
        return _ORDER.index(self)

    @property
    def label(self) -> str:
        """Display label, e.g. ``Critical``."""
        return self.value.capitalize()


_ORDER: tuple[Severity, ...] = tuple(Severity)

THRESHOLDS: tuple[Severity, ...] = tuple(s for s in Severity if s is not Severity.UNDEFINED)
"""Severities accepted as a fail threshold."""


def classify(token: Optional[str]) -> Severity:
    """
    Map a raw severity token to a Severity.

    Matching is case-insensitive. Unknown or empty tokens map to UNDEFINED so
    that new registry vocabulary never breaks the gate.

    Examples:
        >>> classify("HIGH")
        <Severity.HIGH: 'high'>
        >>> classify("negligible")
        <Severity.UNDEFINED: 'undefined'>
    """
    if not token:
        return Severity.UNDEFINED
    try:
        return Severity(token.strip().lower())
    except ValueError:
        return Severity.UNDEFINED


def parse_threshold(value: Optional[str]) -> Severity:
    """Parse a configured fail threshold, raising ConfigError if it is not a valid tier."""
    normalized = (value or "").strip().lower()
    for severity in THRESHOLDS:
        if severity.value == normalized:
            return severity
    raise ConfigError("fail_threshold input value is invalid", "fail_threshold")


def counted_severities(threshold: Severity) -> tuple[Severity, ...]:
    """
    Return the tiers that count towards failure for a threshold.

    Every tier at or above the threshold counts. UNDEFINED is only included
    for the all-inclusive INFORMATIONAL threshold.
    """
    if threshold is Severity.UNDEFINED:
        raise ValueError("UNDEFINED is not a valid threshold")
    if threshold is Severity.INFORMATIONAL:
        return _ORDER
    return _ORDER[: threshold.rank + 1]


@dataclass
class SeverityCounts:
    """Per-severity tally. ``total`` is derived, so it always equals the sum of the buckets."""

    counts: dict[Severity, int] = field(default_factory=lambda: {s: 0 for s in Severity})

    @classmethod
    def zero(cls) -> "SeverityCounts":
        return cls()

    @classmethod
    def from_backend(cls, raw: Optional[Mapping[str, int]]) -> "SeverityCounts":
        """
        Build counts from a registry severity summary such as
        ``{"CRITICAL": 1, "HIGH": 2}``. Missing keys are zero and unknown keys
        fold into UNDEFINED.
        """
        counts = cls.zero()
        for key, value in (raw or {}).items():
            counts.record(classify(key), int(value or 0))
        return counts

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def __getitem__(self, severity: Severity) -> int:
        return self.counts.get(severity, 0)

    def record(self, severity: Severity, amount: int = 1) -> None:
        """Increment the bucket for ``severity`` (and therefore the total)."""
        if amount < 0:
            raise ValueError("Severity counts cannot be decremented")
        self.counts[severity] = self.counts.get(severity, 0) + amount

    def sum_of(self, severities: Iterable[Severity]) -> int:
        return sum(self[s] for s in severities)

    def as_dict(self) -> dict[str, int]:
        """JSON-friendly view keyed by severity name, plus ``total``."""
        data = {s.value: self[s] for s in Severity}
        data["total"] = self.total
        return data


def count_findings(findings: Iterable) -> SeverityCounts:
    """Tally findings by their ``severity`` attribute."""
    counts = SeverityCounts.zero()
    for finding in findings:
        counts.record(finding.severity)
    return counts
