"""Pass/fail decision from severity totals, ignored counts and a threshold."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from forge_scangate.core.models import Finding
from forge_scangate.core.reconcile import Reconciliation
from forge_scangate.core.severity import Severity, SeverityCounts, counted_severities
from forge_scangate.exceptions import ThresholdBreach

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateVerdict:
    """
    Outcome of the gate.

    Attributes:
        threshold: The configured fail threshold.
        failing_count: Unignored findings in the counted tiers.
        failing_findings: Unignored findings at or above threshold, most
            severe first, discovery order within a tier. Empty on pass.
    """

    threshold: Severity
    failing_count: int
    failing_findings: tuple[Finding, ...] = ()

    @property
    def passed(self) -> bool:
        return self.failing_count <= 0


def failing_count(totals: SeverityCounts, ignored: SeverityCounts, threshold: Severity) -> int:
    """
    Count failing vulnerabilities.

    Sums the registry totals for every tier at or above ``threshold`` and
    subtracts the ignored findings in those same tiers. The result is not
    clamped; a negative value means the ignored counts exceed the totals.
    """
    tiers = counted_severities(threshold)
    return totals.sum_of(tiers) - ignored.sum_of(tiers)


def decide(
    totals: SeverityCounts, reconciliation: Reconciliation, threshold: Severity
) -> GateVerdict:
    """Build the verdict. Totals are the registry summary, never re-derived from findings."""
    ignored = reconciliation.ignored_counts
    for severity in Severity:
        if ignored[severity] > totals[severity]:
            logger.warning(
                f"{ignored[severity]} ignored {severity.value} findings but the registry "
                f"reports only {totals[severity]}"
            )

    count = failing_count(totals, ignored, threshold)
    if count < 0:
        logger.warning(
            f"Ignored findings ({ignored.total}) exceed the registry totals "
            f"for severity >= {threshold.value}; the findings list and the summary disagree"
        )

    if count <= 0:
        return GateVerdict(threshold=threshold, failing_count=count)

    tiers = set(counted_severities(threshold))
    offending = sorted(
        (f for f in reconciliation.unignored if f.severity in tiers),
        key=lambda f: f.severity.rank,
    )
    return GateVerdict(
        threshold=threshold,
        failing_count=count,
        failing_findings=tuple(offending),
    )


def enforce(verdict: GateVerdict) -> GateVerdict:
    """Return the verdict unchanged if it passed, otherwise raise ThresholdBreach."""
    if not verdict.passed:
        raise ThresholdBreach(verdict)
    return verdict
