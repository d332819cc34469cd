"""
Console report rendering for gate results.

Builds the user-facing text (severity table, fail listing, stale ignore
entries). These are for direct user interaction and should NOT be replaced
with logger calls.
"""

from typing import Iterable

from forge_scangate.core.gate import GateVerdict
from forge_scangate.core.models import Finding
from forge_scangate.core.severity import Severity, SeverityCounts


def separator(width: int = 17) -> str:
    """Return a visual separator line."""
    return "=" * width


def ignored_note(count: int) -> str:
    """Return the ``(N ignored)`` annotation, or an empty string for zero."""
    return f"({count} ignored)" if count else ""


def format_counts(totals: SeverityCounts, ignored: SeverityCounts) -> list[str]:
    """
    Render the per-severity table.

    Example:
        Vulnerabilities found:
          1 Critical (1 ignored)
          2 High
        ...
        =================
          3 Total (1 ignored)
    """
    lines = ["Vulnerabilities found:"]
    for severity in Severity:
        lines.append(_count_line(totals[severity], severity.label, ignored[severity]))
    lines.append(separator())
    lines.append(_count_line(totals.total, "Total", ignored.total))
    return lines


def format_failing_findings(verdict: GateVerdict) -> list[str]:
    """Render the offending findings for a failed verdict."""
    lines = [f"Vulnerabilities with severity >= {verdict.threshold.value}:"]
    lines.extend(f"  {finding.display()}" for finding in verdict.failing_findings)
    return lines


def format_unmatched_ignores(unmatched: Iterable[str]) -> list[str]:
    """Render ignore-list entries that matched no finding."""
    lines = ["The following CVEs were not found in the result set:"]
    lines.extend(f"  {name}" for name in unmatched)
    return lines


def render_report(
    totals: SeverityCounts, ignored: SeverityCounts, verdict: GateVerdict
) -> str:
    """Full report: the count table, plus the offending findings when the gate failed."""
    lines = format_counts(totals, ignored)
    if not verdict.passed:
        lines.extend(format_failing_findings(verdict))
    return "\n".join(lines)


def finding_summary(finding: Finding) -> dict:
    """JSON-friendly view of a finding for structured results."""
    return {
        "name": finding.name,
        "severity": finding.severity.value,
        "description": finding.description,
        "uri": finding.uri,
        "attributes": dict(finding.attributes),
    }


def _count_line(count: int, label: str, ignored: int) -> str:
    return f"{count:>3} {label} {ignored_note(ignored)}".rstrip()
