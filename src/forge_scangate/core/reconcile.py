"""Split findings into ignored and counted sets against an explicit ignore list."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from forge_scangate.core.models import Finding
from forge_scangate.core.severity import SeverityCounts, count_findings
from forge_scangate.exceptions import StaleIgnoreEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reconciliation:
    """Result of applying an ignore list to a findings list."""

    ignored: tuple[Finding, ...]
    unignored: tuple[Finding, ...]
    ignored_counts: SeverityCounts


def reconcile(findings: Sequence[Finding], ignore_list: Sequence[str]) -> Reconciliation:
    """
    Partition findings by whether their name is on the ignore list.

    Order is preserved inside each partition. One ignore entry suppresses every
    finding with that name. Every entry on the ignore list must match at least
    one finding.

    Raises:
        StaleIgnoreEntry: Listing every unmatched entry, in ignore-list order.
    """
    ignore = set(ignore_list)
    ignored = tuple(f for f in findings if f.name in ignore)
    unignored = tuple(f for f in findings if f.name not in ignore)

    matched = {f.name for f in ignored}
    unmatched = list(dict.fromkeys(name for name in ignore_list if name not in matched))
    if unmatched:
        raise StaleIgnoreEntry(unmatched)

    logger.debug(f"Ignored {len(ignored)} of {len(findings)} findings")
    return Reconciliation(
        ignored=ignored,
        unignored=unignored,
        ignored_counts=count_findings(ignored),
    )
