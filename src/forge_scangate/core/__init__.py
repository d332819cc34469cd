"""Core gate logic: severities, scan lifecycle, pagination, reconciliation and verdict."""

from forge_scangate.core.gate import GateVerdict, decide, enforce, failing_count
from forge_scangate.core.lifecycle import LifecycleState, Phase, ScanLifecycle
from forge_scangate.core.models import (
    Finding,
    FindingsPage,
    ImageRef,
    ScanBackend,
    ScanRecord,
    ScanStatus,
)
from forge_scangate.core.pagination import collect_pages, iter_pages
from forge_scangate.core.reconcile import Reconciliation, reconcile
from forge_scangate.core.severity import (
    Severity,
    SeverityCounts,
    classify,
    count_findings,
    counted_severities,
    parse_threshold,
)

__all__ = [
    "Finding",
    "FindingsPage",
    "GateVerdict",
    "ImageRef",
    "LifecycleState",
    "Phase",
    "Reconciliation",
    "ScanBackend",
    "ScanLifecycle",
    "ScanRecord",
    "ScanStatus",
    "Severity",
    "SeverityCounts",
    "classify",
    "collect_pages",
    "count_findings",
    "counted_severities",
    "decide",
    "enforce",
    "failing_count",
    "iter_pages",
    "parse_threshold",
    "reconcile",
]
