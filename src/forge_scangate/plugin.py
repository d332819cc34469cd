"""ToolPlugin implementation for scangate."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from forge_scangate.config import GateSettings, load_settings
from forge_scangate.constants import (
    DEFAULT_FAIL_THRESHOLD,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TIMEOUT,
    ECR_MAX_RESULTS,
    REQUIRED_TOOLS,
    __version__,
)
from forge_scangate.context import ExecutionContext
from forge_scangate.core.gate import decide, enforce
from forge_scangate.core.lifecycle import ScanLifecycle
from forge_scangate.core.models import ScanBackend
from forge_scangate.core.pagination import collect_pages
from forge_scangate.core.reconcile import reconcile
from forge_scangate.core.severity import THRESHOLDS, SeverityCounts
from forge_scangate.deps import missing_dependencies
from forge_scangate.exceptions import (
    ScanCancelled,
    ScanGateException,
    StaleIgnoreEntry,
    ThresholdBreach,
)
from forge_scangate.integrations.ecr import EcrScanBackend
from forge_scangate.protocol import ResultStatus, ToolParam, ToolResult
from forge_scangate.utils.console import (
    finding_summary,
    format_unmatched_ignores,
    render_report,
)

logger = logging.getLogger(__name__)

BackendFactory = Callable[[GateSettings], ScanBackend]


def ecr_backend(settings: GateSettings) -> ScanBackend:
    """Default backend: Amazon ECR through the aws CLI."""
    return EcrScanBackend(
        region=settings.region,
        profile=settings.profile,
        page_size=settings.page_size,
    )


class ScanGatePlugin:
    """FORGE plugin for scangate - fail a build on ECR image scan findings."""

    name = "scangate"
    description = "Gate a build on Amazon ECR image scan findings"
    version = __version__

    def __init__(self, backend_factory: Optional[BackendFactory] = None):
        self._backend_factory = backend_factory

    def get_params(self) -> list[ToolParam]:
        """Declare parameters for scangate.

        Nothing is required at the flag level: repository and tag may also
        come from the environment or a config file, and are validated once
        all sources are merged.
        """
        return [
            ToolParam(name="repository", description="ECR repository name (env: REPOSITORY)"),
            ToolParam(name="tag", description="Image tag to scan (env: TAG)"),
            ToolParam(
                name="fail-threshold",
                description=(
                    f"Fail on vulnerabilities at or above this severity "
                    f"(default: {DEFAULT_FAIL_THRESHOLD}; env: FAIL_THRESHOLD)"
                ),
                choices=[s.value for s in THRESHOLDS],
            ),
            ToolParam(
                name="ignore-list",
                description="Comma, space or newline separated CVE IDs to ignore (env: IGNORE_LIST)",
            ),
            ToolParam(name="registry-id", description="AWS account ID of the registry"),
            ToolParam(name="region", description="AWS region"),
            ToolParam(name="profile", description="AWS named profile"),
            ToolParam(
                name="poll-interval",
                description=f"Seconds between scan status polls (default: {DEFAULT_POLL_INTERVAL:g})",
                type="float",
            ),
            ToolParam(
                name="timeout",
                description=f"Give up waiting for the scan after N seconds (default: {DEFAULT_TIMEOUT:g} = never)",
                type="float",
            ),
            ToolParam(
                name="page-size",
                description=f"Findings fetched per request, 1-{ECR_MAX_RESULTS} (default: {ECR_MAX_RESULTS})",
                type="int",
            ),
            ToolParam(name="verbose", description="Enable verbose logging", type="bool"),
        ]

    def run(self, args: dict[str, Any], ctx: ExecutionContext) -> ToolResult:
        """Execute the gate: scan, collect findings, reconcile, decide."""
        try:
            settings = load_settings(args, ctx.config)
        except ScanGateException as e:
            return ToolResult(status=ResultStatus.FAILURE, summary=str(e))

        if settings.verbose:
            logging.getLogger("forge_scangate").setLevel(logging.DEBUG)

        if self._backend_factory is None:
            missing = missing_dependencies(REQUIRED_TOOLS)
            if missing:
                return ToolResult(
                    status=ResultStatus.FAILURE,
                    summary=f"Missing required tools: {', '.join(missing)}",
                )
            backend = ecr_backend(settings)
        else:
            backend = self._backend_factory(settings)

        try:
            return self._evaluate(settings, backend, ctx)
        except ScanCancelled as e:
            return ToolResult(status=ResultStatus.CANCELLED, summary=str(e))
        except StaleIgnoreEntry as e:
            return ToolResult(
                status=ResultStatus.FAILURE,
                summary=str(e),
                data={
                    "unmatched": e.unmatched,
                    "output": "\n".join(format_unmatched_ignores(e.unmatched)),
                },
            )
        except ScanGateException as e:
            return ToolResult(status=ResultStatus.FAILURE, summary=str(e))

    def _evaluate(
        self, settings: GateSettings, backend: ScanBackend, ctx: ExecutionContext
    ) -> ToolResult:
        image = settings.image
        threshold = settings.fail_threshold
        logger.debug(
            f"Repository:{settings.repository}, Tag:{settings.tag}, "
            f"Ignore list:{','.join(settings.ignore_list)}"
        )

        ctx.progress(0.0, f"Checking scan status for {image}")
        lifecycle = ScanLifecycle(
            backend,
            poll_interval=settings.poll_interval,
            timeout=settings.timeout,
            wait=ctx.wait,
            is_cancelled=lambda: ctx.is_cancelled,
        )
        record = lifecycle.run(image)

        ctx.progress(0.5, "Collecting findings")
        record = record.with_findings(
            collect_pages(lambda cursor: backend.fetch_findings_page(image, cursor))
        )

        ctx.progress(0.8, f"Reconciling {len(record.findings)} findings")
        reconciliation = reconcile(record.findings, settings.ignore_list)

        totals = record.counts or SeverityCounts.zero()
        verdict = decide(totals, reconciliation, threshold)
        output = render_report(totals, reconciliation.ignored_counts, verdict)
        ctx.progress(1.0, "Gate evaluated")

        data = {
            "repository": settings.repository,
            "tag": settings.tag,
            "threshold": threshold.value,
            "passed": verdict.passed,
            "failing_count": verdict.failing_count,
            "counts": totals.as_dict(),
            "ignored": reconciliation.ignored_counts.as_dict(),
            "failing_findings": [finding_summary(f) for f in verdict.failing_findings],
            "output": output,
        }

        try:
            enforce(verdict)
        except ThresholdBreach as e:
            return ToolResult(status=ResultStatus.FAILURE, summary=str(e), data=data)

        return ToolResult(
            status=ResultStatus.SUCCESS,
            summary=f"No vulnerabilities with severity >= {threshold.value} in {image}",
            data=data,
        )
