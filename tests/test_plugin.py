"""Tests for ScanGatePlugin wiring."""

from unittest.mock import patch

from forge_scangate import create_plugin
from forge_scangate.context import ExecutionContext
from forge_scangate.core.models import ScanRecord
from forge_scangate.exceptions import BackendError
from forge_scangate.plugin import ScanGatePlugin
from forge_scangate.protocol import ResultStatus, ToolPlugin

from helpers import FakeBackend, make_finding, make_record

COUNTS = {"CRITICAL": 1, "HIGH": 2}


def findings_pages():
    return {
        None: ([make_finding("CVE-2023-0001", "CRITICAL"), make_finding("CVE-2023-0002", "HIGH")], "t1"),
        "t1": ([make_finding("CVE-2023-0003", "HIGH"), make_finding("CVE-2023-0004", "LOW")], None),
    }


def plugin_with(backend):
    return ScanGatePlugin(backend_factory=lambda settings: backend)


def gate_args(**overrides):
    args = {"repository": "my-app", "tag": "1.2.3", "poll_interval": 0.001}
    args.update(overrides)
    return args


class TestMetadata:
    def test_satisfies_tool_protocol(self):
        assert isinstance(create_plugin(), ToolPlugin)

    def test_no_flag_is_required(self):
        assert not any(p.required for p in ScanGatePlugin().get_params())

    def test_threshold_choices(self):
        params = ScanGatePlugin().get_params()
        threshold = next(p for p in params if p.name == "fail-threshold")
        assert threshold.choices == ["critical", "high", "medium", "low", "informational"]

    def test_verbose_is_bool(self):
        params = ScanGatePlugin().get_params()
        verbose = next(p for p in params if p.name == "verbose")
        assert verbose.type == "bool"


class TestRun:
    def test_threshold_breach_fails_with_listing(self, ctx):
        backend = FakeBackend(lookups=[make_record("COMPLETE", COUNTS)], pages=findings_pages())

        result = plugin_with(backend).run(gate_args(), ctx)

        assert result.status is ResultStatus.FAILURE
        assert result.summary.startswith("Detected 3 vulnerabilities with severity >= high")
        assert result.data["failing_count"] == 3
        assert [f["name"] for f in result.data["failing_findings"]] == [
            "CVE-2023-0001", "CVE-2023-0002", "CVE-2023-0003",
        ]
        assert "Vulnerabilities with severity >= high:" in result.data["output"]
        assert backend.page_calls == [None, "t1"]

    def test_findings_come_from_every_page_not_the_lookup(self, ctx):
        record = ScanRecord.from_api({
            "imageScanStatus": {"status": "COMPLETE"},
            "imageScanFindings": {
                "findingSeverityCounts": COUNTS,
                "findings": [{"name": "CVE-2023-0001", "severity": "CRITICAL"}],
            },
        })
        backend = FakeBackend(lookups=[record], pages=findings_pages())

        result = plugin_with(backend).run(gate_args(ignore_list="CVE-2023-0003"), ctx)

        assert result.status is ResultStatus.FAILURE
        assert result.data["ignored"]["high"] == 1
        assert [f["name"] for f in result.data["failing_findings"]] == [
            "CVE-2023-0001", "CVE-2023-0002",
        ]

    def test_ignored_findings_reduce_count(self, ctx):
        backend = FakeBackend(lookups=[make_record("COMPLETE", COUNTS)], pages=findings_pages())

        result = plugin_with(backend).run(gate_args(ignore_list="CVE-2023-0001"), ctx)

        assert result.status is ResultStatus.FAILURE
        assert result.data["failing_count"] == 2
        assert result.data["ignored"]["critical"] == 1
        assert "  1 Critical (1 ignored)" in result.data["output"]

    def test_pass_below_threshold(self, ctx):
        backend = FakeBackend(lookups=[make_record("COMPLETE", COUNTS)], pages=findings_pages())

        result = plugin_with(backend).run(gate_args(fail_threshold="critical",
                                                    ignore_list="CVE-2023-0001"), ctx)

        assert result.status is ResultStatus.SUCCESS
        assert result.data["passed"] is True
        assert result.data["failing_findings"] == []
        assert "Vulnerabilities with severity" not in result.data["output"]

    def test_all_zero_passes(self, ctx):
        backend = FakeBackend(lookups=[make_record("COMPLETE", {})])

        result = plugin_with(backend).run(gate_args(fail_threshold="informational"), ctx)

        assert result.status is ResultStatus.SUCCESS
        assert result.data["failing_count"] == 0

    def test_stale_ignore_entry_fails_regardless_of_threshold(self, ctx):
        backend = FakeBackend(lookups=[make_record("COMPLETE", {})])

        result = plugin_with(backend).run(
            gate_args(fail_threshold="critical", ignore_list="CVE-XXXX-NOPE"), ctx
        )

        assert result.status is ResultStatus.FAILURE
        assert result.data["unmatched"] == ["CVE-XXXX-NOPE"]
        assert "CVE-XXXX-NOPE" in result.data["output"]
        assert "not returned in the findings result set" in result.summary

    def test_fresh_scan_is_started_and_polled(self, ctx):
        backend = FakeBackend(
            lookups=[None, make_record("IN_PROGRESS"), make_record("COMPLETE", {})],
        )

        result = plugin_with(backend).run(gate_args(), ctx)

        assert result.status is ResultStatus.SUCCESS
        assert backend.start_calls == 1
        assert backend.lookup_calls == 3

    def test_scan_failed(self, ctx):
        backend = FakeBackend(lookups=[make_record("FAILED", description="UnsupportedImageError")])

        result = plugin_with(backend).run(gate_args(), ctx)

        assert result.status is ResultStatus.FAILURE
        assert result.summary == "Image scan failed: UnsupportedImageError"

    def test_backend_error(self, ctx):
        backend = FakeBackend(lookups=[BackendError("describe-image-scan-findings", "AccessDenied")])

        result = plugin_with(backend).run(gate_args(), ctx)

        assert result.status is ResultStatus.FAILURE
        assert "AccessDenied" in result.summary

    def test_config_error(self, ctx):
        result = plugin_with(FakeBackend()).run({"tag": "1.2.3"}, ctx)

        assert result.status is ResultStatus.FAILURE
        assert result.summary == "Input required and not supplied: repository"

    def test_malformed_file_value_is_a_failure_result(self):
        ctx = ExecutionContext(config={"repository": "my-app", "tag": "1.2.3", "ignore_list": 12345})

        result = plugin_with(FakeBackend()).run({}, ctx)

        assert result.status is ResultStatus.FAILURE
        assert "ignore_list must be a string or a list" in result.summary

    def test_cancelled_while_polling(self, ctx):
        backend = FakeBackend(lookups=[None])
        ctx.cancel_event.set()

        result = plugin_with(backend).run(gate_args(), ctx)

        assert result.status is ResultStatus.CANCELLED
        assert backend.start_calls == 1

    def test_reports_progress(self):
        calls = []
        ctx = ExecutionContext(on_progress=lambda f, m: calls.append((f, m)))
        backend = FakeBackend(lookups=[make_record("COMPLETE", {})])

        plugin_with(backend).run(gate_args(), ctx)

        assert calls[0][0] == 0.0
        assert calls[-1][0] == 1.0

    def test_config_file_values_used(self):
        ctx = ExecutionContext(config={"repository": "my-app", "tag": "1.2.3", "poll-interval": 0.001})
        backend = FakeBackend(lookups=[make_record("COMPLETE", {})])

        result = plugin_with(backend).run({}, ctx)

        assert result.status is ResultStatus.SUCCESS
        assert result.data["repository"] == "my-app"


class TestDefaultBackend:
    def test_missing_aws_cli(self, ctx):
        with patch("forge_scangate.plugin.missing_dependencies", return_value=["aws"]):
            result = ScanGatePlugin().run(gate_args(), ctx)

        assert result.status is ResultStatus.FAILURE
        assert result.summary == "Missing required tools: aws"

    def test_builds_ecr_backend_from_settings(self, ctx):
        with patch("forge_scangate.plugin.missing_dependencies", return_value=[]), \
             patch("forge_scangate.plugin.EcrScanBackend") as mock_backend:
            mock_backend.return_value = FakeBackend(lookups=[make_record("COMPLETE", {})])
            result = ScanGatePlugin().run(gate_args(region="eu-west-1", page_size=50), ctx)

        assert result.status is ResultStatus.SUCCESS
        mock_backend.assert_called_once_with(region="eu-west-1", profile=None, page_size=50)
