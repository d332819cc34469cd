"""Pytest configuration and fixtures."""

import pytest

from forge_scangate.context import ExecutionContext
from forge_scangate.core.models import ImageRef
from forge_scangate.core.severity import Severity, SeverityCounts

from helpers import make_finding


@pytest.fixture
def image():
    return ImageRef(repository="my-app", tag="1.2.3")


@pytest.fixture
def ctx():
    """Create an execution context."""
    return ExecutionContext()


@pytest.fixture
def sample_findings():
    """One critical and two high findings, as in a typical failing scan."""
    return [
        make_finding("CVE-2023-0001", "CRITICAL"),
        make_finding("CVE-2023-0002", "HIGH"),
        make_finding("CVE-2023-0003", "HIGH"),
    ]


@pytest.fixture
def sample_totals():
    counts = SeverityCounts.zero()
    counts.record(Severity.CRITICAL, 1)
    counts.record(Severity.HIGH, 2)
    return counts


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep gate inputs from the developer's environment out of the tests."""
    for name in (
        "REPOSITORY", "TAG", "FAIL_THRESHOLD", "IGNORE_LIST",
        "SCANGATE_REPOSITORY", "SCANGATE_TAG", "SCANGATE_FAIL_THRESHOLD",
        "SCANGATE_IGNORE_LIST", "SCANGATE_POLL_INTERVAL", "SCANGATE_TIMEOUT",
        "SCANGATE_PAGE_SIZE", "SCANGATE_VERBOSE", "SCANGATE_REGION",
        "SCANGATE_PROFILE", "SCANGATE_REGISTRY_ID",
    ):
        monkeypatch.delenv(name, raising=False)
