"""
Centralized configuration constants for scangate.

Single source of truth for defaults shared by the CLI, the settings model
and the registry client.
"""

__version__ = "0.1.0"

# ============================================================================
# Gate Defaults
# ============================================================================

DEFAULT_FAIL_THRESHOLD = "high"
"""Fail threshold used when none is configured."""

DEFAULT_POLL_INTERVAL = 5.0
"""Seconds to wait between scan status polls."""

DEFAULT_TIMEOUT = 0.0
"""Seconds to wait for a scan before giving up (0 = wait indefinitely)."""

# ============================================================================
# Amazon ECR
# ============================================================================

ECR_MAX_RESULTS = 1000
"""Largest page size describe-image-scan-findings accepts (valid range 1-1000)."""

ECR_SCAN_NOT_FOUND = "ScanNotFoundException"
"""Error code the registry returns when an image has never been scanned."""

AWS_CLI_TIMEOUT = 60
"""Seconds to wait for a single aws CLI invocation."""

REQUIRED_TOOLS: list[str] = ["aws"]
"""External CLI tools the registry client shells out to."""

# ============================================================================
# Configuration Files
# ============================================================================

DEFAULT_CONFIG_FILE = "~/.config/forge/scangate.yaml"
"""Optional YAML file with default option values."""
