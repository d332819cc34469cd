"""
Amazon ECR image scanning backend.

Talks to ECR through the ``aws`` CLI, the same way the rest of the toolkit
shells out to chainctl, crane and gcloud. Credentials, region and profile
resolution are therefore whatever the CLI would normally do.

This module is the one place that decides which registry errors are benign:
``ScanNotFoundException`` from a lookup means "no scan yet" and becomes
``None``; every other failure raises BackendError.
"""

import json
import logging
import re
import subprocess
from typing import Any, Optional

from forge_scangate.constants import AWS_CLI_TIMEOUT, ECR_MAX_RESULTS, ECR_SCAN_NOT_FOUND
from forge_scangate.core.models import Finding, FindingsPage, ImageRef, ScanRecord
from forge_scangate.exceptions import BackendError

logger = logging.getLogger(__name__)

_ERROR_CODE_RE = re.compile(r"An error occurred \((?P<code>[A-Za-z0-9]+)\)")


def parse_error_code(stderr: str) -> Optional[str]:
    """
    Extract the AWS error code from aws CLI error output.

    Examples:
        >>> parse_error_code("An error occurred (ScanNotFoundException) when calling ...")
        'ScanNotFoundException'
        >>> parse_error_code("Unable to locate credentials")
    """
    match = _ERROR_CODE_RE.search(stderr or "")
    return match.group("code") if match else None


class EcrScanBackend:
    """ScanBackend implementation backed by ``aws ecr``."""

    def __init__(
        self,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        page_size: int = ECR_MAX_RESULTS,
        timeout: int = AWS_CLI_TIMEOUT,
    ):
        """
        Args:
            region: AWS region (defaults to the CLI's own resolution).
            profile: AWS named profile.
            page_size: Findings per page, 1-1000.
            timeout: Seconds to allow each CLI call.
        """
        if not 1 <= page_size <= ECR_MAX_RESULTS:
            raise ValueError(f"page_size must be between 1 and {ECR_MAX_RESULTS}")
        self.region = region
        self.profile = profile
        self.page_size = page_size
        self.timeout = timeout

    def lookup_scan(self, image: ImageRef) -> Optional[ScanRecord]:
        """Return the current scan record, or None if the image has never been scanned."""
        args = self._image_args("describe-image-scan-findings", image) + ["--no-paginate"]
        returncode, stdout, stderr = self._run(args)
        if returncode != 0:
            code = parse_error_code(stderr)
            if code == ECR_SCAN_NOT_FOUND:
                logger.debug(f"No scan found for {image}")
                return None
            raise BackendError("describe-image-scan-findings", _error_message(stderr, code))
        return ScanRecord.from_api(self._parse(stdout, "describe-image-scan-findings"))

    def start_scan(self, image: ImageRef) -> None:
        """Request a scan. Success means the request was accepted, not that it finished."""
        returncode, _, stderr = self._run(self._image_args("start-image-scan", image))
        if returncode != 0:
            raise BackendError("start-image-scan", _error_message(stderr, parse_error_code(stderr)))

    def fetch_findings_page(self, image: ImageRef, cursor: Optional[str]) -> FindingsPage:
        """Fetch one page of findings starting at ``cursor`` (None for the first page)."""
        args = self._image_args("describe-image-scan-findings", image)
        args += ["--page-size", str(self.page_size), "--max-items", str(self.page_size)]
        if cursor is not None:
            args += ["--starting-token", cursor]

        returncode, stdout, stderr = self._run(args)
        if returncode != 0:
            # Unlike lookup_scan, ScanNotFoundException is an error here.
            raise BackendError("describe-image-scan-findings", _error_message(stderr, parse_error_code(stderr)))

        data = self._parse(stdout, "describe-image-scan-findings")
        raw_findings = (data.get("imageScanFindings") or {}).get("findings") or []
        next_cursor = data.get("NextToken") or data.get("nextToken")
        return FindingsPage(
            items=[Finding.from_api(f) for f in raw_findings],
            next_cursor=next_cursor,
        )

    def _image_args(self, operation: str, image: ImageRef) -> list[str]:
        args = [
            "aws", "ecr", operation,
            "--repository-name", image.repository,
            "--image-id", f"imageTag={image.tag}",
            "--output", "json",
        ]
        if image.registry_id:
            args += ["--registry-id", image.registry_id]
        if self.region:
            args += ["--region", self.region]
        if self.profile:
            args += ["--profile", self.profile]
        return args

    def _run(self, args: list[str]) -> tuple[int, str, str]:
        logger.debug(f"Running: {' '.join(args)}")
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise BackendError(args[2], "aws CLI is not installed or not on PATH") from e
        except subprocess.TimeoutExpired as e:
            raise BackendError(args[2], f"timed out after {self.timeout}s") from e
        return result.returncode, result.stdout, result.stderr

    @staticmethod
    def _parse(stdout: str, operation: str) -> dict[str, Any]:
        try:
            data = json.loads(stdout or "{}")
        except json.JSONDecodeError as e:
            raise BackendError(operation, f"invalid JSON output: {stdout[:200]}") from e
        if not isinstance(data, dict):
            raise BackendError(operation, f"unexpected output: {stdout[:200]}")
        return data


def _error_message(stderr: str, code: Optional[str]) -> str:
    message = (stderr or "").strip() or "unknown error"
    if code and code not in message:
        return f"{code}: {message}"
    return message
