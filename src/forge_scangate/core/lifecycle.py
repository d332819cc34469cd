"""
Scan lifecycle: adopt an existing scan or start one, then poll until terminal.

The lifecycle is a small state machine. Each call to ``ScanLifecycle.step``
takes the current ``LifecycleState`` and returns the next one, so the whole
run is just ``step`` applied until the phase is COMPLETE. Waiting, the
cancellation check and the clock are injected, which keeps the loop free of
ambient state and lets tests drive it without sleeping.

    LOOKUP --(record exists)--> adopt status --+--> COMPLETE
       |                                       |
       +--(not found)--> start scan --> POLLING --(IN_PROGRESS)--> POLLING
                                               |
                                               +--> FAILED / unknown: raise
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional

from forge_scangate.constants import DEFAULT_POLL_INTERVAL
from forge_scangate.core.models import ImageRef, ScanBackend, ScanRecord, ScanStatus
from forge_scangate.exceptions import (
    BackendError,
    ScanCancelled,
    ScanFailed,
    ScanTimeout,
    UnrecognizedStatus,
)

logger = logging.getLogger(__name__)


class Phase(Enum):
    LOOKUP = "lookup"
    POLLING = "polling"
    COMPLETE = "complete"


@dataclass(frozen=True)
class LifecycleState:
    """
    Immutable snapshot of the lifecycle.

    Attributes:
        phase: Where the state machine currently is.
        record: Latest record fetched from the registry, if any.
        adopted: A scan already existed when the run began.
        started: This run requested the scan.
        polls: Number of lookups made while polling.
        started_at: Clock reading when the run began, used for the timeout.
    """

    phase: Phase = Phase.LOOKUP
    record: Optional[ScanRecord] = None
    adopted: bool = False
    started: bool = False
    polls: int = 0
    started_at: float = 0.0


class ScanLifecycle:
    """Drives one image scan from "is there a scan?" to a COMPLETE record."""

    def __init__(
        self,
        backend: ScanBackend,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = 0,
        wait: Callable[[float], None] = time.sleep,
        is_cancelled: Callable[[], bool] = lambda: False,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            backend: Registry capabilities (lookup, start).
            poll_interval: Seconds to wait between polls.
            timeout: Give up after this many seconds of polling (0 = never).
            wait: Blocks for the given number of seconds.
            is_cancelled: Returns True once the run should stop.
            clock: Monotonic clock used for the timeout.
        """
        self.backend = backend
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._wait = wait
        self._is_cancelled = is_cancelled
        self._clock = clock

    def initial_state(self) -> LifecycleState:
        return LifecycleState(started_at=self._clock())

    def run(self, image: ImageRef) -> ScanRecord:
        """
        Run the state machine to completion.

        Returns:
            The COMPLETE scan record (with severity totals).

        Raises:
            BackendError: A registry call failed.
            ScanFailed: The registry reports the scan as failed.
            UnrecognizedStatus: The registry reported an unknown status.
            ScanTimeout: The configured timeout elapsed.
            ScanCancelled: Cancellation was requested between polls.
        """
        state = self.initial_state()
        while state.phase is not Phase.COMPLETE:
            state = self.step(image, state)
        return state.record

    def step(self, image: ImageRef, state: LifecycleState) -> LifecycleState:
        """Advance the state machine by one transition."""
        if state.phase is Phase.LOOKUP:
            logger.debug("Checking for existing findings")
            record = self.backend.lookup_scan(image)
            if record is None:
                logger.info(f"Requesting image scan for {image}")
                self.backend.start_scan(image)
                return replace(state, phase=Phase.POLLING, started=True)

            logger.info(
                f"A scan for this image was already requested, the scan's status is {record.raw_status}"
            )
            return self._settle(replace(state, adopted=True), record)

        if state.phase is Phase.POLLING:
            # An adopted in-progress scan is re-polled immediately; a fresh one waits first.
            if state.started or state.polls > 0:
                self._pause(state)

            logger.info("Polling registry for image scan findings...")
            record = self.backend.lookup_scan(image)
            if record is None:
                raise BackendError("lookup", f"scan for {image} disappeared while polling")
            logger.debug(f"Scan status: {record.raw_status}")
            return self._settle(replace(state, polls=state.polls + 1), record)

        return state

    def _settle(self, state: LifecycleState, record: ScanRecord) -> LifecycleState:
        if record.status is ScanStatus.IN_PROGRESS:
            return replace(state, phase=Phase.POLLING, record=record)
        if record.status is ScanStatus.COMPLETE:
            return replace(state, phase=Phase.COMPLETE, record=record)
        if record.status is ScanStatus.FAILED:
            raise ScanFailed(record.description)
        raise UnrecognizedStatus(record.raw_status, record.raw)

    def _pause(self, state: LifecycleState) -> None:
        if self._is_cancelled():
            raise ScanCancelled()

        elapsed = self._clock() - state.started_at
        if self.timeout and elapsed >= self.timeout:
            raise ScanTimeout(elapsed, self.timeout)

        self._wait(self.poll_interval)

        if self._is_cancelled():
            raise ScanCancelled()
