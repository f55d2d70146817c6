"""
Result Poller

Polls the scan status endpoint for one submitted bundle until the
analysis succeeds, fails, or the attempt budget runs out.

States move forward only: queued -> processing -> success | failed.
"""

import logging
import time
from typing import Callable, List, Optional

from rich.console import Console

from kusari_cli.upload.api_client import PlatformAPIClient
from kusari_cli.upload.exceptions import ScanFailedError, ScanTimeoutError
from kusari_cli.upload.models import AnalysisResult, JobReference, JobState, ScanStatusRecord

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5
DEFAULT_POLL_ATTEMPTS = 180


def _updated_key(record: ScanStatusRecord):
    try:
        return (0, float(record.updated_at))
    except (TypeError, ValueError):
        return (-1, 0.0)


def latest_record(records: List[ScanStatusRecord]) -> ScanStatusRecord:
    """Most recently updated row of a (possibly multi-row) result set."""
    return max(records, key=_updated_key)


class JobTracker:
    """Forward-only job state with change detection."""

    def __init__(self):
        self.state = JobState.QUEUED
        self.observed = False

    def advance(self, state: JobState) -> bool:
        """Apply an observation; return True when the visible state changed."""
        if self.state.is_terminal:
            return False
        if self.observed and state.rank < self.state.rank:
            logger.debug("Ignoring backwards transition %s -> %s", self.state.value, state.value)
            return False
        changed = not self.observed or state != self.state
        self.state = state
        self.observed = True
        return changed


class ResultPoller:
    """Wait for one analysis job to finish."""

    def __init__(
        self,
        client: PlatformAPIClient,
        console: Console,
        interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = DEFAULT_POLL_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.console = console
        self.interval = interval
        self.max_attempts = max_attempts
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

    def poll(self, job: JobReference, results_url: Optional[str] = None) -> AnalysisResult:
        tracker = JobTracker()
        with self.console.status("Waiting for analysis to start...") as status:
            for attempt in range(1, self.max_attempts + 1):
                records = self.client.get_scan_results(job.sort_key)
                if records:
                    record = latest_record(records)
                    if tracker.advance(record.state):
                        self.logger.debug("Job %s is %s", job.sort_key, record.state.value)
                        status.update(_status_text(record))

                    if tracker.state == JobState.SUCCESS:
                        if record.analysis is None:
                            self.logger.debug("Success reported without analysis, polling again")
                        else:
                            return record.analysis
                    elif tracker.state == JobState.FAILED:
                        raise ScanFailedError(record.details)

                if attempt < self.max_attempts:
                    self.sleep(self.interval)

        raise ScanTimeoutError(
            f"analysis did not finish after {self.max_attempts} attempts",
            results_url=results_url,
        )


def _status_text(record: ScanStatusRecord) -> str:
    if record.state == JobState.PROCESSING:
        return "Analysis in progress..."
    if record.state == JobState.QUEUED:
        return f"Analysis queued ({record.status or 'waiting'})..."
    return f"Analysis {record.state.value}"
