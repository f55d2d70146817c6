"""
Tests for single-job result polling
"""

from unittest.mock import Mock

import pytest

from kusari_cli.polling.result_poller import JobTracker, ResultPoller, latest_record
from kusari_cli.upload.exceptions import ScanFailedError, ScanTimeoutError
from kusari_cli.upload.models import JobReference, JobState, ScanStatusRecord


def record(status, updated_at=1, analysis=None, details=""):
    data = {"statusMeta": {"status": status, "details": details, "updatedAt": updated_at}}
    if analysis is not None:
        data["analysis"] = analysis
    return ScanStatusRecord.from_dict(data)


JOB = JobReference.from_presigned_url(
    "https://bucket.example.com/workspace/ws-1/user/human/u-1/diff/blob/123", "sha256_x"
)


class TestResultPoller:
    """Polling until success, failure or the attempt budget runs out"""

    def setup_method(self):
        self.client = Mock()
        self.sleep = Mock()

    def poller(self, console, max_attempts=10):
        return ResultPoller(self.client, console, interval=5, max_attempts=max_attempts, sleep=self.sleep)

    def test_processing_then_success(self, console):
        self.client.get_scan_results.side_effect = [
            [record("processing")],
            [record("processing")],
            [record("success", analysis={"proceed": True, "results": "# Looks good"})],
        ]

        analysis = self.poller(console).poll(JOB)

        assert analysis.proceed is True
        assert analysis.results == "# Looks good"
        assert self.client.get_scan_results.call_count == 3
        self.client.get_scan_results.assert_called_with("cli-user%7Cu-1%7C123")
        assert self.sleep.call_count == 2
        self.sleep.assert_called_with(5)

    def test_no_row_yet_counts_as_attempt(self, console):
        self.client.get_scan_results.side_effect = [
            [],
            [record("success", analysis={"proceed": False, "results": "blocked"})],
        ]

        assert self.poller(console).poll(JOB).proceed is False

    def test_failure(self, console):
        self.client.get_scan_results.side_effect = [
            [record("processing")],
            [record("failed", details="could not apply patch")],
        ]

        with pytest.raises(ScanFailedError, match="could not apply patch") as exc_info:
            self.poller(console).poll(JOB)
        assert exc_info.value.detail == "could not apply patch"

    def test_timeout(self, console):
        self.client.get_scan_results.return_value = [record("processing")]

        with pytest.raises(ScanTimeoutError) as exc_info:
            self.poller(console, max_attempts=4).poll(JOB, results_url="https://console.example.com/analysis")

        assert self.client.get_scan_results.call_count == 4
        assert self.sleep.call_count == 3
        assert exc_info.value.results_url == "https://console.example.com/analysis"

    def test_success_without_analysis_keeps_polling(self, console):
        self.client.get_scan_results.side_effect = [
            [record("complete")],
            [record("complete", analysis={"proceed": True, "results": "ok"})],
        ]

        assert self.poller(console).poll(JOB).results == "ok"
        assert self.client.get_scan_results.call_count == 2


class TestLatestRecord:

    def test_numeric_updated_at(self):
        rows = [record("processing", updated_at=20), record("success", updated_at=100), record("queued", updated_at=3)]
        assert latest_record(rows).state is JobState.SUCCESS

    def test_single_row(self):
        assert latest_record([record("queued")]).state is JobState.QUEUED

    def test_missing_updated_at_ranks_lowest(self):
        rows = [record("success", updated_at="1700000000200"), record("processing", updated_at="")]
        assert latest_record(rows).state is JobState.SUCCESS

    def test_unparseable_updated_at_ranks_lowest(self):
        rows = [record("processing", updated_at="yesterday"), record("failed", updated_at=5)]
        assert latest_record(rows).state is JobState.FAILED


class TestJobTracker:

    def test_forward_transitions(self):
        tracker = JobTracker()
        assert tracker.advance(JobState.QUEUED) is True
        assert tracker.advance(JobState.QUEUED) is False
        assert tracker.advance(JobState.PROCESSING) is True
        assert tracker.advance(JobState.SUCCESS) is True

    def test_backward_transition_ignored(self):
        tracker = JobTracker()
        tracker.advance(JobState.PROCESSING)
        assert tracker.advance(JobState.QUEUED) is False
        assert tracker.state is JobState.PROCESSING

    def test_terminal_is_final(self):
        tracker = JobTracker()
        tracker.advance(JobState.FAILED)
        assert tracker.advance(JobState.PROCESSING) is False
        assert tracker.state is JobState.FAILED


class TestJobStateMapping:

    @pytest.mark.parametrize("status,expected", [
        ("success", JobState.SUCCESS),
        ("Completed", JobState.SUCCESS),
        ("complete", JobState.SUCCESS),
        ("failed", JobState.FAILED),
        ("error", JobState.FAILED),
        ("processing", JobState.PROCESSING),
        ("pending", JobState.QUEUED),
        ("", JobState.QUEUED),
    ])
    def test_from_status(self, status, expected):
        assert JobState.from_status(status) is expected
