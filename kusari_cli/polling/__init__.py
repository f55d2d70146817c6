"""
Status polling: single analysis jobs and bounded batches of documents.
"""

from .blocked_packages import BlockedPackageChecker, BlockedPackagesSummary
from .ingestion import IngestionRow, IngestionStatusPoller
from .pool import BatchOutcome, BoundedTaskPool, CancelScope
from .result_poller import JobTracker, ResultPoller

__all__ = [
    'BlockedPackageChecker',
    'BlockedPackagesSummary',
    'IngestionRow',
    'IngestionStatusPoller',
    'BatchOutcome',
    'BoundedTaskPool',
    'CancelScope',
    'JobTracker',
    'ResultPoller',
]
