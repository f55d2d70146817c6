"""
Ingestion status checks for uploaded documents.

Each document is polled on its own worker (bounded pool) until it reaches
``success`` or ``failed``. A failed ingestion or an exhausted attempt budget
is recorded for that document only; transport errors cancel the batch.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from rich.console import Console

from kusari_cli.upload.api_client import PlatformAPIClient
from kusari_cli.upload.models import IngestionState, IngestionStatus

from .pool import BatchOutcome, BoundedTaskPool, CancelScope

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 2
DEFAULT_ATTEMPTS = 450

_STATE_ORDER = [IngestionState.STARTED, IngestionState.PROCESSING, IngestionState.SUCCESS, IngestionState.FAILED]


@dataclass
class IngestionRow:
    """Final table row for one document"""
    doc_ref: str
    status: str = ""
    document_name: str = ""
    message: str = ""
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None or self.status == IngestionState.FAILED.value

    @classmethod
    def from_status(cls, item: IngestionStatus) -> "IngestionRow":
        return cls(
            doc_ref=item.doc_ref,
            status=item.status,
            document_name=item.document_name,
            message=item.user_message,
        )


def short_doc_ref(doc_ref: str, length: int = 20) -> str:
    return doc_ref if len(doc_ref) <= length else doc_ref[:length] + "..."


class IngestionStatusPoller:
    """Poll ``/ingestion/status`` for a set of documents."""

    def __init__(
        self,
        client: PlatformAPIClient,
        console: Console,
        tenant_name: str,
        interval: float = DEFAULT_INTERVAL,
        max_attempts: int = DEFAULT_ATTEMPTS,
        pool: Optional[BoundedTaskPool] = None,
    ):
        self.client = client
        self.console = console
        self.tenant_name = tenant_name
        self.interval = interval
        self.max_attempts = max_attempts
        self.pool = pool or BoundedTaskPool()

    def poll_all(self, doc_refs: List[str]) -> BatchOutcome[IngestionRow]:
        """Poll every document; rows come back in input order."""
        self.console.print(f"\nChecking ingestion status for {len(doc_refs)} document(s)...")
        outcome = self.pool.run(doc_refs, self.poll_one)
        outcome.results = [
            row if row is not None else IngestionRow(doc_ref=doc_ref, error="ingestion status check cancelled")
            for doc_ref, row in zip(doc_refs, outcome.results)
        ]
        return outcome

    def poll_one(self, doc_ref: str, scope: CancelScope) -> IngestionRow:
        current: Optional[IngestionStatus] = None
        for attempt in range(1, self.max_attempts + 1):
            scope.check()
            item = self.client.get_ingestion_status(self.tenant_name, doc_ref)
            if item is not None and self._accept(current, item):
                changed = current is None or current.status != item.status
                current = item
                if changed:
                    self.console.print(
                        f"[{short_doc_ref(doc_ref)}] {item.status} - {item.user_message}",
                        highlight=False,
                        markup=False,
                    )
                if item.state is not None and item.state.is_terminal:
                    return IngestionRow.from_status(item)

            if attempt < self.max_attempts:
                scope.sleep(self.interval)

        row = IngestionRow.from_status(current) if current else IngestionRow(doc_ref=doc_ref)
        row.error = f"ingestion status not found after {self.max_attempts} attempts"
        return row

    @staticmethod
    def _accept(current: Optional[IngestionStatus], item: IngestionStatus) -> bool:
        """Only forward transitions replace the stored record."""
        if current is None or current.state is None or item.state is None:
            return True
        if current.state.is_terminal:
            return False
        return _STATE_ORDER.index(item.state) >= _STATE_ORDER.index(current.state)
