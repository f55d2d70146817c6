"""
Blocked Package Checker

For every uploaded SBOM with a known subject and URI:

1. resolve its software/SBOM IDs, retrying while the lookup says 404 (not
   ingested yet) until the batch deadline
2. ask the tenant API whether that SBOM uses a blocked package

Any other failure is a hard error and cancels the remaining checks.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from rich.console import Console

from kusari_cli.upload.api_client import PlatformAPIClient
from kusari_cli.upload.exceptions import APIConnectionError
from kusari_cli.upload.models import BlockedCheckResult, SbomSubjectReference, SoftwareIds

from .pool import BoundedTaskPool, CancelScope

logger = logging.getLogger(__name__)

DEFAULT_RETRY_INTERVAL = 1


class LookupState(Enum):
    NOT_FOUND = "not_found"
    READY = "ready"
    ERROR = "error"


@dataclass
class IdLookup:
    """Outcome of one software/SBOM ID lookup"""
    state: LookupState
    ids: Optional[SoftwareIds] = None
    error: Optional[APIConnectionError] = None


@dataclass
class BlockedPackagesSummary:
    results: List[BlockedCheckResult] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return any(result.blocked for result in self.results)

    @property
    def blocked_results(self) -> List[BlockedCheckResult]:
        return [result for result in self.results if result.blocked]


class BlockedPackageChecker:
    """Check uploaded SBOMs against the tenant's blocked-package list."""

    def __init__(
        self,
        client: PlatformAPIClient,
        console: Console,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        pool: Optional[BoundedTaskPool] = None,
    ):
        self.client = client
        self.console = console
        self.retry_interval = retry_interval
        self.pool = pool or BoundedTaskPool()
        self.logger = logging.getLogger(__name__)

    def check(self, references: List[SbomSubjectReference]) -> BlockedPackagesSummary:
        """Check every resolvable reference; raise the first hard error."""
        resolvable = [ref for ref in references if ref.resolvable]
        skipped = len(references) - len(resolvable)
        if skipped:
            self.logger.debug("Skipping %d document(s) without an SBOM subject", skipped)

        outcome = self.pool.run(resolvable, self.check_one)
        if outcome.error is not None:
            raise outcome.error
        return BlockedPackagesSummary(results=outcome.completed)

    def check_one(self, reference: SbomSubjectReference, scope: CancelScope) -> BlockedCheckResult:
        ids = self.resolve_ids(reference, scope)
        scope.check()
        blocked, packages = self.client.check_blocked_packages(ids)
        return BlockedCheckResult(reference=reference, blocked=blocked, blocked_packages=packages if blocked else [])

    def lookup(self, reference: SbomSubjectReference) -> IdLookup:
        try:
            ids = self.client.lookup_software_ids(reference.subject, reference.uri)
        except APIConnectionError as e:
            return IdLookup(state=LookupState.ERROR, error=e)
        if ids is None:
            return IdLookup(state=LookupState.NOT_FOUND)
        return IdLookup(state=LookupState.READY, ids=ids)

    def resolve_ids(self, reference: SbomSubjectReference, scope: CancelScope) -> SoftwareIds:
        """Retry the lookup while it reports NOT_FOUND; the scope deadline bounds the wait."""
        while True:
            scope.check()
            result = self.lookup(reference)
            if result.state == LookupState.READY:
                return result.ids
            if result.state == LookupState.ERROR:
                raise result.error
            self.console.print(f"  Waiting for SBOM to be ingested (subject: {reference.subject})...", highlight=False)
            scope.sleep(self.retry_interval)
