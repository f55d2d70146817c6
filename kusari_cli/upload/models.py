"""
Data Models for bundle scans and document uploads

Plain dataclasses for what is sent to and read back from the platform.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from kusari_cli.constants import DOCUMENT_COLLECTOR
from kusari_cli.core.urls import create_sort_string, get_ids_from_url


class ScanType(Enum):
    """Repository scan kinds"""
    DIFF = "diff"
    FULL = "full"


class JobState(Enum):
    """Analysis job states; SUCCESS and FAILED are terminal"""
    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCESS, JobState.FAILED)

    @property
    def rank(self) -> int:
        return _JOB_STATE_ORDER.index(self)

    @classmethod
    def from_status(cls, status: str) -> "JobState":
        """Map a free-form platform status string onto a job state."""
        value = (status or "").strip().lower()
        if value in ("success", "complete", "completed"):
            return cls.SUCCESS
        if value in ("failed", "error"):
            return cls.FAILED
        if value == "processing":
            return cls.PROCESSING
        return cls.QUEUED


_JOB_STATE_ORDER = [JobState.QUEUED, JobState.PROCESSING, JobState.SUCCESS, JobState.FAILED]


class IngestionState(Enum):
    """Document ingestion states; SUCCESS and FAILED are terminal"""
    STARTED = "started"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (IngestionState.SUCCESS, IngestionState.FAILED)

    @classmethod
    def from_status(cls, status: str) -> Optional["IngestionState"]:
        try:
            return cls((status or "").strip().lower())
        except ValueError:
            return None


class DocumentType(Enum):
    SBOM = "SBOM"
    OPEN_VEX = "OPEN_VEX"


@dataclass
class BundleMetadata:
    """Metadata written into the bundle as kusari-inspector.json"""
    patch_name: str
    current_branch: str
    dir_name: str
    diff_cmd: str
    remote: str
    git_dirty: bool
    scan_type: ScanType = ScanType.DIFF

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patch_name": self.patch_name,
            "current_branch": self.current_branch,
            "dir_name": self.dir_name,
            "diff_cmd": self.diff_cmd,
            "remote": self.remote,
            "git_dirty": self.git_dirty,
            "scan_type": self.scan_type.value,
        }


@dataclass
class JobReference:
    """Everything needed to find a submitted bundle's status record"""
    doc_ref: str
    sort_key: str
    epoch: str
    workspace_id: str
    user_id: str
    is_machine: bool = False

    @classmethod
    def from_presigned_url(cls, presigned_url: str, doc_ref: str, full: bool = False) -> "JobReference":
        workspace_id, user_id, epoch, is_machine = get_ids_from_url(presigned_url)
        return cls(
            doc_ref=doc_ref,
            sort_key=create_sort_string(user_id, epoch, full=full, is_machine=is_machine),
            epoch=epoch,
            workspace_id=workspace_id,
            user_id=user_id,
            is_machine=is_machine,
        )


@dataclass
class HealthCheck:
    name: str
    passed: bool
    label: str = ""
    values: List[str] = field(default_factory=list)


@dataclass
class HealthReport:
    """Repository health section of a full scan"""
    score: int
    summary: Dict[str, List[str]] = field(default_factory=dict)
    checks: List[HealthCheck] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HealthReport":
        summary = {}
        for item in (data.get("summary") or {}).get("data") or []:
            summary[item.get("label", "")] = item.get("values") or []
        checks = []
        for item in data.get("checks") or []:
            check_data = item.get("data") or {}
            checks.append(HealthCheck(
                name=item.get("name", ""),
                passed=bool(item.get("pass")),
                label=check_data.get("label", ""),
                values=check_data.get("values") or [],
            ))
        return cls(score=int(data.get("score") or 0), summary=summary, checks=checks)


@dataclass
class AnalysisResult:
    """Finished analysis as stored by the platform"""
    proceed: bool
    results: str
    score: int = 0
    health: Optional[HealthReport] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        health = data.get("health")
        return cls(
            proceed=bool(data.get("proceed")),
            results=data.get("results") or "",
            score=int(data.get("score") or 0),
            health=HealthReport.from_dict(health) if health else None,
            raw=data,
        )


@dataclass
class ScanStatusRecord:
    """One row of the scan status result set"""
    state: JobState
    status: str
    details: str
    updated_at: str
    analysis: Optional[AnalysisResult] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanStatusRecord":
        meta = data.get("statusMeta") or {}
        analysis = data.get("analysis")
        return cls(
            state=JobState.from_status(meta.get("status", "")),
            status=meta.get("status", ""),
            details=meta.get("details", ""),
            updated_at=str(meta.get("updatedAt", "")),
            analysis=AnalysisResult.from_dict(analysis) if analysis else None,
        )


@dataclass
class IngestionStatus:
    """Latest ingestion status of one uploaded document"""
    doc_ref: str
    status: str
    user_message: str = ""
    document_name: str = ""
    updated_at: str = ""

    @property
    def state(self) -> Optional[IngestionState]:
        return IngestionState.from_status(self.status)

    @classmethod
    def from_dict(cls, doc_ref: str, data: Dict[str, Any]) -> "IngestionStatus":
        meta = data.get("statusMeta") or {}
        return cls(
            doc_ref=doc_ref,
            status=meta.get("status", ""),
            user_message=meta.get("user_message", ""),
            document_name=data.get("document_name", ""),
            updated_at=str(meta.get("updated_at", "")),
        )


@dataclass
class SbomSubjectReference:
    """Subject and URI of an uploaded SBOM, used for blocked-package lookups"""
    doc_ref: str
    subject: str = ""
    uri: str = ""

    @property
    def resolvable(self) -> bool:
        return bool(self.subject or self.uri)


@dataclass
class SoftwareIds:
    software_id: int
    sbom_id: int


@dataclass
class BlockedCheckResult:
    """Blocked-package verdict for one SBOM"""
    reference: SbomSubjectReference
    blocked: bool
    blocked_packages: List[str] = field(default_factory=list)


@dataclass
class UploadMetadata:
    """Optional ``upload_metadata`` entries of a document wrapper"""
    alias: str = ""
    document_type: str = ""
    tag: str = ""
    software_id: str = ""
    sbom_subject: str = ""
    component_name: str = ""
    sbom_subject_name_override: str = ""
    sbom_subject_version_override: str = ""

    def to_dict(self) -> Dict[str, str]:
        data = {
            "alias": self.alias,
            "type": self.document_type,
            "tag": self.tag,
            "software_id": self.software_id,
            "sbom_subject": self.sbom_subject,
            "component_name": self.component_name,
            "sbom_subject_name_override": self.sbom_subject_name_override,
            "sbom_subject_version_override": self.sbom_subject_version_override,
        }
        return {key: value for key, value in data.items() if value}

    @property
    def has_subject_override(self) -> bool:
        return bool(self.sbom_subject_name_override or self.sbom_subject_version_override)


@dataclass
class DocumentWrapper:
    """JSON envelope PUT to blob storage for SBOM/VEX uploads"""
    blob: bytes
    doc_ref: str
    file_path: str
    document_type: DocumentType = DocumentType.SBOM
    upload_metadata: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Blob": base64.b64encode(self.blob).decode("ascii"),
            "Type": self.document_type.value,
            "Format": "UNKNOWN",
            "Encoding": "",
            "SourceInformation": {
                "Collector": DOCUMENT_COLLECTOR,
                "Source": f"file:///{self.file_path}",
                "DocumentRef": self.doc_ref,
            },
            "upload_metadata": self.upload_metadata,
        }


@dataclass
class DocumentUploadResult:
    """One uploaded document and what could be sniffed from it"""
    file_path: str
    doc_ref: str
    skipped: bool = False
    reference: Optional[SbomSubjectReference] = None
