"""
SBOM / OpenVEX document uploads.

Each file is wrapped in a document envelope, uploaded to a presigned URL
obtained from the tenant API, then sniffed for an SBOM subject so it can
be checked against the blocked-package list later.
"""

import json
import logging
import os
from pathlib import Path
from typing import Iterator, List, Union

from rich.console import Console

from kusari_cli.constants import DOCUMENT_CONTENT_TYPE
from kusari_cli.core.urls import get_doc_ref

from .api_client import PlatformAPIClient
from .exceptions import ConfigurationError, UploadError
from .models import DocumentType, DocumentUploadResult, DocumentWrapper, UploadMetadata
from .sbom_sniffer import sniff_sbom_subject

logger = logging.getLogger(__name__)


def validate_upload_options(path: Path, is_open_vex: bool, metadata: UploadMetadata) -> None:
    """Reject option combinations the platform cannot process."""
    if is_open_vex and (not metadata.tag or not (metadata.software_id or metadata.sbom_subject)):
        raise ConfigurationError(
            "when using OpenVEX, tag must be specified, and so must software-id or sbom-subject"
        )
    if not path.exists():
        raise ConfigurationError(f"file-path does not exist: {path}")
    if path.is_dir() and is_open_vex:
        raise ConfigurationError("OpenVEX can't be used with directories, only single files")
    if path.is_dir() and metadata.has_subject_override:
        raise ConfigurationError("cannot override SBOM subject with directories, only single files")


def iter_files(directory: Path) -> Iterator[Path]:
    """Walk ``directory`` recursively in a stable order."""
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        for name in sorted(files):
            yield Path(root) / name


class DocumentUploader:
    """Upload one file or every file under a directory."""

    def __init__(self, client: PlatformAPIClient, console: Console):
        self.client = client
        self.console = console

    def upload(self, file_path: Union[str, Path], is_open_vex: bool, metadata: UploadMetadata) -> List[DocumentUploadResult]:
        path = Path(file_path)
        validate_upload_options(path, is_open_vex, metadata)
        upload_meta = metadata.to_dict()

        if path.is_dir():
            self.console.print(f"Uploading directory: {path}")
            results = []
            for child in iter_files(path):
                self.console.print(f"  Uploading: {child}")
                results.append(self.upload_file(child, False, upload_meta))
            return results

        self.console.print(f"Uploading file: {path}")
        return [self.upload_file(path, is_open_vex, upload_meta)]

    def upload_file(self, path: Path, is_open_vex: bool, upload_meta: dict) -> DocumentUploadResult:
        try:
            blob = path.read_bytes()
        except OSError as e:
            raise UploadError(f"error reading file: {path}: {e}", file_path=str(path))

        if not blob:
            self.console.print(f"  Skipping empty file: {path}")
            return DocumentUploadResult(file_path=str(path), doc_ref="", skipped=True)

        doc_ref = get_doc_ref(blob)
        presigned_url = self.client.presign_document(doc_ref)

        wrapper = DocumentWrapper(
            blob=blob,
            doc_ref=doc_ref,
            file_path=str(path),
            document_type=DocumentType.OPEN_VEX if is_open_vex else DocumentType.SBOM,
            upload_metadata=upload_meta,
        )
        self.client.put_blob(presigned_url, json.dumps(wrapper.to_dict()).encode("utf-8"), DOCUMENT_CONTENT_TYPE)
        logger.debug("Uploaded %s as %s", path, doc_ref)

        return DocumentUploadResult(
            file_path=str(path),
            doc_ref=doc_ref,
            reference=sniff_sbom_subject(blob, doc_ref),
        )
