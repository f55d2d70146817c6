"""
Kusari Platform Upload Module

Presigned uploads of repository bundles and SBOM/OpenVEX documents:

Phase 1: Presign - Ask the platform (bundles) or tenant API (documents) for a URL
Phase 2: Upload  - PUT the bytes directly to blob storage
Phase 3: Follow  - Poll analysis / ingestion status (see kusari_cli.polling)
"""

from .exceptions import (
    KusariError,
    UploadError,
    APIConnectionError,
    AuthenticationError,
    BundleError,
    MonorepoDetectedError,
    WorkspaceError,
    ConfigurationError,
    ScanFailedError,
    ScanTimeoutError,
    BlockedPackagesFound,
    BatchCancelledError,
)

__all__ = [
    'KusariError',
    'UploadError',
    'APIConnectionError',
    'AuthenticationError',
    'BundleError',
    'MonorepoDetectedError',
    'WorkspaceError',
    'ConfigurationError',
    'ScanFailedError',
    'ScanTimeoutError',
    'BlockedPackagesFound',
    'BatchCancelledError',
]
