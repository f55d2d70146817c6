"""
Platform command implementations.

Thin wrapper around PlatformUploadService that handles CLI argument parsing
and delegates business logic to the service layer.
"""
from typing import Optional

import typer

from kusari_cli.cli.options import build_config, exit_with
from kusari_cli.core.uploader import PlatformUploadService
from kusari_cli.upload.models import UploadMetadata


def upload_command(
    ctx: typer.Context,
    file_path: str = typer.Option(..., "-f", "--file-path", help="Path to file or directory to upload"),
    tenant: Optional[str] = typer.Option(None, "--tenant", help="Tenant name (e.g. 'demo' for https://demo.api.us.kusari.cloud)"),
    tenant_endpoint: Optional[str] = typer.Option(
        None, "-t", "--tenant-endpoint", help="Tenant endpoint URL (overrides --tenant)"
    ),
    alias: str = typer.Option("", "-a", "--alias", help="Alias that supersedes the subject in the platform"),
    document_type: str = typer.Option("", "-d", "--document-type", help="Type of the document (image or build) sbom"),
    open_vex: bool = typer.Option(False, "--open-vex", help="The file is an OpenVEX document (single files only)"),
    tag: str = typer.Option("", "--tag", help="Tag value for the upload metadata (e.g. govulncheck)"),
    software_id: str = typer.Option("", "--software-id", help="Platform software ID for the upload metadata"),
    sbom_subject: str = typer.Option("", "--sbom-subject", help="Software SBOM subject substring for the upload metadata"),
    component_name: str = typer.Option("", "--component-name", help="Platform component name"),
    sbom_subject_name_override: str = typer.Option(
        "", "--sbom-subject-name-override", help="Override the SBOM subject name (single files only)"
    ),
    sbom_subject_version_override: str = typer.Option(
        "", "--sbom-subject-version-override", help="Override the SBOM subject version (single files only)"
    ),
    check_blocked_packages: bool = typer.Option(
        False, "--check-blocked-packages", help="Fail if an SBOM uses a package on the blocked list"
    ),
    wait: bool = typer.Option(False, "--wait", help="Wait for ingestion and print the results"),
):
    """Upload SBOM or OpenVEX files to the Kusari platform."""
    config = build_config(ctx, tenant=tenant, tenant_endpoint=tenant_endpoint)
    metadata = UploadMetadata(
        alias=alias,
        document_type=document_type,
        tag=tag,
        software_id=software_id,
        sbom_subject=sbom_subject,
        component_name=component_name,
        sbom_subject_name_override=sbom_subject_name_override,
        sbom_subject_version_override=sbom_subject_version_override,
    )
    service = PlatformUploadService(config)
    exit_with(service.execute_upload(
        file_path,
        metadata,
        is_open_vex=open_vex,
        check_blocked_packages=check_blocked_packages,
        wait=wait,
    ))
