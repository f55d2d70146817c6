"""
URL helpers: endpoint building, presigned URL parsing, sort keys and
document references.
"""

import hashlib
import posixpath
from typing import Tuple
from urllib.parse import quote, quote_plus, urlencode, urlparse, urlunparse

from kusari_cli.constants import TENANT_ENDPOINT_TEMPLATE


class UrlError(ValueError):
    """A URL could not be built or parsed."""
    pass


def build_url(base_url: str, *segments: str) -> str:
    """Join path segments onto ``base_url``.

    ``build_url("https://a.b/", "x", "y")`` -> ``"https://a.b/x/y"``. With no
    segments the base URL is returned unchanged.
    """
    parsed = urlparse(base_url or "")
    if not parsed.scheme or not parsed.netloc:
        raise UrlError(f"failed to parse base URL: {base_url!r}")
    if not segments:
        return base_url

    parts = [parsed.path.rstrip("/")]
    for segment in segments:
        segment = segment.strip("/")
        if segment:
            parts.append(segment)
    path = "/".join(parts)
    if not path.startswith("/"):
        path = "/" + path
    return urlunparse(parsed._replace(path=path))


def with_query(url: str, **params: str) -> str:
    parsed = urlparse(url)
    return urlunparse(parsed._replace(query=urlencode(params)))


def console_analysis_url(console_url: str, workspace_id: str) -> str:
    """Console page listing analysis results for a workspace."""
    return with_query(build_url(console_url, "analysis"), workspaceId=workspace_id)


def create_sort_string(user_id: str, epoch: str, full: bool = False, is_machine: bool = False) -> str:
    """URL-escaped sort key of a CLI scan status record.

    Formats::

        cli-user|{user sub}|{epoch}
        cli-user-full|{user sub}|{epoch}
        cli-api|machine|{epoch}
        cli-api-full|machine|{epoch}
    """
    if is_machine:
        prefix = "cli-api"
        user_id = "machine"
    else:
        prefix = "cli-user"
    if full:
        prefix += "-full"
    return quote_plus(f"{prefix}|{user_id}|{epoch}")


def get_ids_from_url(presigned_url: str) -> Tuple[str, str, str, bool]:
    """Extract ``(workspace_id, user_id, epoch, is_machine)`` from a presigned URL.

    Expected path: ``.../workspace/{W}/user/{human|machine}/{U}/.../{epoch}``
    """
    try:
        parsed = urlparse(presigned_url)
    except ValueError as e:
        raise UrlError(f"error parsing URL: {e}")
    if not parsed.scheme or not parsed.netloc:
        raise UrlError(f"error parsing URL: {presigned_url!r}")

    segments = parsed.path.strip("/").split("/")
    workspace_id = ""
    user_id = ""
    user_type = ""
    for i, segment in enumerate(segments):
        if segment == "workspace" and i + 1 < len(segments):
            workspace_id = segments[i + 1]
        if segment == "user" and i + 2 < len(segments):
            user_type = segments[i + 1]
            user_id = segments[i + 2]

    epoch = posixpath.basename(parsed.path.rstrip("/"))

    if not workspace_id:
        raise UrlError("workspace ID not found in URL")
    if not user_id:
        raise UrlError("user ID not found in URL")
    if not epoch:
        raise UrlError("epoch not found in URL")

    return workspace_id, user_id, epoch, user_type == "machine"


def get_doc_ref(blob: bytes) -> str:
    """Content address of a blob: ``sha256_<hex digest>``."""
    return f"sha256_{hashlib.sha256(blob).hexdigest()}"


def tenant_endpoint_for(tenant: str) -> str:
    return TENANT_ENDPOINT_TEMPLATE.format(tenant=quote(tenant, safe=""))


def tenant_name_from_endpoint(tenant_endpoint: str) -> str:
    """``https://demo.api.us.kusari.cloud`` -> ``demo``"""
    hostname = urlparse(tenant_endpoint or "").hostname or ""
    return hostname.split(".", 1)[0]
