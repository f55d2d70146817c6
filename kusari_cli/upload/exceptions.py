"""
Exceptions for bundle packaging, uploads and result polling.
"""


class KusariError(Exception):
    """Base error for platform operations."""

    suggested_action = None


class UploadError(KusariError):
    """Putting bytes to a presigned URL failed."""

    def __init__(self, message, **kwargs):
        super().__init__(message)
        self.status_code = kwargs.get('status_code')
        self.file_path = kwargs.get('file_path')


class APIConnectionError(KusariError):
    """API request failed or returned an unexpected status."""

    def __init__(self, message, **kwargs):
        super().__init__(message)
        self.endpoint = kwargs.get('endpoint')
        self.status_code = kwargs.get('status_code')
        self.body = kwargs.get('body')


class AuthenticationError(KusariError):
    """The platform rejected the bearer token."""

    suggested_action = "Run `kusari auth login`"

    def __init__(self, message, **kwargs):
        super().__init__(message)
        self.endpoint = kwargs.get('endpoint')
        self.status_code = kwargs.get('status_code')


class BundleError(KusariError):
    """The repository could not be packaged."""
    pass


class MonorepoDetectedError(BundleError):
    """Full scans refuse repositories that look like monorepos."""

    suggested_action = "Run `kusari repo risk-check` on each sub-project directory individually"

    def __init__(self, indicators):
        self.indicators = list(indicators)
        super().__init__("monorepo detected: " + ", ".join(self.indicators))


class WorkspaceError(KusariError):
    """No workspace could be resolved for the user."""
    pass


class ConfigurationError(KusariError):
    """Invalid or incomplete CLI configuration."""
    pass


class ScanFailedError(KusariError):
    """The platform reported the analysis as failed."""

    def __init__(self, detail):
        self.detail = detail
        super().__init__(f"analysis failed: {detail}" if detail else "analysis failed")


class ScanTimeoutError(KusariError):
    """Polling gave up before the analysis reached a terminal state."""

    def __init__(self, message, results_url=None):
        super().__init__(message)
        self.results_url = results_url


class BlockedPackagesFound(KusariError):
    """At least one uploaded SBOM contains blocked packages."""

    def __init__(self, results):
        self.results = results
        blocked = [r for r in results if r.blocked]
        super().__init__(f"{len(blocked)} document(s) contain blocked packages")


class BatchCancelledError(KusariError):
    """A batch was cancelled by a transport error or its deadline."""
    pass
