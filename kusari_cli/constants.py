"""
Shared constants for kusari-cli.
"""

DEFAULT_PLATFORM_URL = "https://platform.api.us.kusari.cloud/"
DEFAULT_CONSOLE_URL = "https://console.us.kusari.cloud/"
DEFAULT_AUTH_ENDPOINT = "https://auth.us.kusari.cloud/"
DEFAULT_CLIENT_ID = "4lnk6jccl3hc4lkcudai5lt36u"
SSO_CLIENT_ID = "7ippro0e5e8qd3oragd4k1h39i"

TENANT_ENDPOINT_TEMPLATE = "https://{tenant}.api.us.kusari.cloud"

# Token map key used by every command
TOKEN_PROVIDER = "kusari"

OAUTH_SCOPES = ["openid", "profile", "email"]

# Local redirect listener
REDIRECT_PORT_MIN = 62001
REDIRECT_PORT_MAX = 62009
REDIRECT_PORT_FALLBACK = "62009"
CALLBACK_PATH = "/callback"

# Local state
CONFIG_DIR_NAME = ".kusari"
TOKEN_FILE_NAME = "tokens.json"
WORKSPACE_FILE_NAME = "workspace.json"

# Bundle archive entries
PATCH_FILE = "kusari-inspector.patch"
META_FILE = "kusari-inspector.json"
TARBALL_NAME = "kusari-inspector.tar.bz2"
WORKING_DIR_NAME = "kusari-dir"

WORKSPACE_HEADER = "X-Kusari-Workspace"

BUNDLE_CONTENT_TYPE = "application/x-bzip2"
DOCUMENT_CONTENT_TYPE = "multipart/form-data"
DOCUMENT_COLLECTOR = "Kusari-CLI"

DOCS_URL = "https://docs.kusari.cloud"
