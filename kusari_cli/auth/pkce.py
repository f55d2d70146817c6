"""
PKCE and CSRF material for one login attempt.
"""

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass, field

from kusari_cli.constants import REDIRECT_PORT_FALLBACK, REDIRECT_PORT_MAX, REDIRECT_PORT_MIN

logger = logging.getLogger(__name__)

STATE_BYTES = 32
VERIFIER_BYTES = 32


def generate_state(num_bytes: int = STATE_BYTES) -> str:
    """Random URL-safe state value used to bind the callback to this login."""
    return secrets.token_urlsafe(num_bytes)


def generate_verifier(num_bytes: int = VERIFIER_BYTES) -> str:
    """RFC 7636 code verifier (43 characters for 32 random bytes)."""
    return base64.urlsafe_b64encode(secrets.token_bytes(num_bytes)).rstrip(b"=").decode("ascii")


def s256_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


@dataclass(frozen=True)
class PkceChallenge:
    """State, verifier and S256 challenge for a single authorization request"""
    state: str = field(default_factory=generate_state)
    verifier: str = field(default_factory=generate_verifier)

    @property
    def challenge(self) -> str:
        return s256_challenge(self.verifier)

    @property
    def challenge_method(self) -> str:
        return "S256"


def generate_random_port() -> str:
    """Pick a redirect port from the reserved range with a secure random draw."""
    span = REDIRECT_PORT_MAX - REDIRECT_PORT_MIN + 1
    return str(REDIRECT_PORT_MIN + secrets.randbelow(span))


def generate_random_port_or_default() -> str:
    try:
        return generate_random_port()
    except (OSError, NotImplementedError) as e:
        logger.debug("Random port draw failed, using %s: %s", REDIRECT_PORT_FALLBACK, e)
        return REDIRECT_PORT_FALLBACK
