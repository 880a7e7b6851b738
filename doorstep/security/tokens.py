"""
CSRF token primitives.

A token is ``salt.digest`` where ``salt`` is fresh random bytes (hex) and
``digest`` is HMAC-SHA256 of the salt bytes keyed by the session secret
(hex). Validity is decided by recomputation; issued tokens are never stored.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives import constant_time, hashes, hmac


TOKEN_SEPARATOR = "."

_HEX_RE = re.compile(r"[0-9a-fA-F]+")


@dataclass(frozen=True, slots=True)
class ParsedToken:
    """A token split into its salt bytes and presented digest."""
    salt: bytes
    digest: str


def generate_secret(nbytes: int = 32) -> str:
    """Generate a new per-session secret (hex)."""
    return secrets.token_hex(nbytes)


def _sign(secret: str, salt: bytes) -> str:
    mac = hmac.HMAC(secret.encode("utf-8"), hashes.SHA256())
    mac.update(salt)
    return mac.finalize().hex()


def create_token(secret: str, salt_bytes: int = 32) -> str:
    """Mint a fresh token for ``secret`` with a new random salt."""
    salt = secrets.token_bytes(salt_bytes)
    return f"{salt.hex()}{TOKEN_SEPARATOR}{_sign(secret, salt)}"


def parse_token(token: str) -> Optional[ParsedToken]:
    """
    Split a token on its first separator.

    Returns None when the structure is broken: no separator, an empty salt
    or digest, or a salt that is not even-length hex. The digest is left as
    presented; a non-hex digest fails comparison rather than parsing.
    """
    salt_hex, sep, digest = token.partition(TOKEN_SEPARATOR)
    if not sep or not salt_hex or not digest:
        return None
    if len(salt_hex) % 2 != 0 or not _HEX_RE.fullmatch(salt_hex):
        return None
    try:
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        return None
    return ParsedToken(salt=salt, digest=digest)


def digests_match(expected: str, provided: str) -> bool:
    """Constant-time comparison of two digest strings."""
    return constant_time.bytes_eq(
        expected.encode("utf-8"),
        provided.encode("utf-8", "surrogatepass"),
    )


def verify_token(secret: str, parsed: ParsedToken) -> bool:
    """Recompute the digest for ``parsed.salt`` and compare it."""
    return digests_match(_sign(secret, parsed.salt), parsed.digest)


__all__ = [
    "TOKEN_SEPARATOR",
    "ParsedToken",
    "generate_secret",
    "create_token",
    "parse_token",
    "digests_match",
    "verify_token",
]
