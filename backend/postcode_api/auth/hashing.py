"""
API key generation and hashing.

  • Keys look like pk_live_<48 hex chars>; the pk_live_ part is a
    convention for humans and grep, not a secret.
  • Only the SHA-256 digest is stored. Keys are random and long, so a
    fast unsalted hash is enough; the comparison is exact, with no
    trimming or case folding before hashing.
  • The first 12 characters are kept in clear as a display prefix.
  • An IssuedKey is the only object that ever holds a raw key. It is
    returned to the caller once and never persisted.
"""

import datetime
import hashlib
import secrets
from typing import NamedTuple

_KEY_PREFIX = "pk_live_"
_RANDOM_BYTES = 24  # 48 hex chars = 192 bits
DISPLAY_PREFIX_LENGTH = 12


class IssuedKey(NamedTuple):
    raw: str
    digest: str
    prefix: str
    generated_at: datetime.datetime


def hash_api_key(raw_key: str) -> str:
    """SHA-256 hex digest used for storage and lookup."""
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def display_prefix(raw_key: str) -> str:
    return raw_key[:DISPLAY_PREFIX_LENGTH]


def generate_api_key() -> IssuedKey:
    """Mint a fresh key. Show `raw` to the user now; store the rest."""
    raw_key = f"{_KEY_PREFIX}{secrets.token_hex(_RANDOM_BYTES)}"
    return IssuedKey(
        raw=raw_key,
        digest=hash_api_key(raw_key),
        prefix=display_prefix(raw_key),
        generated_at=datetime.datetime.now(datetime.timezone.utc),
    )
