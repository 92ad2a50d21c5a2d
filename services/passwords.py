"""Password hashing for stored credentials."""
from __future__ import annotations

import hashlib
import hmac
import re

from werkzeug.security import check_password_hash, generate_password_hash

# unsalted sha256 hex digests written by the previous version of the service
_LEGACY_DIGEST = re.compile(r'^[0-9a-f]{64}$')


class PasswordHasher:
    """Salted one-way hashing with constant-time verification."""

    def __init__(self, method: str = 'scrypt'):
        self.method = method

    def hash(self, plaintext: str) -> str:
        return generate_password_hash(plaintext, method=self.method)

    def verify(self, digest: str, plaintext: str) -> bool:
        if not digest or plaintext is None:
            return False
        if self.is_legacy(digest):
            candidate = hashlib.sha256(plaintext.encode('utf-8')).hexdigest()
            return hmac.compare_digest(candidate, digest)
        try:
            return check_password_hash(digest, plaintext)
        except ValueError:
            # unknown hash method in the stored value
            return False

    @staticmethod
    def is_legacy(digest: str) -> bool:
        return bool(_LEGACY_DIGEST.match(digest or ''))

    def needs_rehash(self, digest: str) -> bool:
        return self.is_legacy(digest)
