"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Opaque bearer token generation via secrets
- Timing equalization for failed logins
"""
from __future__ import annotations

import secrets

from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError

from utils.errors import ServerError

TOKEN_BYTES = 32


class CredentialVerifier:
    """Hashes and verifies passwords, and mints token strings.

    Cost parameters are per instance so tests can run with a cheap hasher
    while production keeps argon2-cffi's defaults.
    """

    def __init__(self, time_cost: int | None = None, memory_cost: int | None = None,
                 parallelism: int | None = None):
        params = {}
        if time_cost is not None:
            params["time_cost"] = time_cost
        if memory_cost is not None:
            params["memory_cost"] = memory_cost
        if parallelism is not None:
            params["parallelism"] = parallelism
        self._ph = PasswordHasher(**params)
        self._dummy_hash = self.hash(secrets.token_hex(16))

    def hash(self, password: str) -> str:
        """Hash a plaintext password using Argon2
        """
        try:
            return self._ph.hash(password)
        except HashingError as exc:
            raise ServerError("CredentialVerifier.hash", cause=exc) from exc

    def verify(self, password: str, password_hash: str) -> bool:
        """ Verify a plaintext password using argon2.

        False for a mismatch and for any missing or malformed hash.
        """
        if not password_hash or not isinstance(password, str):
            return False
        try:
            return self._ph.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def equalize(self, password: str) -> None:
        """Burn one verify's worth of time when there is no real hash to check.

        Called for unknown and inactive usernames so response time does not
        reveal which branch of authentication failed.
        """
        self.verify(password if isinstance(password, str) else "", self._dummy_hash)

    @staticmethod
    def generate_token() -> str:
        """Generate an opaque token: 256 random bits as 64 hex characters.
        """
        return secrets.token_hex(TOKEN_BYTES)
