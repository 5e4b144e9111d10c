"""Password hashing with bcrypt."""

import asyncio
import logging

import bcrypt

from domain.model.errors import RemoteError

logger = logging.getLogger(__name__)

# 12 rounds (2^12 = 4096 iterations)
BCRYPT_ROUNDS = 12


class CredentialStore:
    """Hashes and verifies passwords.

    bcrypt is deliberately slow, so both operations run in a worker thread
    to keep the event loop responsive. The salt is generated per hash and
    embedded in the returned string.
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds

    def _hash_sync(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    @staticmethod
    def _verify_sync(plain: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(plain.encode('utf-8'), hashed.encode('utf-8'))
        except ValueError:
            # malformed or foreign hash string
            return False

    async def hash(self, password: str) -> str:
        """Return the bcrypt hash of `password`.

        Raises:
            RemoteError: hashing failed
        """
        try:
            return await asyncio.to_thread(self._hash_sync, password)
        except Exception as e:
            logger.error("Password hashing failed", extra={"error": str(e)})
            raise RemoteError("Failed to secure password") from e

    async def verify(self, password: str, hashed: str | None) -> bool:
        """Check `password` against `hashed`. Returns False on any mismatch."""
        if not hashed:
            return False
        return await asyncio.to_thread(self._verify_sync, password, hashed)
