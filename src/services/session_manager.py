"""Session manager: issues, persists, validates and clears session descriptors.

Session lifecycle:
    NoSession → issue() → Active → (expiry | clear() | failed revalidation) → NoSession

Expiry is detected lazily by validate(); there is no separate expired state.
"""

import json
import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from domain.model.session import SESSION_TTL, SessionDescriptor
from port.session_storage import SessionStorage

logger = logging.getLogger(__name__)

SESSION_STORAGE_KEY = 'promptshelf:session'
JWT_ALGORITHM = "HS256"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """Single owner of the persisted session descriptor.

    Tokens are HS256-signed JWTs with a random jti, so they are unguessable
    and bound to the user they were issued for. Callers treat them as opaque.
    """

    def __init__(
        self,
        storage: SessionStorage,
        secret_key: str,
        ttl: timedelta = SESSION_TTL,
        clock: Callable[[], datetime] = utc_now,
    ):
        if not secret_key:
            raise ValueError("secret_key is required to sign session tokens")
        self.storage = storage
        self.secret_key = secret_key
        self.ttl = ttl
        self.clock = clock

    def _create_token(self, user_id: str, issued_at: datetime, expires_at: datetime) -> str:
        payload = {
            "sub": user_id,
            "exp": expires_at,
            "iat": issued_at,
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self.secret_key, algorithm=JWT_ALGORITHM)

    def create(self, user_id: str) -> SessionDescriptor:
        """A new descriptor for `user_id` valid for the configured TTL, not persisted."""
        now = self.clock()
        expires_at = now + self.ttl
        return SessionDescriptor(
            user_id=user_id,
            token=self._create_token(user_id, now, expires_at),
            expires_at=expires_at,
        )

    async def issue(self, user_id: str) -> SessionDescriptor:
        """Create a session for `user_id` and persist it.

        Raises:
            RemoteError: session storage write failed
        """
        descriptor = self.create(user_id)
        await self.storage.set(SESSION_STORAGE_KEY, json.dumps(descriptor.to_dict()))
        logger.debug("Session issued", extra={"userId": user_id, "expiresAt": descriptor.expires_at.isoformat()})
        return descriptor

    async def load(self) -> SessionDescriptor | None:
        """Read the persisted descriptor. A corrupt blob is cleared and reported as None."""
        raw = await self.storage.get(SESSION_STORAGE_KEY)
        if raw is None:
            return None
        try:
            return SessionDescriptor.from_dict(json.loads(raw))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable session blob", extra={"error": str(e)})
            await self.clear()
            return None

    def validate(self, descriptor: SessionDescriptor) -> bool:
        """True iff the descriptor has not expired.

        Callers must also confirm the user still exists and is active.
        """
        return not descriptor.is_expired(self.clock())

    def token_matches(self, descriptor: SessionDescriptor) -> bool:
        """True iff the token was signed by us for descriptor.user_id. Expiry is not checked."""
        try:
            payload = jwt.decode(
                descriptor.token,
                self.secret_key,
                algorithms=[JWT_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as e:
            logger.debug(f"Session token verification failed: {e}")
            return False
        return payload.get("sub") == descriptor.user_id

    async def clear(self) -> None:
        """Remove the persisted descriptor. Safe to call when none exists."""
        await self.storage.delete(SESSION_STORAGE_KEY)
