from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

SESSION_TTL = timedelta(days=7)


@dataclass(frozen=True)
class SessionDescriptor:
    """Client-held proof of an authenticated identity."""
    user_id: str
    token: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def to_dict(self) -> dict:
        """Serialize to the persisted session blob."""
        return {
            'userId': self.user_id,
            'sessionToken': self.token,
            'expiresAt': self.expires_at.isoformat(),
        }

    @staticmethod
    def from_dict(data: dict) -> 'SessionDescriptor':
        """Parse a persisted session blob. Raises KeyError/ValueError when malformed."""
        expires_at = datetime.fromisoformat(data['expiresAt'])
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return SessionDescriptor(
            user_id=data['userId'],
            token=data['sessionToken'],
            expires_at=expires_at,
        )
