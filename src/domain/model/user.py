from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any

from domain.model.errors import ValidationError
from domain.model.prompt import UNSET


@dataclass
class User:
    """Domain model representing a registered account."""
    id: str
    phone: str
    username: str
    created_at: datetime
    updated_at: datetime
    full_name: str = ''
    is_active: bool = True
    last_login: datetime | None = None
    password_hash: str | None = None


@dataclass
class Profile:
    """Public profile attached 1:1 to a User (same id)."""
    id: str
    username: str
    phone: str
    created_at: datetime
    updated_at: datetime
    full_name: str = ''
    avatar_url: str | None = None
    bio: str | None = None


@dataclass(frozen=True)
class ProfileUpdate:
    """Profile fields to change.

    A field left as UNSET is not touched. None clears avatar_url or bio;
    username and full_name cannot be null.
    """
    username: Any = UNSET
    full_name: Any = UNSET
    avatar_url: Any = UNSET
    bio: Any = UNSET

    def profile_changes(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def user_changes(self) -> dict:
        """Subset of the changes that is mirrored on the users record."""
        return {
            k: v for k, v in self.profile_changes().items()
            if k in ('username', 'full_name')
        }

    def normalized(self) -> 'ProfileUpdate':
        """Strip the username and reject nulls where the records need a string.

        Raises:
            ValidationError: blank or null username, null full_name
        """
        username = self.username
        if username is not UNSET:
            username = (username or '').strip()
            if not username:
                raise ValidationError("Username cannot be empty")
        if self.full_name is None:
            raise ValidationError("Full name cannot be null, use an empty string")
        return ProfileUpdate(
            username=username,
            full_name=self.full_name,
            avatar_url=self.avatar_url,
            bio=self.bio,
        )
