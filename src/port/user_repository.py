from datetime import datetime
from typing import Protocol

from domain.model.user import Profile, User


class UserRepository(Protocol):
    """Protocol defining the interface for the remote identity store (users)."""

    async def create(
        self,
        phone: str,
        password_hash: str,
        username: str,
        full_name: str = '',
    ) -> User:
        """Create an active user.

        Raises ConflictError if phone or username is already taken,
        RemoteError on storage failure.
        """
        ...

    async def get_by_id(self, user_id: str, active_only: bool = False) -> User | None:
        """Find a user by ID. Return User or None if not found."""
        ...

    async def get_by_phone(self, phone: str, active_only: bool = False) -> User | None:
        """Find a user by phone number. Return User or None if not found."""
        ...

    async def get_by_username(self, username: str, exclude_id: str | None = None) -> User | None:
        """Find a user holding `username`, ignoring the user `exclude_id`."""
        ...

    async def update(self, user_id: str, changes: dict) -> bool:
        """Apply field changes to a user. Return True if the user exists."""
        ...

    async def update_last_login(self, user_id: str, at: datetime) -> bool:
        """Update the last login timestamp for a user. Return True if successful."""
        ...


class ProfileRepository(Protocol):
    """Protocol for profile rows, created by the identity store alongside users."""

    async def get_by_id(self, user_id: str) -> Profile | None:
        ...

    async def update(self, user_id: str, changes: dict) -> bool:
        """Apply field changes and stamp updated_at. Return True if the profile exists."""
        ...
