"""In-memory implementations of UserRepository and ProfileRepository for testing."""

import uuid
from dataclasses import replace
from datetime import datetime, timezone

from domain.model.errors import ConflictError
from domain.model.user import Profile, User


class FakeProfileRepository:
    """Profile store. With auto_create=False, profiles of new users are held
    back until release_pending() runs, like a slow database trigger."""

    def __init__(self, auto_create: bool = True):
        self.store: dict[str, Profile] = {}
        self.auto_create = auto_create
        self.pending: list[User] = []

    def on_user_created(self, user: User) -> None:
        if self.auto_create:
            self._create_for(user)
        else:
            self.pending.append(user)

    def release_pending(self) -> None:
        for user in self.pending:
            self._create_for(user)
        self.pending.clear()

    def _create_for(self, user: User) -> None:
        self.store[user.id] = Profile(
            id=user.id,
            username=user.username,
            phone=user.phone,
            full_name=user.full_name,
            created_at=user.created_at,
            updated_at=user.created_at,
        )

    async def get_by_id(self, user_id: str) -> Profile | None:
        profile = self.store.get(user_id)
        return replace(profile) if profile else None

    async def update(self, user_id: str, changes: dict) -> bool:
        profile = self.store.get(user_id)
        if not profile:
            return False
        self.store[user_id] = replace(profile, **changes, updated_at=datetime.now(timezone.utc))
        return True


class FakeUserRepository:
    def __init__(self, profiles: FakeProfileRepository | None = None):
        self.store: dict[str, User] = {}
        self.profiles = profiles

    # ── write operations ─────────────────────────────────────

    async def create(
        self,
        phone: str,
        password_hash: str,
        username: str,
        full_name: str = '',
    ) -> User:
        if any(u.phone == phone for u in self.store.values()):
            raise ConflictError("Phone number already registered")
        if any(u.username == username for u in self.store.values()):
            raise ConflictError("Username already taken")

        user_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)

        user = User(
            id=user_id,
            phone=phone,
            username=username,
            full_name=full_name,
            created_at=now,
            updated_at=now,
            is_active=True,
            password_hash=password_hash,
        )
        self.store[user_id] = user
        if self.profiles is not None:
            self.profiles.on_user_created(user)
        return replace(user)

    async def update(self, user_id: str, changes: dict) -> bool:
        user = self.store.get(user_id)
        if not user:
            return False
        username = changes.get('username')
        if username and any(u.username == username and u.id != user_id for u in self.store.values()):
            raise ConflictError("Username already taken")

        self.store[user_id] = replace(user, **changes, updated_at=datetime.now(timezone.utc))
        return True

    async def update_last_login(self, user_id: str, at: datetime) -> bool:
        user = self.store.get(user_id)
        if not user:
            return False

        user.last_login = at
        user.updated_at = at
        return True

    # ── read operations ──────────────────────────────────────

    async def get_by_id(self, user_id: str, active_only: bool = False) -> User | None:
        user = self.store.get(user_id)
        if not user or (active_only and not user.is_active):
            return None
        return replace(user)

    async def get_by_phone(self, phone: str, active_only: bool = False) -> User | None:
        for user in self.store.values():
            if user.phone == phone and (user.is_active or not active_only):
                return replace(user)
        return None

    async def get_by_username(self, username: str, exclude_id: str | None = None) -> User | None:
        for user in self.store.values():
            if user.username == username and user.id != exclude_id:
                return replace(user)
        return None
