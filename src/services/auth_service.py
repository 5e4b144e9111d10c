"""Auth service: registration, login, logout and profile updates.

Pure business logic with no UI dependencies. Holds the signed-in identity
(user, profile, session) for the lifetime of the client and tells registered
listeners whenever that identity changes. Every public operation returns a
Result; nothing raises across the service boundary.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from domain.model.errors import AuthError, ConflictError, RemoteError, ValidationError
from domain.model.session import SessionDescriptor
from domain.model.user import Profile, ProfileUpdate, User
from port.user_repository import ProfileRepository, UserRepository
from services.boundary import service_boundary
from services.credential_store import CredentialStore
from services.session_manager import SessionManager
from utils.phone import default_username, is_valid_phone, mask_phone

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72
PROFILE_RETRY_DELAY = 0.1

# Same message for unknown phone and wrong password
INVALID_CREDENTIALS = "Invalid phone number or password"

IdentityListener = Callable[[User | None], Awaitable[None]]


def _validate_phone(phone: str) -> None:
    if not is_valid_phone(phone):
        raise ValidationError("Please enter a valid 11-digit mobile number starting with 1")


def _validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


class AuthService:
    """Orchestrates CredentialStore, SessionManager and the identity store."""

    def __init__(
        self,
        users: UserRepository,
        profiles: ProfileRepository,
        credentials: CredentialStore,
        sessions: SessionManager,
        profile_retry_delay: float = PROFILE_RETRY_DELAY,
    ):
        self.users = users
        self.profiles = profiles
        self.credentials = credentials
        self.sessions = sessions
        self.profile_retry_delay = profile_retry_delay

        self.user: User | None = None
        self.profile: Profile | None = None
        self.session: SessionDescriptor | None = None
        self._listeners: list[IdentityListener] = []

    # ── identity state ───────────────────────────────────────

    @property
    def current_user_id(self) -> str | None:
        return self.user.id if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def add_listener(self, listener: IdentityListener) -> None:
        """Register a coroutine called with the new user (or None) on identity change."""
        self._listeners.append(listener)

    async def _notify(self) -> None:
        for listener in self._listeners:
            try:
                await listener(self.user)
            except Exception:
                logger.exception("Identity listener failed", extra={"userId": self.current_user_id})

    async def _set_identity(self, user: User, session: SessionDescriptor, profile: Profile | None) -> None:
        self.user = user
        self.session = session
        self.profile = profile
        await self._notify()

    async def _drop_identity(self) -> None:
        had_identity = self.user is not None
        self.user = None
        self.profile = None
        self.session = None
        await self.sessions.clear()
        if had_identity:
            await self._notify()

    async def require_user(self) -> User:
        """Return the signed-in user, dropping the identity if its session has expired.

        Raises:
            AuthError: no usable session
        """
        if self.user is None or self.session is None:
            raise AuthError("Not signed in")
        if not self.sessions.validate(self.session):
            logger.info("Session expired", extra={"userId": self.user.id})
            await self._drop_identity()
            raise AuthError("Session expired, please sign in again")
        return self.user

    async def _start_session(self, user_id: str) -> SessionDescriptor:
        """Issue a session. If it cannot be persisted it is kept in memory only."""
        try:
            return await self.sessions.issue(user_id)
        except RemoteError as e:
            logger.error("Failed to persist session, it will not survive a restart",
                         extra={"userId": user_id, "error": e.message})
            return self.sessions.create(user_id)

    async def _load_profile(self, user_id: str, retry: bool = False) -> Profile | None:
        """Fetch the profile row. It is written by the identity store after the
        user insert, so right after registration it may not exist yet."""
        try:
            profile = await self.profiles.get_by_id(user_id)
            if profile is None and retry:
                await asyncio.sleep(self.profile_retry_delay)
                profile = await self.profiles.get_by_id(user_id)
        except RemoteError as e:
            logger.warning("Failed to load profile", extra={"userId": user_id, "error": e.message})
            return None
        if profile is None:
            logger.info("Profile not available yet", extra={"userId": user_id})
        return profile

    # ── lifecycle ────────────────────────────────────────────

    @service_boundary("auth.initialize")
    async def initialize(self) -> User | None:
        """Restore the persisted session, revalidating it against the identity store."""
        descriptor = await self.sessions.load()
        if descriptor is None:
            return None

        if not self.sessions.validate(descriptor):
            logger.info("Stored session expired", extra={"userId": descriptor.user_id})
            await self._drop_identity()
            return None
        if not self.sessions.token_matches(descriptor):
            logger.warning("Stored session token rejected", extra={"userId": descriptor.user_id})
            await self._drop_identity()
            return None

        try:
            user = await self.users.get_by_id(descriptor.user_id, active_only=True)
        except RemoteError:
            await self._drop_identity()
            raise
        if user is None:
            logger.info("Stored session user missing or inactive", extra={"userId": descriptor.user_id})
            await self._drop_identity()
            return None

        profile = await self._load_profile(user.id)
        await self._set_identity(user, descriptor, profile)
        logger.info("Session restored", extra={"userId": user.id})
        return user

    # ── operations ───────────────────────────────────────────

    @service_boundary("auth.sign_up")
    async def sign_up(
        self,
        phone: str,
        password: str,
        username: str | None = None,
        full_name: str | None = None,
    ) -> User:
        """Register a new account and sign it in.

        Raises (as Result errors):
            ValidationError: bad phone format or password length
            ConflictError: phone or username already taken
        """
        _validate_phone(phone)
        _validate_password(password)

        final_username = (username or '').strip() or default_username(phone)
        final_full_name = full_name or ''

        if await self.users.get_by_phone(phone):
            raise ConflictError("Phone number already registered")
        if await self.users.get_by_username(final_username):
            raise ConflictError("Username already taken, please choose another one")

        password_hash = await self.credentials.hash(password)
        user = await self.users.create(
            phone=phone,
            password_hash=password_hash,
            username=final_username,
            full_name=final_full_name,
        )

        session = await self._start_session(user.id)
        profile = await self._load_profile(user.id, retry=True)
        await self._set_identity(user, session, profile)

        logger.info("User registered", extra={"userId": user.id, "phone": mask_phone(phone)})
        return user

    @service_boundary("auth.sign_in")
    async def sign_in(self, phone: str, password: str) -> User:
        """Authenticate by phone and password.

        Does not reveal whether the phone exists: unknown phone, inactive
        account and wrong password all give the same AuthError.
        """
        _validate_phone(phone)

        user = await self.users.get_by_phone(phone, active_only=True)
        if not user or not await self.credentials.verify(password, user.password_hash):
            logger.info("Sign-in rejected", extra={"phone": mask_phone(phone)})
            raise AuthError(INVALID_CREDENTIALS)

        # Login succeeds even if the timestamp write fails
        now = self.sessions.clock()
        try:
            if await self.users.update_last_login(user.id, now):
                user.last_login = now
                user.updated_at = now
        except RemoteError as e:
            logger.warning("Failed to record last login", extra={"userId": user.id, "error": e.message})

        session = await self._start_session(user.id)
        profile = await self._load_profile(user.id)
        await self._set_identity(user, session, profile)

        logger.info("User signed in", extra={"userId": user.id})
        return user

    @service_boundary("auth.sign_out")
    async def sign_out(self) -> None:
        """Forget the local identity. Succeeds even if session storage fails."""
        user_id = self.current_user_id
        try:
            await self.sessions.clear()
        except RemoteError as e:
            logger.error("Failed to clear persisted session", extra={"userId": user_id, "error": e.message})

        had_identity = self.user is not None
        self.user = None
        self.profile = None
        self.session = None
        if had_identity:
            await self._notify()
        logger.info("User signed out", extra={"userId": user_id})

    @service_boundary("auth.update_profile")
    async def update_profile(self, updates: ProfileUpdate) -> None:
        """Apply profile changes to the user and profile records, then reload both."""
        user = await self.require_user()
        updates = updates.normalized()

        username = updates.username
        if username and username != user.username and await self.users.get_by_username(username, exclude_id=user.id):
            raise ConflictError("Username already taken, please choose another one")

        user_changes = updates.user_changes()
        if user_changes:
            await self.users.update(user.id, user_changes)

        profile_changes = updates.profile_changes()
        if profile_changes and not await self.profiles.update(user.id, profile_changes):
            logger.warning("Profile row missing during update", extra={"userId": user.id})

        reloaded = await self.users.get_by_id(user.id)
        if reloaded:
            self.user = reloaded
        self.profile = await self._load_profile(user.id) or self.profile
        logger.info("Profile updated", extra={"userId": user.id, "fields": sorted(profile_changes)})

    @service_boundary("auth.refresh_profile")
    async def refresh_profile(self) -> Profile | None:
        """Re-fetch the signed-in user's profile (e.g. once the store has created it)."""
        user = await self.require_user()
        profile = await self.profiles.get_by_id(user.id)
        if profile:
            self.profile = profile
        return profile
