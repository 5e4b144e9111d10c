"""Unit tests for AuthService, run against the in-memory adapters."""

import json
import sys
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from adapter.fake.session_storage import FakeSessionStorage
from adapter.fake.user_repository import FakeProfileRepository, FakeUserRepository
from domain.model.errors import AuthError, ConflictError, RemoteError, ValidationError
from domain.model.user import ProfileUpdate
from services.auth_service import INVALID_CREDENTIALS, AuthService
from services.boundary import UNEXPECTED_ERROR_MESSAGE
from services.credential_store import CredentialStore
from services.session_manager import SESSION_STORAGE_KEY, SessionManager

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
PHONE = '13800000000'
PASSWORD = 'secret1'
# default username user_5678, distinct from PHONE's user_0000
OTHER_PHONE = '13912345678'


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class LateProfileRepository(FakeProfileRepository):
    """Profiles appear only after the first lookup, like a trigger that lags the insert."""

    def __init__(self):
        super().__init__(auto_create=False)
        self.lookups = 0

    async def get_by_id(self, user_id):
        self.lookups += 1
        profile = await super().get_by_id(user_id)
        self.release_pending()
        return profile


def build_auth(profiles=None, storage=None, clock=None):
    profiles = profiles if profiles is not None else FakeProfileRepository()
    users = FakeUserRepository(profiles=profiles)
    storage = storage if storage is not None else FakeSessionStorage()
    clock = clock or FakeClock()
    sessions = SessionManager(storage, secret_key='test-secret', clock=clock)
    auth = AuthService(
        users=users,
        profiles=profiles,
        credentials=CredentialStore(rounds=4),
        sessions=sessions,
        profile_retry_delay=0,
    )
    return auth, users, profiles, storage, clock


class AuthServiceTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.auth, self.users, self.profiles, self.storage, self.clock = build_auth()


class TestSignUp(AuthServiceTestCase):
    async def test_sign_up_defaults_username(self):
        """Registering without a username derives one from the phone number."""
        result = await self.auth.sign_up(PHONE, PASSWORD)

        self.assertTrue(result.ok)
        user = result.value
        self.assertEqual(user.username, 'user_0000')
        self.assertEqual(user.full_name, '')
        self.assertTrue(self.auth.is_authenticated)
        self.assertEqual(self.auth.current_user_id, user.id)
        self.assertEqual(self.auth.profile.username, 'user_0000')
        self.assertEqual(self.auth.session.expires_at, T0 + timedelta(days=7))
        self.assertIn(SESSION_STORAGE_KEY, self.storage.store)

    async def test_sign_up_stores_hash_not_password(self):
        user = (await self.auth.sign_up(PHONE, PASSWORD)).value

        stored = self.users.store[user.id].password_hash
        self.assertNotEqual(stored, PASSWORD)
        self.assertTrue(stored.startswith('$2b$'))

    async def test_sign_up_with_username_and_full_name(self):
        user = (await self.auth.sign_up(PHONE, PASSWORD, username='  neo ', full_name='Thomas A.')).value

        self.assertEqual(user.username, 'neo')
        self.assertEqual(user.full_name, 'Thomas A.')

    async def test_phone_format(self):
        """Only 11-digit numbers starting with 1 and a 3-9 digit are accepted."""
        for phone in ('1380000000', '138000000000', '12800000000', '23800000000', '1380000000a',
                      '138' + '\uff10' * 8):
            result = await self.auth.sign_up(phone, PASSWORD)
            self.assertIsInstance(result.error, ValidationError, phone)
        self.assertTrue((await self.auth.sign_up('19999999999', PASSWORD)).ok)

    async def test_password_length(self):
        self.assertIsInstance((await self.auth.sign_up(PHONE, '12345')).error, ValidationError)
        self.assertIsInstance((await self.auth.sign_up(PHONE, 'x' * 73)).error, ValidationError)
        self.assertTrue((await self.auth.sign_up(PHONE, '123456')).ok)

    async def test_duplicate_phone(self):
        await self.auth.sign_up(PHONE, PASSWORD)

        result = await self.auth.sign_up(PHONE, 'another1', username='someone')

        self.assertIsInstance(result.error, ConflictError)
        self.assertEqual(len(self.users.store), 1)

    async def test_duplicate_username(self):
        await self.auth.sign_up(PHONE, PASSWORD, username='neo')

        result = await self.auth.sign_up('13900000000', PASSWORD, username='neo')

        self.assertIsInstance(result.error, ConflictError)

    async def test_profile_appears_on_retry(self):
        """A profile missing on the first read is picked up by the single retry."""
        profiles = LateProfileRepository()
        auth, *_ = build_auth(profiles=profiles)

        result = await auth.sign_up(PHONE, PASSWORD)

        self.assertTrue(result.ok)
        self.assertEqual(profiles.lookups, 2)
        self.assertIsNotNone(auth.profile)

    async def test_profile_missing_then_refreshed(self):
        """Sign-up still succeeds when the profile row lags; refresh_profile fills it in."""
        profiles = FakeProfileRepository(auto_create=False)
        auth, *_ = build_auth(profiles=profiles)

        result = await auth.sign_up(PHONE, PASSWORD)
        self.assertTrue(result.ok)
        self.assertIsNone(auth.profile)

        profiles.release_pending()
        refreshed = await auth.refresh_profile()

        self.assertTrue(refreshed.ok)
        self.assertEqual(auth.profile.username, 'user_0000')

    async def test_hash_failure_is_remote_error(self):
        self.auth.credentials.hash = AsyncMock(side_effect=RemoteError("Failed to secure password"))

        result = await self.auth.sign_up(PHONE, PASSWORD)

        self.assertIsInstance(result.error, RemoteError)
        self.assertFalse(self.auth.is_authenticated)

    async def test_session_write_failure_keeps_account_usable(self):
        """An unwritable session store still signs the new user in, without persisting."""
        self.storage.set = AsyncMock(side_effect=RemoteError("Failed to write session storage"))

        result = await self.auth.sign_up(PHONE, PASSWORD)

        self.assertTrue(result.ok, result.error)
        self.assertEqual(len(self.users.store), 1)
        self.assertTrue(self.auth.is_authenticated)
        self.assertTrue(self.auth.sessions.token_matches(self.auth.session))
        self.assertNotIn(SESSION_STORAGE_KEY, self.storage.store)
        await self.auth.require_user()

    async def test_account_from_unpersisted_sign_up_can_sign_in(self):
        self.storage.set = AsyncMock(side_effect=RemoteError("Failed to write session storage"))
        await self.auth.sign_up(PHONE, PASSWORD)
        await self.auth.sign_out()

        result = await self.auth.sign_in(PHONE, PASSWORD)

        self.assertTrue(result.ok, result.error)

    async def test_unexpected_error_is_generic_remote_error(self):
        self.users.get_by_phone = AsyncMock(side_effect=RuntimeError('socket closed'))

        result = await self.auth.sign_up(PHONE, PASSWORD)

        self.assertIsInstance(result.error, RemoteError)
        self.assertEqual(result.error.message, UNEXPECTED_ERROR_MESSAGE)


class TestSignIn(AuthServiceTestCase):
    async def asyncSetUp(self):
        self.registered = (await self.auth.sign_up(PHONE, PASSWORD)).value
        await self.auth.sign_out()

    async def test_sign_in_updates_last_login(self):
        result = await self.auth.sign_in(PHONE, PASSWORD)

        self.assertTrue(result.ok)
        self.assertEqual(result.value.last_login, T0)
        self.assertEqual(self.users.store[self.registered.id].last_login, T0)
        self.assertEqual(self.auth.current_user_id, self.registered.id)
        self.assertIsNotNone(self.auth.profile)

    async def test_wrong_password_and_unknown_phone_look_alike(self):
        wrong = await self.auth.sign_in(PHONE, 'wrong-password')
        unknown = await self.auth.sign_in('13900000000', PASSWORD)

        self.assertIsInstance(wrong.error, AuthError)
        self.assertIsInstance(unknown.error, AuthError)
        self.assertEqual(wrong.error.message, INVALID_CREDENTIALS)
        self.assertEqual(unknown.error.message, INVALID_CREDENTIALS)
        self.assertFalse(self.auth.is_authenticated)

    async def test_inactive_account_rejected(self):
        self.users.store[self.registered.id].is_active = False

        result = await self.auth.sign_in(PHONE, PASSWORD)

        self.assertEqual(result.error.message, INVALID_CREDENTIALS)

    async def test_invalid_phone_is_validation_error(self):
        result = await self.auth.sign_in('12345', PASSWORD)
        self.assertIsInstance(result.error, ValidationError)

    async def test_last_login_failure_does_not_block(self):
        self.users.update_last_login = AsyncMock(side_effect=RemoteError("write failed"))

        result = await self.auth.sign_in(PHONE, PASSWORD)

        self.assertTrue(result.ok)
        self.assertTrue(self.auth.is_authenticated)


class TestSignOut(AuthServiceTestCase):
    async def test_sign_out_clears_identity_and_storage(self):
        await self.auth.sign_up(PHONE, PASSWORD)

        result = await self.auth.sign_out()

        self.assertTrue(result.ok)
        self.assertFalse(self.auth.is_authenticated)
        self.assertIsNone(self.auth.profile)
        self.assertNotIn(SESSION_STORAGE_KEY, self.storage.store)

    async def test_sign_out_notifies_listeners(self):
        seen = []

        async def listener(user):
            seen.append(user.id if user else None)

        self.auth.add_listener(listener)
        user = (await self.auth.sign_up(PHONE, PASSWORD)).value
        await self.auth.sign_out()

        self.assertEqual(seen, [user.id, None])

    async def test_sign_out_survives_storage_failure(self):
        await self.auth.sign_up(PHONE, PASSWORD)
        self.storage.delete = AsyncMock(side_effect=RemoteError("disk full"))

        result = await self.auth.sign_out()

        self.assertTrue(result.ok)
        self.assertFalse(self.auth.is_authenticated)

    async def test_sign_out_when_signed_out(self):
        self.assertTrue((await self.auth.sign_out()).ok)

    async def test_failing_listener_does_not_break_sign_out(self):
        self.auth.add_listener(AsyncMock(side_effect=RuntimeError('listener bug')))
        await self.auth.sign_up(PHONE, PASSWORD)

        self.assertTrue((await self.auth.sign_out()).ok)


class TestInitialize(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.storage = FakeSessionStorage()
        self.clock = FakeClock()
        first, self.users, self.profiles, _, _ = build_auth(storage=self.storage, clock=self.clock)
        self.user = (await first.sign_up(PHONE, PASSWORD)).value

    def restart(self):
        """A fresh client process sharing the persisted storage and identity store."""
        sessions = SessionManager(self.storage, secret_key='test-secret', clock=self.clock)
        return AuthService(
            users=self.users,
            profiles=self.profiles,
            credentials=CredentialStore(rounds=4),
            sessions=sessions,
            profile_retry_delay=0,
        )

    async def test_restores_session(self):
        auth = self.restart()

        result = await auth.initialize()

        self.assertTrue(result.ok)
        self.assertEqual(result.value.id, self.user.id)
        self.assertEqual(auth.current_user_id, self.user.id)
        self.assertIsNotNone(auth.profile)

    async def test_nothing_persisted(self):
        self.storage.store.clear()
        auth = self.restart()

        result = await auth.initialize()

        self.assertTrue(result.ok)
        self.assertIsNone(result.value)

    async def test_expired_session_is_cleared(self):
        self.clock.now = T0 + timedelta(days=7, seconds=1)
        auth = self.restart()

        result = await auth.initialize()

        self.assertIsNone(result.value)
        self.assertFalse(auth.is_authenticated)
        self.assertNotIn(SESSION_STORAGE_KEY, self.storage.store)

    async def test_tampered_user_id_is_rejected(self):
        """Pointing a stored descriptor at another user does not sign in as that user."""
        other = (await self.restart().sign_up(OTHER_PHONE, PASSWORD)).value
        self.assertIsNotNone(other)
        blob = json.loads(self.storage.store[SESSION_STORAGE_KEY])
        blob['userId'] = self.user.id
        self.storage.store[SESSION_STORAGE_KEY] = json.dumps(blob)
        auth = self.restart()

        result = await auth.initialize()

        self.assertIsNone(result.value)
        self.assertNotEqual(auth.current_user_id, other.id)
        self.assertNotIn(SESSION_STORAGE_KEY, self.storage.store)

    async def test_inactive_user_is_rejected(self):
        self.users.store[self.user.id].is_active = False
        auth = self.restart()

        result = await auth.initialize()

        self.assertIsNone(result.value)
        self.assertNotIn(SESSION_STORAGE_KEY, self.storage.store)

    async def test_store_failure_clears_and_fails(self):
        self.users.get_by_id = AsyncMock(side_effect=RemoteError("Database unavailable"))
        auth = self.restart()

        result = await auth.initialize()

        self.assertIsInstance(result.error, RemoteError)
        self.assertFalse(auth.is_authenticated)


class TestRequireUser(AuthServiceTestCase):
    async def test_not_signed_in(self):
        with self.assertRaises(AuthError):
            await self.auth.require_user()

    async def test_expired_session_drops_identity(self):
        seen = []

        async def listener(user):
            seen.append(user)

        await self.auth.sign_up(PHONE, PASSWORD)
        self.auth.add_listener(listener)
        self.clock.now = T0 + timedelta(days=8)

        with self.assertRaises(AuthError):
            await self.auth.require_user()

        self.assertFalse(self.auth.is_authenticated)
        self.assertEqual(seen, [None])


class TestUpdateProfile(AuthServiceTestCase):
    async def asyncSetUp(self):
        self.user = (await self.auth.sign_up(PHONE, PASSWORD)).value

    async def test_requires_sign_in(self):
        await self.auth.sign_out()

        result = await self.auth.update_profile(ProfileUpdate(bio='hello'))

        self.assertIsInstance(result.error, AuthError)

    async def test_updates_user_and_profile(self):
        result = await self.auth.update_profile(
            ProfileUpdate(username='neo', full_name='Thomas A.', bio='hello')
        )

        self.assertTrue(result.ok)
        self.assertEqual(self.auth.user.username, 'neo')
        self.assertEqual(self.auth.user.full_name, 'Thomas A.')
        self.assertEqual(self.auth.profile.username, 'neo')
        self.assertEqual(self.auth.profile.bio, 'hello')
        self.assertEqual(self.users.store[self.user.id].username, 'neo')

    async def test_bio_only_leaves_user_record(self):
        await self.auth.update_profile(ProfileUpdate(bio='hello'))

        self.assertEqual(self.users.store[self.user.id].username, 'user_0000')
        self.assertEqual(self.profiles.store[self.user.id].bio, 'hello')

    async def test_none_clears_bio_and_avatar(self):
        await self.auth.update_profile(ProfileUpdate(bio='hello', avatar_url='http://x/a.png'))

        result = await self.auth.update_profile(ProfileUpdate(bio=None, avatar_url=None))

        self.assertTrue(result.ok, result.error)
        self.assertIsNone(self.profiles.store[self.user.id].bio)
        self.assertIsNone(self.auth.profile.avatar_url)

    async def test_absent_fields_are_untouched(self):
        await self.auth.update_profile(ProfileUpdate(bio='hello', full_name='Thomas A.'))

        await self.auth.update_profile(ProfileUpdate(avatar_url='http://x/a.png'))

        self.assertEqual(self.auth.profile.bio, 'hello')
        self.assertEqual(self.auth.user.full_name, 'Thomas A.')

    async def test_null_username_or_full_name_rejected(self):
        for update in (ProfileUpdate(username=None), ProfileUpdate(full_name=None)):
            result = await self.auth.update_profile(update)
            self.assertIsInstance(result.error, ValidationError)
        self.assertEqual(self.auth.user.username, 'user_0000')

    async def test_username_taken(self):
        await self.users.create(phone='13900000000', password_hash='x', username='taken')

        result = await self.auth.update_profile(ProfileUpdate(username='taken'))

        self.assertIsInstance(result.error, ConflictError)
        self.assertEqual(self.auth.user.username, 'user_0000')

    async def test_keeping_own_username_is_fine(self):
        result = await self.auth.update_profile(ProfileUpdate(username='user_0000', bio='x'))
        self.assertTrue(result.ok)

    async def test_blank_username(self):
        result = await self.auth.update_profile(ProfileUpdate(username='   '))
        self.assertIsInstance(result.error, ValidationError)


if __name__ == '__main__':
    unittest.main()
