"""Unit tests for SessionManager."""

import json
import sys
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from adapter.fake.session_storage import FakeSessionStorage
from domain.model.session import SessionDescriptor
from services.session_manager import SESSION_STORAGE_KEY, SessionManager

SECRET = 'test-secret-key'
T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class TestSessionManager(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.storage = FakeSessionStorage()
        self.clock = FakeClock()
        self.sessions = SessionManager(self.storage, secret_key=SECRET, clock=self.clock)

    def test_requires_secret(self):
        with self.assertRaises(ValueError):
            SessionManager(self.storage, secret_key='')

    async def test_issue_persists_descriptor(self):
        """issue() writes the blob and expires seven days later."""
        descriptor = await self.sessions.issue('user-1')

        self.assertEqual(descriptor.user_id, 'user-1')
        self.assertEqual(descriptor.expires_at, T0 + timedelta(days=7))
        blob = json.loads(self.storage.store[SESSION_STORAGE_KEY])
        self.assertEqual(blob['userId'], 'user-1')
        self.assertEqual(blob['sessionToken'], descriptor.token)

    def test_create_does_not_persist(self):
        descriptor = self.sessions.create('user-1')

        self.assertTrue(self.sessions.token_matches(descriptor))
        self.assertEqual(self.storage.store, {})

    async def test_tokens_are_unique(self):
        first = await self.sessions.issue('user-1')
        second = await self.sessions.issue('user-1')
        self.assertNotEqual(first.token, second.token)

    async def test_load_returns_issued_descriptor(self):
        issued = await self.sessions.issue('user-1')
        self.assertEqual(await self.sessions.load(), issued)

    async def test_load_without_session(self):
        self.assertIsNone(await self.sessions.load())

    async def test_load_clears_corrupt_blob(self):
        """A blob that does not parse is removed and reported as no session."""
        self.storage.store[SESSION_STORAGE_KEY] = '{"userId": "user-1"'

        self.assertIsNone(await self.sessions.load())
        self.assertNotIn(SESSION_STORAGE_KEY, self.storage.store)

    async def test_load_clears_incomplete_blob(self):
        self.storage.store[SESSION_STORAGE_KEY] = json.dumps({'userId': 'user-1'})

        self.assertIsNone(await self.sessions.load())
        self.assertNotIn(SESSION_STORAGE_KEY, self.storage.store)

    async def test_validate_around_expiry(self):
        """Valid one second before expiry, invalid one second after."""
        descriptor = await self.sessions.issue('user-1')

        self.clock.advance(timedelta(days=7) - timedelta(seconds=1))
        self.assertTrue(self.sessions.validate(descriptor))

        self.clock.advance(timedelta(seconds=2))
        self.assertFalse(self.sessions.validate(descriptor))

    async def test_token_matches_own_token(self):
        descriptor = await self.sessions.issue('user-1')
        self.assertTrue(self.sessions.token_matches(descriptor))

    async def test_token_matches_ignores_expiry(self):
        descriptor = await self.sessions.issue('user-1')
        self.clock.advance(timedelta(days=30))
        self.assertTrue(self.sessions.token_matches(descriptor))

    async def test_token_rejected_for_other_user(self):
        """A token copied into another user's descriptor does not match."""
        descriptor = await self.sessions.issue('user-1')
        forged = SessionDescriptor('user-2', descriptor.token, descriptor.expires_at)
        self.assertFalse(self.sessions.token_matches(forged))

    async def test_token_rejected_for_other_secret(self):
        descriptor = await self.sessions.issue('user-1')
        other = SessionManager(self.storage, secret_key='another-secret', clock=self.clock)
        self.assertFalse(other.token_matches(descriptor))

    def test_token_rejected_when_garbage(self):
        descriptor = SessionDescriptor('user-1', 'not-a-token', T0 + timedelta(days=1))
        self.assertFalse(self.sessions.token_matches(descriptor))

    async def test_clear_is_idempotent(self):
        await self.sessions.issue('user-1')

        await self.sessions.clear()
        await self.sessions.clear()

        self.assertIsNone(await self.sessions.load())


if __name__ == '__main__':
    unittest.main()
