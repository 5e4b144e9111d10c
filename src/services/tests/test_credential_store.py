"""Unit tests for CredentialStore."""

import sys
import unittest
from pathlib import Path
from unittest.mock import patch

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from domain.model.errors import RemoteError
from services.credential_store import BCRYPT_ROUNDS, CredentialStore


class TestCredentialStore(unittest.IsolatedAsyncioTestCase):
    """Test hashing and verification."""

    def setUp(self):
        # Low cost factor keeps the suite fast
        self.store = CredentialStore(rounds=4)

    async def test_hash_then_verify(self):
        """A hash verifies against its own password only."""
        hashed = await self.store.hash('secret1')

        self.assertNotEqual(hashed, 'secret1')
        self.assertTrue(await self.store.verify('secret1', hashed))
        self.assertFalse(await self.store.verify('secret2', hashed))

    async def test_hash_is_salted(self):
        """Hashing the same password twice gives different strings."""
        first = await self.store.hash('secret1')
        second = await self.store.hash('secret1')

        self.assertNotEqual(first, second)
        self.assertTrue(await self.store.verify('secret1', second))

    async def test_hash_embeds_cost_factor(self):
        hashed = await self.store.hash('secret1')
        self.assertTrue(hashed.startswith('$2b$04$'))

    def test_default_rounds(self):
        self.assertEqual(BCRYPT_ROUNDS, 12)
        self.assertEqual(CredentialStore().rounds, 12)

    async def test_verify_missing_hash(self):
        """Accounts without a stored hash never verify."""
        self.assertFalse(await self.store.verify('secret1', None))
        self.assertFalse(await self.store.verify('secret1', ''))

    async def test_verify_malformed_hash(self):
        self.assertFalse(await self.store.verify('secret1', 'not-a-bcrypt-hash'))

    async def test_hash_failure_is_remote_error(self):
        with patch('services.credential_store.bcrypt.hashpw', side_effect=RuntimeError('boom')):
            with self.assertRaises(RemoteError):
                await self.store.hash('secret1')


if __name__ == '__main__':
    unittest.main()
