"""Unit tests for the prompt, profile and session domain models.

Tests focus on behavior other components rely on:
- Category/Difficulty string to enum conversion (used by _to_domain adapters)
- PromptUpdate present/absent semantics (used by CatalogService.update_prompt)
- SessionDescriptor blob round trip (used by SessionManager.load)
"""

import unittest
from datetime import datetime, timedelta, timezone

from domain.model.errors import ValidationError
from domain.model.prompt import (
    UNSET,
    Category,
    Difficulty,
    PromptDraft,
    PromptUpdate,
    parse_category,
    parse_difficulty,
)
from domain.model.session import SessionDescriptor
from domain.model.user import ProfileUpdate


class TestCategory(unittest.TestCase):
    def test_category_is_string_enum(self):
        """Category compares equal to its stored string value."""
        self.assertEqual(Category.FINANCE, 'finance')
        self.assertEqual(Category('video'), Category.VIDEO)

    def test_parse_category_accepts_names_and_members(self):
        self.assertEqual(parse_category('image'), Category.IMAGE)
        self.assertEqual(parse_category(Category.IMAGE), Category.IMAGE)

    def test_parse_category_empty_means_none(self):
        self.assertIsNone(parse_category(None))
        self.assertIsNone(parse_category(''))

    def test_parse_category_rejects_unknown(self):
        with self.assertRaises(ValidationError):
            parse_category('sports')

    def test_parse_difficulty(self):
        self.assertEqual(parse_difficulty('advanced'), Difficulty.ADVANCED)
        with self.assertRaises(ValidationError):
            parse_difficulty('expert')


class TestPromptUpdate(unittest.TestCase):
    def test_empty_update_has_no_changes(self):
        self.assertEqual(PromptUpdate().changes(), {})

    def test_unset_is_falsy_and_distinct_from_none(self):
        self.assertFalse(UNSET)
        self.assertIsNot(UNSET, None)

    def test_only_present_fields_are_changes(self):
        update = PromptUpdate(title='New', description=None)
        self.assertEqual(update.changes(), {'title': 'New', 'description': None})

    def test_normalized_coerces_category(self):
        update = PromptUpdate(category='finance').normalized()
        self.assertIs(update.category, Category.FINANCE)
        self.assertIs(update.title, UNSET)

    def test_normalized_rejects_blank_title(self):
        with self.assertRaises(ValidationError):
            PromptUpdate(title='   ').normalized()

    def test_normalized_rejects_null_category(self):
        with self.assertRaises(ValidationError):
            PromptUpdate(category=None).normalized()


class TestPromptDraft(unittest.TestCase):
    def test_normalized_requires_title_and_content(self):
        with self.assertRaises(ValidationError):
            PromptDraft(title='', content='x', category=Category.IMAGE).normalized()
        with self.assertRaises(ValidationError):
            PromptDraft(title='x', content=' ', category=Category.IMAGE).normalized()

    def test_normalized_coerces_enums(self):
        draft = PromptDraft(title='t', content='c', category='education', difficulty='beginner').normalized()
        self.assertIs(draft.category, Category.EDUCATION)
        self.assertIs(draft.difficulty, Difficulty.BEGINNER)


class TestProfileUpdate(unittest.TestCase):
    def test_user_changes_only_mirror_username_and_full_name(self):
        update = ProfileUpdate(username='neo', bio='hi', avatar_url='http://x/a.png')
        self.assertEqual(update.user_changes(), {'username': 'neo'})
        self.assertEqual(
            update.profile_changes(),
            {'username': 'neo', 'bio': 'hi', 'avatar_url': 'http://x/a.png'},
        )

    def test_none_is_a_change_unset_is_not(self):
        update = ProfileUpdate(bio=None)
        self.assertEqual(update.profile_changes(), {'bio': None})
        self.assertEqual(ProfileUpdate().profile_changes(), {})

    def test_normalized_strips_username(self):
        self.assertEqual(ProfileUpdate(username='  neo ').normalized().username, 'neo')
        self.assertIs(ProfileUpdate(bio='x').normalized().username, UNSET)

    def test_normalized_rejects_null_username_and_full_name(self):
        for update in (ProfileUpdate(username=None), ProfileUpdate(username=' '), ProfileUpdate(full_name=None)):
            with self.assertRaises(ValidationError):
                update.normalized()


class TestSessionDescriptor(unittest.TestCase):
    def test_blob_uses_persisted_key_names(self):
        expires = datetime(2026, 1, 8, tzinfo=timezone.utc)
        blob = SessionDescriptor(user_id='u1', token='t', expires_at=expires).to_dict()
        self.assertEqual(set(blob), {'userId', 'sessionToken', 'expiresAt'})
        self.assertEqual(SessionDescriptor.from_dict(blob).expires_at, expires)

    def test_naive_timestamp_is_read_as_utc(self):
        descriptor = SessionDescriptor.from_dict(
            {'userId': 'u1', 'sessionToken': 't', 'expiresAt': '2026-01-08T00:00:00'}
        )
        self.assertEqual(descriptor.expires_at.tzinfo, timezone.utc)

    def test_is_expired_boundaries(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        past = SessionDescriptor('u1', 't', now - timedelta(seconds=1))
        future = SessionDescriptor('u1', 't', now + timedelta(seconds=1))
        self.assertTrue(past.is_expired(now))
        self.assertFalse(future.is_expired(now))

    def test_from_dict_rejects_missing_keys(self):
        with self.assertRaises(KeyError):
            SessionDescriptor.from_dict({'userId': 'u1'})


if __name__ == '__main__':
    unittest.main()
