# domain/model/prompt.py

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any

from domain.model.errors import ValidationError


class Category(str, Enum):
    """Catalog sections a prompt can belong to."""
    ECOMMERCE = 'ecommerce'
    EDUCATION = 'education'
    FINANCE = 'finance'
    IMAGE = 'image'
    VIDEO = 'video'


class Difficulty(str, Enum):
    BEGINNER = 'beginner'
    INTERMEDIATE = 'intermediate'
    ADVANCED = 'advanced'


class _Unset:
    """Marker for update-struct fields the caller did not provide."""

    def __repr__(self) -> str:
        return 'UNSET'

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

SORTABLE_FIELDS = ('created_at', 'updated_at', 'title', 'usage_count', 'like_count')
SEARCH_FIELDS = ('title', 'description', 'content')


def _coerce(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field_name} '{value}' (expected one of: {allowed})")


def parse_category(value: Category | str | None) -> Category | None:
    """Coerce a category name. Empty/None means no category. Raises ValidationError."""
    return _coerce(Category, value or None, 'category')


def parse_difficulty(value: Difficulty | str | None) -> Difficulty | None:
    return _coerce(Difficulty, value or None, 'difficulty')


# ── Prompt Domain Model ──────────────────────────────────


@dataclass
class Prompt:
    """Domain model representing a shared prompt record."""
    id: str
    title: str
    content: str
    category: Category
    author_id: str | None
    created_at: datetime
    updated_at: datetime

    description: str | None = None
    is_public: bool = True
    is_featured: bool = False
    usage_count: int = 0
    like_count: int = 0
    usage_instructions: str | None = None
    example_output: str | None = None
    difficulty: Difficulty | None = None

    def is_owned_by(self, user_id: str) -> bool:
        return self.author_id == user_id


# ── Write models ─────────────────────────────────────────


@dataclass(frozen=True)
class PromptDraft:
    """Fields supplied when creating a prompt. Author and counters are set by the service."""
    title: str
    content: str
    category: Category
    description: str | None = None
    is_public: bool = True
    is_featured: bool = False
    usage_instructions: str | None = None
    example_output: str | None = None
    difficulty: Difficulty | None = None

    def normalized(self) -> 'PromptDraft':
        """Return a copy with enum fields coerced. Raises ValidationError."""
        if not self.title or not self.title.strip():
            raise ValidationError("Title is required")
        if not self.content or not self.content.strip():
            raise ValidationError("Content is required")
        return replace(
            self,
            category=_coerce(Category, self.category, 'category'),
            difficulty=_coerce(Difficulty, self.difficulty, 'difficulty'),
        )


@dataclass(frozen=True)
class PromptUpdate:
    """Partial prompt update.

    A field left as UNSET is not touched. Any other value, including None
    for nullable fields, overwrites the stored value.
    """
    title: Any = UNSET
    content: Any = UNSET
    description: Any = UNSET
    category: Any = UNSET
    is_public: Any = UNSET
    is_featured: Any = UNSET
    usage_instructions: Any = UNSET
    example_output: Any = UNSET
    difficulty: Any = UNSET

    def changes(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def normalized(self) -> 'PromptUpdate':
        """Return a copy with enum fields coerced. Raises ValidationError."""
        changes = self.changes()
        for name in ('title', 'content'):
            if name in changes and (changes[name] is None or not str(changes[name]).strip()):
                raise ValidationError(f"{name.capitalize()} cannot be empty")
        if 'category' in changes:
            if changes['category'] is None:
                raise ValidationError("Category cannot be empty")
            changes['category'] = _coerce(Category, changes['category'], 'category')
        if 'difficulty' in changes:
            changes['difficulty'] = _coerce(Difficulty, changes['difficulty'], 'difficulty')
        return replace(self, **changes)


# ── Read models ──────────────────────────────────────────


@dataclass(frozen=True)
class SearchFilters:
    """Caller-facing filters for catalog search."""
    category: Category | str | None = None
    difficulty: Difficulty | str | None = None
    sort_by: str = 'created_at'
    sort_order: str = 'desc'


@dataclass(frozen=True)
class PromptQuery:
    """Store-agnostic description of a prompt listing query.

    Repositories translate it into their own filter language.
    `search` is a case-insensitive substring matched against title,
    description or content.
    """
    public_only: bool = False
    featured_only: bool = False
    category: Category | None = None
    difficulty: Difficulty | None = None
    author_id: str | None = None
    search: str | None = None
    sort_by: str = 'created_at'
    descending: bool = True
    limit: int | None = None
