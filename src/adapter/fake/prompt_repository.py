"""In-memory implementation of PromptRepository for testing."""

from __future__ import annotations

import uuid
from dataclasses import asdict, replace
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from domain.model.prompt import SEARCH_FIELDS, Prompt, PromptDraft, PromptQuery

if TYPE_CHECKING:
    from adapter.fake.favorite_repository import FakeFavoriteRepository
    from adapter.fake.tag_repository import FakeTagRepository


class FakePromptRepository:
    """Prompt store. Pass the tag/favorite fakes to get the store's delete cascade."""

    def __init__(
        self,
        tags: FakeTagRepository | None = None,
        favorites: FakeFavoriteRepository | None = None,
    ):
        self.store: dict[str, Prompt] = {}
        self.tags = tags
        self.favorites = favorites
        self._last_created: datetime | None = None

    def _next_timestamp(self) -> datetime:
        # strictly increasing so newest-first ordering is deterministic
        now = datetime.now(timezone.utc)
        if self._last_created and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now
        return now

    # ── write operations ─────────────────────────────────────

    async def create(self, draft: PromptDraft, author_id: str) -> Prompt:
        now = self._next_timestamp()
        prompt = Prompt(
            id=uuid.uuid4().hex,
            author_id=author_id,
            created_at=now,
            updated_at=now,
            **asdict(draft),
        )
        self.store[prompt.id] = prompt
        return replace(prompt)

    async def update(self, prompt_id: str, changes: dict) -> Prompt | None:
        prompt = self.store.get(prompt_id)
        if not prompt:
            return None
        updated = replace(prompt, **changes, updated_at=datetime.now(timezone.utc))
        self.store[prompt_id] = updated
        return replace(updated)

    async def delete(self, prompt_id: str) -> bool:
        if prompt_id not in self.store:
            return False
        del self.store[prompt_id]
        if self.tags is not None:
            await self.tags.unlink_all(prompt_id)
        if self.favorites is not None:
            self.favorites.drop_prompt(prompt_id)
        return True

    # ── read operations ──────────────────────────────────────

    async def get_by_id(self, prompt_id: str) -> Prompt | None:
        prompt = self.store.get(prompt_id)
        return replace(prompt) if prompt else None

    async def get_many(self, prompt_ids: list[str]) -> list[Prompt]:
        return [replace(self.store[pid]) for pid in prompt_ids if pid in self.store]

    async def find(self, query: PromptQuery) -> list[Prompt]:
        results = list(self.store.values())
        if query.public_only:
            results = [p for p in results if p.is_public]
        if query.featured_only:
            results = [p for p in results if p.is_featured]
        if query.category:
            results = [p for p in results if p.category == query.category]
        if query.difficulty:
            results = [p for p in results if p.difficulty == query.difficulty]
        if query.author_id:
            results = [p for p in results if p.author_id == query.author_id]
        if query.search:
            needle = query.search.lower()
            results = [
                p for p in results
                if any(needle in (getattr(p, f) or '').lower() for f in SEARCH_FIELDS)
            ]

        results.sort(key=lambda p: getattr(p, query.sort_by), reverse=query.descending)
        if query.limit:
            results = results[:query.limit]
        return [replace(p) for p in results]
