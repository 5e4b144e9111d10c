"""In-memory implementation of FavoriteRepository for testing."""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

from domain.model.errors import ConflictError
from domain.model.favorite import Favorite


class FakeFavoriteRepository:
    def __init__(self, latency: float = 0.0):
        self.store: dict[str, Favorite] = {}
        # simulated round-trip, lets tests overlap concurrent calls
        self.latency = latency
        self._last_created: datetime | None = None

    async def _round_trip(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)

    async def add(self, user_id: str, prompt_id: str) -> Favorite:
        await self._round_trip()
        if any(f.user_id == user_id and f.prompt_id == prompt_id for f in self.store.values()):
            raise ConflictError("Prompt is already in favorites")

        now = datetime.now(timezone.utc)
        if self._last_created and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now

        favorite = Favorite(id=uuid.uuid4().hex, user_id=user_id, prompt_id=prompt_id, created_at=now)
        self.store[favorite.id] = favorite
        return favorite

    async def remove(self, user_id: str, prompt_id: str) -> bool:
        await self._round_trip()
        for fav_id, fav in list(self.store.items()):
            if fav.user_id == user_id and fav.prompt_id == prompt_id:
                del self.store[fav_id]
                return True
        return False

    async def find_by_user(self, user_id: str) -> list[Favorite]:
        await self._round_trip()
        results = [f for f in self.store.values() if f.user_id == user_id]
        return sorted(results, key=lambda f: f.created_at, reverse=True)

    def drop_prompt(self, prompt_id: str) -> None:
        """Cascade hook used by FakePromptRepository.delete."""
        for fav_id, fav in list(self.store.items()):
            if fav.prompt_id == prompt_id:
                del self.store[fav_id]
