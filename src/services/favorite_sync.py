"""Favorite sync: the signed-in user's favorites, cached client-side.

The cache is reloaded whenever the identity changes (emptied on sign-out)
and is only touched after the remote store confirms a write.
"""

import logging

from domain.model.favorite import Favorite
from domain.model.user import User
from port.favorite_repository import FavoriteRepository
from services.auth_service import AuthService
from services.boundary import service_boundary
from utils.keyed_lock import KeyedLock

logger = logging.getLogger(__name__)


class FavoriteSync:
    def __init__(self, repo: FavoriteRepository, auth: AuthService):
        self.repo = repo
        self.auth = auth
        self._cache: list[Favorite] = []
        self._mutations = KeyedLock()
        auth.add_listener(self.on_identity_changed)

    @property
    def favorites(self) -> list[Favorite]:
        return list(self._cache)

    async def on_identity_changed(self, user: User | None) -> None:
        if user is None:
            self._cache = []
            return
        result = await self.fetch_favorites()
        if not result.ok:
            logger.warning("Failed to load favorites", extra={"userId": user.id, "error": result.error.message})

    @service_boundary("favorites.fetch")
    async def fetch_favorites(self) -> list[Favorite]:
        """Replace the cache with the remote favorites of the current user."""
        user_id = self.auth.current_user_id
        if user_id is None:
            self._cache = []
            return []
        favorites = await self.repo.find_by_user(user_id)
        # identity may have changed while we were waiting
        if self.auth.current_user_id == user_id:
            self._cache = favorites
        return list(favorites)

    def is_favorited(self, prompt_id: str) -> bool:
        """Cache-only membership test."""
        return any(f.prompt_id == prompt_id for f in self._cache)

    @service_boundary("favorites.add")
    async def add_to_favorites(self, prompt_id: str) -> None:
        user = await self.auth.require_user()
        async with self._mutations.hold((user.id, prompt_id)):
            # the store's unique (user_id, prompt_id) index rejects repeats
            favorite = await self.repo.add(user.id, prompt_id)
            if self.auth.current_user_id == user.id:
                self._cache.append(favorite)
        logger.info("Favorite added", extra={"userId": user.id, "promptId": prompt_id})

    @service_boundary("favorites.remove")
    async def remove_from_favorites(self, prompt_id: str) -> None:
        user = await self.auth.require_user()
        async with self._mutations.hold((user.id, prompt_id)):
            removed = await self.repo.remove(user.id, prompt_id)
            if self.auth.current_user_id == user.id:
                self._cache = [f for f in self._cache if f.prompt_id != prompt_id]
        if removed:
            logger.info("Favorite removed", extra={"userId": user.id, "promptId": prompt_id})
        else:
            logger.debug("Favorite already absent", extra={"userId": user.id, "promptId": prompt_id})
