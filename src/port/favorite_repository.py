from typing import Protocol

from domain.model.favorite import Favorite


class FavoriteRepository(Protocol):
    """Protocol defining the interface for favorite rows."""

    async def add(self, user_id: str, prompt_id: str) -> Favorite:
        """Insert a favorite. Raises ConflictError if the pair already exists."""
        ...

    async def remove(self, user_id: str, prompt_id: str) -> bool:
        """Delete the favorite for the pair. Return True if a row was removed."""
        ...

    async def find_by_user(self, user_id: str) -> list[Favorite]:
        """Favorites of a user, newest first."""
        ...
