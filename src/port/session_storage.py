"""Session storage port: client-side key/value persistence for the session blob."""

from typing import Protocol


class SessionStorage(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None:
        """Remove `key`. Removing a missing key is not an error."""
        ...
