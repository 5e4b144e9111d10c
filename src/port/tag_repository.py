"""Port for tag rows and prompt/tag associations."""

from typing import Protocol

from domain.model.tag import PromptTag, Tag


class TagRepository(Protocol):
    async def get_or_create(self, name: str, color: str) -> Tag:
        """Return the tag named `name`, inserting it with `color` if absent.

        Must be atomic: concurrent callers with the same new name all get
        the same row.
        """
        ...

    async def list_tags(self, prompt_id: str | None = None) -> list[Tag]:
        """Tags linked to `prompt_id`, or every tag when it is None."""
        ...

    async def link(self, prompt_id: str, tag_id: str) -> PromptTag:
        """Associate a tag with a prompt. Linking an existing pair returns the existing row."""
        ...

    async def unlink(self, prompt_id: str, tag_id: str) -> bool: ...

    async def unlink_all(self, prompt_id: str) -> int:
        """Remove every association of `prompt_id`. Return the number removed."""
        ...
