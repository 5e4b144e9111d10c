"""Port definition for PromptRepository."""

from typing import Protocol

from domain.model.prompt import Prompt, PromptDraft, PromptQuery


class PromptRepository(Protocol):
    async def create(self, draft: PromptDraft, author_id: str) -> Prompt: ...

    async def get_by_id(self, prompt_id: str) -> Prompt | None: ...

    async def get_many(self, prompt_ids: list[str]) -> list[Prompt]:
        """Fetch the prompts that exist among `prompt_ids`, in no particular order."""
        ...

    async def find(self, query: PromptQuery) -> list[Prompt]: ...

    async def update(self, prompt_id: str, changes: dict) -> Prompt | None:
        """Apply field changes and stamp updated_at. Return None if absent."""
        ...

    async def delete(self, prompt_id: str) -> bool:
        """Delete a prompt. Dependent prompt_tags and favorites rows go with it."""
        ...
