"""Tag normalization: maps free-text labels to shared tag rows."""

import logging

from domain.model.errors import DomainError, ValidationError
from domain.model.tag import DEFAULT_TAG_COLOR, Tag
from port.tag_repository import TagRepository

logger = logging.getLogger(__name__)


class TagNormalizer:
    def __init__(self, repo: TagRepository):
        self.repo = repo

    async def resolve_tag(self, name: str, color: str = DEFAULT_TAG_COLOR) -> Tag:
        """Return the tag called `name`, creating it if needed.

        Surrounding whitespace is ignored; otherwise names match exactly.
        Creation goes through the store's atomic get-or-create, so concurrent
        callers resolving the same new name share one row.

        Raises:
            ValidationError: blank name
        """
        cleaned = (name or '').strip()
        if not cleaned:
            raise ValidationError("Tag name cannot be empty")
        return await self.repo.get_or_create(cleaned, color)

    async def resolve(self, name: str, color: str = DEFAULT_TAG_COLOR) -> str:
        """Return the id of the tag called `name`, creating it if needed."""
        tag = await self.resolve_tag(name, color)
        return tag.id

    async def resolve_many(self, names: list[str], color: str = DEFAULT_TAG_COLOR) -> list[str]:
        """Resolve each distinct name in order. A name that fails is logged and skipped."""
        tag_ids: list[str] = []
        seen: set[str] = set()
        for name in names:
            key = (name or '').strip()
            if key in seen:
                continue
            seen.add(key)
            try:
                tag_id = await self.resolve(name, color)
            except DomainError as e:
                logger.warning("Skipping tag", extra={"tag": name, "error": e.message})
                continue
            if tag_id not in tag_ids:
                tag_ids.append(tag_id)
        return tag_ids
