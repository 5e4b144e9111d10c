"""Catalog service: browsing, search and authoring of prompts.

Composes PromptQuery objects for the listing operations and keeps tag
associations in step with prompt writes. Writes on the same prompt id are
serialized; everything returns a Result.
"""

import logging

from domain.model.errors import DomainError, NotFoundError, PermissionDeniedError, ValidationError
from domain.model.favorite import UserFavorites
from domain.model.prompt import (
    SORTABLE_FIELDS,
    Prompt,
    PromptDraft,
    PromptQuery,
    PromptUpdate,
    SearchFilters,
    parse_category,
    parse_difficulty,
)
from domain.model.tag import DEFAULT_TAG_COLOR, Tag
from port.favorite_repository import FavoriteRepository
from port.prompt_repository import PromptRepository
from port.tag_repository import TagRepository
from services.auth_service import AuthService
from services.boundary import service_boundary
from services.tag_normalizer import TagNormalizer
from utils.keyed_lock import KeyedLock

logger = logging.getLogger(__name__)

SORT_ORDERS = ('asc', 'desc')


def _limit(limit: int | None) -> int | None:
    if limit is None or limit == 0:
        return None
    if limit < 0:
        raise ValidationError("Limit must be a positive number")
    return limit


class CatalogService:
    def __init__(
        self,
        prompts: PromptRepository,
        tags: TagRepository,
        favorites: FavoriteRepository,
        normalizer: TagNormalizer,
        auth: AuthService,
    ):
        self.prompts = prompts
        self.tags = tags
        self.favorites = favorites
        self.normalizer = normalizer
        self.auth = auth
        self._mutations = KeyedLock()

    # ── helpers ──────────────────────────────────────────────

    async def _owned_prompt(self, prompt_id: str, user_id: str) -> Prompt:
        prompt = await self.prompts.get_by_id(prompt_id)
        if prompt is None:
            raise NotFoundError("Prompt not found")
        if not prompt.is_owned_by(user_id):
            raise PermissionDeniedError("Only the author can modify this prompt")
        return prompt

    async def _link_tags(self, prompt_id: str, names: list[str]) -> None:
        """Resolve and link each tag. One bad tag does not abort the rest."""
        tag_ids = await self.normalizer.resolve_many(names)
        for tag_id in tag_ids:
            try:
                await self.tags.link(prompt_id, tag_id)
            except DomainError as e:
                logger.warning(
                    "Failed to link tag to prompt",
                    extra={"promptId": prompt_id, "tagId": tag_id, "error": e.message},
                )
        logger.debug("Tags linked", extra={"promptId": prompt_id, "count": len(tag_ids)})

    # ── listing ──────────────────────────────────────────────

    @service_boundary("catalog.fetch_prompts")
    async def fetch_prompts(
        self,
        category: str | None = None,
        search: str | None = None,
        limit: int | None = None,
    ) -> list[Prompt]:
        """Public prompts, newest first, optionally by category and substring search."""
        query = PromptQuery(
            public_only=True,
            category=parse_category(category),
            search=search or None,
            limit=_limit(limit),
        )
        return await self.prompts.find(query)

    @service_boundary("catalog.fetch_featured_prompts")
    async def fetch_featured_prompts(self, limit: int | None = None) -> list[Prompt]:
        query = PromptQuery(public_only=True, featured_only=True, limit=_limit(limit))
        return await self.prompts.find(query)

    @service_boundary("catalog.fetch_featured_prompts_by_category")
    async def fetch_featured_prompts_by_category(self, category: str, limit: int | None = None) -> list[Prompt]:
        parsed = parse_category(category)
        if parsed is None:
            raise ValidationError("Category is required")
        query = PromptQuery(public_only=True, featured_only=True, category=parsed, limit=_limit(limit))
        return await self.prompts.find(query)

    @service_boundary("catalog.fetch_prompt_by_id")
    async def fetch_prompt_by_id(self, prompt_id: str) -> Prompt | None:
        """Exact lookup; an absent prompt is a None value, not an error."""
        return await self.prompts.get_by_id(prompt_id)

    @service_boundary("catalog.search_prompts")
    async def search_prompts(self, query: str, filters: SearchFilters | None = None) -> list[Prompt]:
        """Search the curated catalog.

        Only public AND featured prompts are searched, also for a general
        query outside any category page.
        """
        filters = filters or SearchFilters()
        if filters.sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort by '{filters.sort_by}'")
        if filters.sort_order not in SORT_ORDERS:
            raise ValidationError("Sort order must be 'asc' or 'desc'")

        prompt_query = PromptQuery(
            public_only=True,
            featured_only=True,
            category=parse_category(filters.category),
            difficulty=parse_difficulty(filters.difficulty),
            search=query or None,
            sort_by=filters.sort_by,
            descending=filters.sort_order == 'desc',
        )
        return await self.prompts.find(prompt_query)

    @service_boundary("catalog.fetch_user_prompts")
    async def fetch_user_prompts(self, author_id: str) -> list[Prompt]:
        """Everything written by `author_id`, public or not, newest first."""
        if not author_id:
            raise ValidationError("Author id is required")
        prompts = await self.prompts.find(PromptQuery(author_id=author_id))
        logger.debug("Fetched user prompts", extra={"userId": author_id, "count": len(prompts)})
        return prompts

    @service_boundary("catalog.fetch_user_favorites")
    async def fetch_user_favorites(self, user_id: str) -> UserFavorites:
        """Favorites of `user_id` (newest first) joined to their prompts.

        Favorites pointing at deleted prompts stay in `favorites` but have
        no entry in `prompts`.
        """
        if not user_id:
            raise ValidationError("User id is required")
        favorites = await self.favorites.find_by_user(user_id)
        found = await self.prompts.get_many([f.prompt_id for f in favorites])
        by_id = {p.id: p for p in found}
        prompts = [by_id[f.prompt_id] for f in favorites if f.prompt_id in by_id]

        logger.debug(
            "Fetched user favorites",
            extra={"userId": user_id, "favorites": len(favorites), "prompts": len(prompts)},
        )
        return UserFavorites(favorites=favorites, prompts=prompts)

    # ── authoring ────────────────────────────────────────────

    @service_boundary("catalog.create_prompt")
    async def create_prompt(self, draft: PromptDraft, tags: list[str] | None = None) -> Prompt:
        """Create a prompt authored by the signed-in user, then link its tags."""
        user = await self.auth.require_user()
        draft = draft.normalized()

        prompt = await self.prompts.create(draft, author_id=user.id)
        logger.info("Prompt created", extra={"promptId": prompt.id, "userId": user.id})

        if tags:
            await self._link_tags(prompt.id, tags)
        return prompt

    @service_boundary("catalog.update_prompt")
    async def update_prompt(
        self,
        prompt_id: str,
        updates: PromptUpdate | None = None,
        tags: list[str] | None = None,
    ) -> Prompt:
        """Apply scalar updates and optionally replace the tag list.

        tags=None keeps the current associations; tags=[] removes them all;
        any other list replaces them.
        """
        user = await self.auth.require_user()
        updates = (updates or PromptUpdate()).normalized()

        async with self._mutations.hold(prompt_id):
            prompt = await self._owned_prompt(prompt_id, user.id)

            changes = updates.changes()
            if changes:
                prompt = await self.prompts.update(prompt_id, changes)
                if prompt is None:
                    raise NotFoundError("Prompt not found")

            if tags is not None:
                removed = await self.tags.unlink_all(prompt_id)
                logger.debug("Tags cleared", extra={"promptId": prompt_id, "count": removed})
                if tags:
                    await self._link_tags(prompt_id, tags)

        logger.info("Prompt updated", extra={"promptId": prompt_id, "fields": sorted(changes)})
        return prompt

    @service_boundary("catalog.delete_prompt")
    async def delete_prompt(self, prompt_id: str) -> None:
        user = await self.auth.require_user()
        async with self._mutations.hold(prompt_id):
            await self._owned_prompt(prompt_id, user.id)
            if not await self.prompts.delete(prompt_id):
                raise NotFoundError("Prompt not found")
        logger.info("Prompt deleted", extra={"promptId": prompt_id, "userId": user.id})

    # ── tags ─────────────────────────────────────────────────

    @service_boundary("catalog.fetch_tags")
    async def fetch_tags(self, prompt_id: str | None = None) -> list[Tag]:
        """Tags of one prompt, or every tag in the catalog."""
        return await self.tags.list_tags(prompt_id)

    @service_boundary("catalog.add_tag")
    async def add_tag(self, prompt_id: str, name: str, color: str = DEFAULT_TAG_COLOR) -> Tag:
        user = await self.auth.require_user()
        async with self._mutations.hold(prompt_id):
            await self._owned_prompt(prompt_id, user.id)
            tag = await self.normalizer.resolve_tag(name, color)
            await self.tags.link(prompt_id, tag.id)
        return tag

    @service_boundary("catalog.remove_tag")
    async def remove_tag(self, prompt_id: str, tag_id: str) -> None:
        user = await self.auth.require_user()
        async with self._mutations.hold(prompt_id):
            await self._owned_prompt(prompt_id, user.id)
            if not await self.tags.unlink(prompt_id, tag_id):
                raise NotFoundError("Tag is not linked to this prompt")
