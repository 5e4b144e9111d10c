"""MongoDB implementation of PromptRepository."""

import re
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from enum import Enum
from logging import getLogger

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from adapter.mongodb import (
    FAVORITES_COLLECTION_NAME,
    PROMPT_TAGS_COLLECTION_NAME,
    PROMPTS_COLLECTION_NAME,
)
from domain.model.errors import RemoteError
from domain.model.prompt import (
    SEARCH_FIELDS,
    Category,
    Difficulty,
    Prompt,
    PromptDraft,
    PromptQuery,
)

logger = getLogger(__name__)


def _to_document_values(values: dict) -> dict:
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in values.items()}


def build_prompt_filter(query: PromptQuery) -> dict:
    """Translate a PromptQuery into a MongoDB filter document."""
    mongo_filter: dict = {}
    if query.public_only:
        mongo_filter['is_public'] = True
    if query.featured_only:
        mongo_filter['is_featured'] = True
    if query.category:
        mongo_filter['category'] = query.category.value
    if query.difficulty:
        mongo_filter['difficulty'] = query.difficulty.value
    if query.author_id:
        mongo_filter['author_id'] = query.author_id
    if query.search:
        # literal substring, case-insensitive
        pattern = {'$regex': re.escape(query.search), '$options': 'i'}
        mongo_filter['$or'] = [{field: pattern} for field in SEARCH_FIELDS]
    return mongo_filter


class MongoPromptRepository:
    def __init__(self, db: AsyncDatabase):
        self.collection = db[PROMPTS_COLLECTION_NAME]
        self.prompt_tags = db[PROMPT_TAGS_COLLECTION_NAME]
        self.favorites = db[FAVORITES_COLLECTION_NAME]

    # ── indexes ──────────────────────────────────────────────

    async def ensure_indexes(self) -> bool:
        """Create indexes for prompts collection."""
        from adapter.mongodb.indexes import create_index_safe

        try:
            await create_index_safe(self.collection, [('created_at', -1)], 'idx_prompts_created_at_desc')
            await create_index_safe(self.collection, [
                ('is_public', 1),
                ('is_featured', 1),
                ('category', 1),
                ('created_at', -1),
            ], 'idx_prompts_listing')
            await create_index_safe(self.collection, [('author_id', 1), ('created_at', -1)], 'idx_prompts_author')
            return True
        except Exception as e:
            logger.error("Failed to create prompts indexes", extra={"error": str(e)})
            return False

    # ── helpers ──────────────────────────────────────────────

    def _to_domain(self, doc: dict) -> Prompt:
        """Convert MongoDB document to Prompt domain model."""
        difficulty = doc.get('difficulty')
        return Prompt(
            id=doc['_id'],
            title=doc['title'],
            content=doc['content'],
            category=Category(doc['category']),
            author_id=doc.get('author_id'),
            created_at=doc['created_at'],
            updated_at=doc['updated_at'],
            description=doc.get('description'),
            is_public=doc.get('is_public', True),
            is_featured=doc.get('is_featured', False),
            usage_count=doc.get('usage_count', 0),
            like_count=doc.get('like_count', 0),
            usage_instructions=doc.get('usage_instructions'),
            example_output=doc.get('example_output'),
            difficulty=Difficulty(difficulty) if difficulty else None,
        )

    # ── write operations ─────────────────────────────────────

    async def create(self, draft: PromptDraft, author_id: str) -> Prompt:
        now = datetime.now(timezone.utc)
        doc = {
            '_id': uuid.uuid4().hex,
            **_to_document_values(asdict(draft)),
            'author_id': author_id,
            'usage_count': 0,
            'like_count': 0,
            'created_at': now,
            'updated_at': now,
        }
        try:
            await self.collection.insert_one(doc)
        except PyMongoError as e:
            logger.error("Failed to create prompt", extra={"userId": author_id, "error": str(e)})
            raise RemoteError("Failed to create prompt") from e
        return self._to_domain(doc)

    async def update(self, prompt_id: str, changes: dict) -> Prompt | None:
        try:
            doc = await self.collection.find_one_and_update(
                {'_id': prompt_id},
                {'$set': {**_to_document_values(changes), 'updated_at': datetime.now(timezone.utc)}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error("Failed to update prompt", extra={"promptId": prompt_id, "error": str(e)})
            raise RemoteError("Failed to update prompt") from e
        return self._to_domain(doc) if doc else None

    async def delete(self, prompt_id: str) -> bool:
        """Delete a prompt and cascade to its tag links and favorites."""
        try:
            result = await self.collection.delete_one({'_id': prompt_id})
            if result.deleted_count == 0:
                logger.warning("Prompt not found for deletion", extra={"promptId": prompt_id})
                return False
            await self.prompt_tags.delete_many({'prompt_id': prompt_id})
            await self.favorites.delete_many({'prompt_id': prompt_id})
            return True
        except PyMongoError as e:
            logger.error("Failed to delete prompt", extra={"promptId": prompt_id, "error": str(e)})
            raise RemoteError("Failed to delete prompt") from e

    # ── read operations ──────────────────────────────────────

    async def get_by_id(self, prompt_id: str) -> Prompt | None:
        try:
            doc = await self.collection.find_one({'_id': prompt_id})
        except PyMongoError as e:
            logger.error("Failed to retrieve prompt", extra={"promptId": prompt_id, "error": str(e)})
            raise RemoteError("Failed to load prompt") from e
        return self._to_domain(doc) if doc else None

    async def get_many(self, prompt_ids: list[str]) -> list[Prompt]:
        if not prompt_ids:
            return []
        try:
            cursor = self.collection.find({'_id': {'$in': list(prompt_ids)}})
            return [self._to_domain(doc) async for doc in cursor]
        except PyMongoError as e:
            logger.error("Failed to retrieve prompts", extra={"count": len(prompt_ids), "error": str(e)})
            raise RemoteError("Failed to load prompts") from e

    async def find(self, query: PromptQuery) -> list[Prompt]:
        """List prompts matching the query, sorted and optionally capped."""
        mongo_filter = build_prompt_filter(query)
        direction = DESCENDING if query.descending else ASCENDING
        try:
            cursor = self.collection.find(mongo_filter).sort(query.sort_by, direction)
            if query.limit:
                cursor = cursor.limit(query.limit)
            prompts = [self._to_domain(doc) async for doc in cursor]
        except PyMongoError as e:
            logger.error("Failed to list prompts", extra={"error": str(e)})
            raise RemoteError("Failed to load prompts") from e

        logger.debug("Listed prompts", extra={"count": len(prompts)})
        return prompts
