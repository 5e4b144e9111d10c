"""MongoDB implementation of TagRepository."""

import uuid
from datetime import datetime, timezone
from logging import getLogger

from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from adapter.mongodb import PROMPT_TAGS_COLLECTION_NAME, TAGS_COLLECTION_NAME
from domain.model.errors import RemoteError
from domain.model.tag import DEFAULT_TAG_COLOR, PromptTag, Tag

logger = getLogger(__name__)


class MongoTagRepository:
    def __init__(self, db: AsyncDatabase):
        self.collection = db[TAGS_COLLECTION_NAME]
        self.links = db[PROMPT_TAGS_COLLECTION_NAME]

    async def ensure_indexes(self) -> bool:
        """Create indexes for tags and prompt_tags collections."""
        from adapter.mongodb.indexes import create_index_safe

        try:
            await create_index_safe(self.collection, [('name', 1)], 'idx_tags_name', unique=True)
            await create_index_safe(self.links, [('prompt_id', 1), ('tag_id', 1)], 'idx_prompt_tags_pair', unique=True)
            await create_index_safe(self.links, [('tag_id', 1)], 'idx_prompt_tags_tag_id')
            return True
        except Exception as e:
            logger.error("Failed to create tags indexes", extra={"error": str(e)})
            return False

    def _to_domain(self, doc: dict) -> Tag:
        return Tag(
            id=doc['_id'],
            name=doc['name'],
            color=doc.get('color') or DEFAULT_TAG_COLOR,
            created_at=doc.get('created_at'),
        )

    # ── tags ─────────────────────────────────────────────────

    async def get_or_create(self, name: str, color: str) -> Tag:
        """Upsert on the unique name, so the lookup and insert happen in one step.

        Two upserts for the same new name can still collide on the unique
        index; the loser reads back the winner's row.
        """
        try:
            try:
                doc = await self.collection.find_one_and_update(
                    {'name': name},
                    {'$setOnInsert': {
                        '_id': uuid.uuid4().hex,
                        'color': color,
                        'created_at': datetime.now(timezone.utc),
                    }},
                    upsert=True,
                    return_document=ReturnDocument.AFTER,
                )
            except DuplicateKeyError:
                doc = await self.collection.find_one({'name': name})
        except PyMongoError as e:
            logger.error("Failed to resolve tag", extra={"tag": name, "error": str(e)})
            raise RemoteError("Failed to resolve tag") from e

        if doc is None:
            raise RemoteError("Failed to resolve tag")
        return self._to_domain(doc)

    async def list_tags(self, prompt_id: str | None = None) -> list[Tag]:
        try:
            if prompt_id is None:
                cursor = self.collection.find({}).sort('name', 1)
                return [self._to_domain(doc) async for doc in cursor]

            tag_ids = [link['tag_id'] async for link in self.links.find({'prompt_id': prompt_id})]
            if not tag_ids:
                return []
            cursor = self.collection.find({'_id': {'$in': tag_ids}}).sort('name', 1)
            return [self._to_domain(doc) async for doc in cursor]
        except PyMongoError as e:
            logger.error("Failed to list tags", extra={"promptId": prompt_id, "error": str(e)})
            raise RemoteError("Failed to load tags") from e

    # ── associations ─────────────────────────────────────────

    async def link(self, prompt_id: str, tag_id: str) -> PromptTag:
        pair = {'prompt_id': prompt_id, 'tag_id': tag_id}
        try:
            try:
                doc = await self.links.find_one_and_update(
                    pair,
                    {'$setOnInsert': {'_id': uuid.uuid4().hex}},
                    upsert=True,
                    return_document=ReturnDocument.AFTER,
                )
            except DuplicateKeyError:
                doc = await self.links.find_one(pair)
        except PyMongoError as e:
            logger.error("Failed to link tag", extra={"promptId": prompt_id, "tagId": tag_id, "error": str(e)})
            raise RemoteError("Failed to link tag") from e
        return PromptTag(id=doc['_id'], prompt_id=doc['prompt_id'], tag_id=doc['tag_id'])

    async def unlink(self, prompt_id: str, tag_id: str) -> bool:
        try:
            result = await self.links.delete_one({'prompt_id': prompt_id, 'tag_id': tag_id})
        except PyMongoError as e:
            logger.error("Failed to unlink tag", extra={"promptId": prompt_id, "tagId": tag_id, "error": str(e)})
            raise RemoteError("Failed to unlink tag") from e
        return result.deleted_count > 0

    async def unlink_all(self, prompt_id: str) -> int:
        try:
            result = await self.links.delete_many({'prompt_id': prompt_id})
        except PyMongoError as e:
            logger.error("Failed to clear prompt tags", extra={"promptId": prompt_id, "error": str(e)})
            raise RemoteError("Failed to clear tags") from e
        return result.deleted_count
