"""MongoDB implementation of FavoriteRepository."""

import uuid
from datetime import datetime, timezone
from logging import getLogger

from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from adapter.mongodb import FAVORITES_COLLECTION_NAME
from domain.model.errors import ConflictError, RemoteError
from domain.model.favorite import Favorite

logger = getLogger(__name__)


class MongoFavoriteRepository:
    def __init__(self, db: AsyncDatabase):
        self.collection = db[FAVORITES_COLLECTION_NAME]

    async def ensure_indexes(self) -> bool:
        """Create indexes for favorites collection."""
        from adapter.mongodb.indexes import create_index_safe

        try:
            await create_index_safe(self.collection, [('user_id', 1), ('prompt_id', 1)], 'idx_favorites_pair', unique=True)
            await create_index_safe(self.collection, [('user_id', 1), ('created_at', -1)], 'idx_favorites_user_created')
            return True
        except Exception as e:
            logger.error("Failed to create favorites indexes", extra={"error": str(e)})
            return False

    def _to_domain(self, doc: dict) -> Favorite:
        return Favorite(
            id=doc['_id'],
            user_id=doc['user_id'],
            prompt_id=doc['prompt_id'],
            created_at=doc['created_at'],
        )

    async def add(self, user_id: str, prompt_id: str) -> Favorite:
        doc = {
            '_id': uuid.uuid4().hex,
            'user_id': user_id,
            'prompt_id': prompt_id,
            'created_at': datetime.now(timezone.utc),
        }
        try:
            await self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            logger.info("Favorite already exists", extra={"userId": user_id, "promptId": prompt_id})
            raise ConflictError("Prompt is already in favorites") from e
        except PyMongoError as e:
            logger.error("Failed to add favorite", extra={"userId": user_id, "promptId": prompt_id, "error": str(e)})
            raise RemoteError("Failed to add favorite") from e
        return self._to_domain(doc)

    async def remove(self, user_id: str, prompt_id: str) -> bool:
        try:
            result = await self.collection.delete_one({'user_id': user_id, 'prompt_id': prompt_id})
        except PyMongoError as e:
            logger.error("Failed to remove favorite", extra={"userId": user_id, "promptId": prompt_id, "error": str(e)})
            raise RemoteError("Failed to remove favorite") from e
        return result.deleted_count > 0

    async def find_by_user(self, user_id: str) -> list[Favorite]:
        try:
            cursor = self.collection.find({'user_id': user_id}).sort('created_at', -1)
            return [self._to_domain(doc) async for doc in cursor]
        except PyMongoError as e:
            logger.error("Failed to list favorites", extra={"userId": user_id, "error": str(e)})
            raise RemoteError("Failed to load favorites") from e
