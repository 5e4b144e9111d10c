"""MongoDB implementations of UserRepository and ProfileRepository."""

import uuid
from datetime import datetime, timezone
from logging import getLogger

from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from adapter.mongodb import PROFILES_COLLECTION_NAME, USERS_COLLECTION_NAME
from domain.model.errors import ConflictError, RemoteError
from domain.model.user import Profile, User
from utils.phone import mask_phone

logger = getLogger(__name__)


def _duplicate_field(error: DuplicateKeyError) -> str | None:
    key_pattern = (error.details or {}).get('keyPattern') or {}
    return next(iter(key_pattern), None)


class MongoUserRepository:
    """Users collection. Creating a user also writes its profile row, which is
    what the identity store's trigger does in a relational deployment."""

    def __init__(self, db: AsyncDatabase):
        self.collection = db[USERS_COLLECTION_NAME]
        self.profiles = db[PROFILES_COLLECTION_NAME]

    async def ensure_indexes(self) -> bool:
        """Create indexes for users collection."""
        from adapter.mongodb.indexes import create_index_safe

        try:
            await create_index_safe(self.collection, [('phone', 1)], 'idx_users_phone', unique=True)
            await create_index_safe(self.collection, [('username', 1)], 'idx_users_username', unique=True)
            return True
        except Exception as e:
            logger.error("Failed to create users indexes", extra={"error": str(e)})
            return False

    def _to_domain(self, doc: dict) -> User:
        """Convert MongoDB document to User domain model."""
        return User(
            id=doc['_id'],
            phone=doc['phone'],
            username=doc['username'],
            full_name=doc.get('full_name') or '',
            is_active=doc.get('is_active', True),
            created_at=doc['created_at'],
            updated_at=doc['updated_at'],
            last_login=doc.get('last_login'),
            password_hash=doc.get('password_hash'),
        )

    # ── write operations ─────────────────────────────────────

    async def create(
        self,
        phone: str,
        password_hash: str,
        username: str,
        full_name: str = '',
    ) -> User:
        """Create a new user (and its profile) and return the User object."""
        user_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)
        user_doc = {
            '_id': user_id,
            'phone': phone,
            'password_hash': password_hash,
            'username': username,
            'full_name': full_name,
            'is_active': True,
            'created_at': now,
            'updated_at': now,
        }
        try:
            await self.collection.insert_one(user_doc)
        except DuplicateKeyError as e:
            field = _duplicate_field(e)
            logger.warning("User creation failed: duplicate key", extra={"field": field, "phone": mask_phone(phone)})
            if field == 'username':
                raise ConflictError("Username already taken") from e
            raise ConflictError("Phone number already registered") from e
        except PyMongoError as e:
            logger.error("Failed to create user", extra={"phone": mask_phone(phone), "error": str(e)})
            raise RemoteError("Failed to create user") from e

        try:
            await self.profiles.insert_one({
                '_id': user_id,
                'username': username,
                'full_name': full_name,
                'phone': phone,
                'avatar_url': None,
                'bio': None,
                'created_at': now,
                'updated_at': now,
            })
        except PyMongoError as e:
            # the profile can be backfilled; the account itself exists
            logger.error("Failed to create profile", extra={"userId": user_id, "error": str(e)})

        logger.info("User created", extra={"userId": user_id})
        return self._to_domain(user_doc)

    async def update(self, user_id: str, changes: dict) -> bool:
        try:
            result = await self.collection.update_one(
                {'_id': user_id},
                {'$set': {**changes, 'updated_at': datetime.now(timezone.utc)}},
            )
            return result.matched_count > 0
        except DuplicateKeyError as e:
            raise ConflictError("Username already taken") from e
        except PyMongoError as e:
            logger.error("Failed to update user", extra={"userId": user_id, "error": str(e)})
            raise RemoteError("Failed to update user") from e

    async def update_last_login(self, user_id: str, at: datetime) -> bool:
        """Update the last login timestamp for a user. Return True if successful."""
        try:
            result = await self.collection.update_one(
                {'_id': user_id},
                {'$set': {'last_login': at, 'updated_at': at}},
            )
            if result.modified_count > 0:
                logger.debug("Updated last_login", extra={"userId": user_id})
                return True
            return False
        except PyMongoError as e:
            logger.error("Failed to update last_login", extra={"userId": user_id, "error": str(e)})
            return False

    # ── read operations ──────────────────────────────────────

    async def _find_one(self, query: dict, log_extra: dict) -> User | None:
        try:
            doc = await self.collection.find_one(query)
        except PyMongoError as e:
            logger.error("Failed to get user", extra={**log_extra, "error": str(e)})
            raise RemoteError("Failed to load user") from e
        return self._to_domain(doc) if doc else None

    async def get_by_id(self, user_id: str, active_only: bool = False) -> User | None:
        query: dict = {'_id': user_id}
        if active_only:
            query['is_active'] = True
        return await self._find_one(query, {"userId": user_id})

    async def get_by_phone(self, phone: str, active_only: bool = False) -> User | None:
        query: dict = {'phone': phone}
        if active_only:
            query['is_active'] = True
        return await self._find_one(query, {"phone": mask_phone(phone)})

    async def get_by_username(self, username: str, exclude_id: str | None = None) -> User | None:
        query: dict = {'username': username}
        if exclude_id:
            query['_id'] = {'$ne': exclude_id}
        return await self._find_one(query, {"username": username})


class MongoProfileRepository:
    def __init__(self, db: AsyncDatabase):
        self.collection = db[PROFILES_COLLECTION_NAME]

    def _to_domain(self, doc: dict) -> Profile:
        return Profile(
            id=doc['_id'],
            username=doc['username'],
            phone=doc['phone'],
            full_name=doc.get('full_name') or '',
            avatar_url=doc.get('avatar_url'),
            bio=doc.get('bio'),
            created_at=doc['created_at'],
            updated_at=doc['updated_at'],
        )

    async def get_by_id(self, user_id: str) -> Profile | None:
        try:
            doc = await self.collection.find_one({'_id': user_id})
        except PyMongoError as e:
            logger.error("Failed to get profile", extra={"userId": user_id, "error": str(e)})
            raise RemoteError("Failed to load profile") from e
        return self._to_domain(doc) if doc else None

    async def update(self, user_id: str, changes: dict) -> bool:
        try:
            result = await self.collection.update_one(
                {'_id': user_id},
                {'$set': {**changes, 'updated_at': datetime.now(timezone.utc)}},
            )
            return result.matched_count > 0
        except PyMongoError as e:
            logger.error("Failed to update profile", extra={"userId": user_id, "error": str(e)})
            raise RemoteError("Failed to update profile") from e
