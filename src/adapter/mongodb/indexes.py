"""MongoDB index management.

Each MongoXxxRepository declares its indexes in ensure_indexes() through
create_index_safe(). Uniqueness of phone, username, tag name and the
(user, prompt) / (prompt, tag) pairs is enforced here, so an existing index
with the right keys but the wrong `unique` flag is rebuilt as well.
"""

from logging import getLogger

from pymongo.errors import OperationFailure, PyMongoError

logger = getLogger(__name__)

# Server codes for IndexOptionsConflict / IndexKeySpecsConflict
INDEX_CONFLICT_CODES = (85, 86)


def _is_conflict(error: PyMongoError) -> bool:
    if isinstance(error, OperationFailure) and error.code in INDEX_CONFLICT_CODES:
        return True
    text = str(error)
    return "already exists" in text or "Conflict" in text


def _conflicts_with(idx_name: str, idx_info: dict, keys: list, name: str, unique: bool) -> bool:
    same_name = idx_name == name
    same_keys = list(idx_info.get('key', [])) == [tuple(k) for k in keys]
    same_unique = bool(idx_info.get('unique', False)) == unique
    if same_name:
        return not (same_keys and same_unique)
    return same_keys


async def create_index_safe(collection, keys: list, name: str, **kwargs) -> bool:
    """Create an index, replacing any existing index that clashes with it.

    A clash is either the same name with different keys/uniqueness, or the
    same keys under a different name. Errors other than a clash propagate.
    """
    try:
        await collection.create_index(keys, name=name, **kwargs)
        return True
    except PyMongoError as e:
        if not _is_conflict(e):
            raise
    return await _replace_conflicting(collection, keys, name, **kwargs)


async def _replace_conflicting(collection, keys: list, name: str, **kwargs) -> bool:
    unique = bool(kwargs.get('unique', False))
    existing = await collection.index_information()

    doomed = [
        idx_name for idx_name, idx_info in existing.items()
        if idx_name != '_id_' and _conflicts_with(idx_name, idx_info, keys, name, unique)
    ]
    if not doomed:
        logger.error("Index conflict could not be resolved", extra={"index": name})
        return False

    for idx_name in doomed:
        logger.warning("Dropping conflicting index", extra={"index": idx_name, "replacement": name})
        await collection.drop_index(idx_name)
    await collection.create_index(keys, name=name, **kwargs)
    logger.info("Recreated index", extra={"index": name})
    return True


async def ensure_all_indexes(db) -> bool:
    """Ensure indexes for every collection. Called from AppServices.initialize()."""
    from adapter.mongodb.favorite_repository import MongoFavoriteRepository
    from adapter.mongodb.prompt_repository import MongoPromptRepository
    from adapter.mongodb.tag_repository import MongoTagRepository
    from adapter.mongodb.user_repository import MongoUserRepository

    results = [
        await MongoUserRepository(db).ensure_indexes(),
        await MongoPromptRepository(db).ensure_indexes(),
        await MongoTagRepository(db).ensure_indexes(),
        await MongoFavoriteRepository(db).ensure_indexes(),
    ]
    return all(results)
