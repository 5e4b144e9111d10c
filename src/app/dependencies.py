"""Backend selection: builds the repositories and session storage from env config."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from adapter.fake.favorite_repository import FakeFavoriteRepository
from adapter.fake.prompt_repository import FakePromptRepository
from adapter.fake.session_storage import FakeSessionStorage
from adapter.fake.tag_repository import FakeTagRepository
from adapter.fake.user_repository import FakeProfileRepository, FakeUserRepository
from adapter.mongodb.connection import get_database
from adapter.mongodb.favorite_repository import MongoFavoriteRepository
from adapter.mongodb.prompt_repository import MongoPromptRepository
from adapter.mongodb.tag_repository import MongoTagRepository
from adapter.mongodb.user_repository import MongoProfileRepository, MongoUserRepository
from adapter.storage.file_session_storage import DEFAULT_SESSION_FILE, FileSessionStorage
from adapter.storage.redis_session_storage import RedisSessionStorage
from port.favorite_repository import FavoriteRepository
from port.prompt_repository import PromptRepository
from port.session_storage import SessionStorage
from port.tag_repository import TagRepository
from port.user_repository import ProfileRepository, UserRepository

logger = logging.getLogger(__name__)

BACKENDS = ('mongodb', 'memory')
SESSION_STORES = ('file', 'redis', 'memory')


@dataclass
class Settings:
    """Runtime configuration read from environment variables."""
    backend: str
    session_store: str
    session_file: Path
    session_secret_key: str
    session_namespace: str

    @staticmethod
    def from_env() -> 'Settings':
        secret = os.getenv('SESSION_SECRET_KEY')
        if not secret:
            raise ValueError(
                "SESSION_SECRET_KEY environment variable is required. "
                "Generate a secure key with: openssl rand -hex 32"
            )
        backend = os.getenv('PROMPTSHELF_BACKEND', 'mongodb')
        if backend not in BACKENDS:
            raise ValueError(f"PROMPTSHELF_BACKEND must be one of {BACKENDS}, got {backend!r}")
        session_store = os.getenv('SESSION_STORE', 'file')
        if session_store not in SESSION_STORES:
            raise ValueError(f"SESSION_STORE must be one of {SESSION_STORES}, got {session_store!r}")
        return Settings(
            backend=backend,
            session_store=session_store,
            session_file=Path(os.getenv('SESSION_FILE', str(DEFAULT_SESSION_FILE))),
            session_secret_key=secret,
            session_namespace=os.getenv('SESSION_NAMESPACE', 'default'),
        )


@dataclass
class Repositories:
    users: UserRepository
    profiles: ProfileRepository
    prompts: PromptRepository
    tags: TagRepository
    favorites: FavoriteRepository
    db: object | None = None


async def build_repositories(settings: Settings) -> Repositories:
    if settings.backend == 'memory':
        profiles = FakeProfileRepository()
        tags = FakeTagRepository()
        favorites = FakeFavoriteRepository()
        logger.info("Using in-memory backend")
        return Repositories(
            users=FakeUserRepository(profiles=profiles),
            profiles=profiles,
            prompts=FakePromptRepository(tags=tags, favorites=favorites),
            tags=tags,
            favorites=favorites,
        )

    db = await get_database()
    return Repositories(
        users=MongoUserRepository(db),
        profiles=MongoProfileRepository(db),
        prompts=MongoPromptRepository(db),
        tags=MongoTagRepository(db),
        favorites=MongoFavoriteRepository(db),
        db=db,
    )


def build_session_storage(settings: Settings) -> SessionStorage:
    if settings.session_store == 'memory':
        return FakeSessionStorage()
    if settings.session_store == 'redis':
        return RedisSessionStorage(namespace=settings.session_namespace)
    return FileSessionStorage(settings.session_file)
