"""Application entry point: wires the services and owns their lifecycle.

Lifecycle:
    services = await create_services()
    await services.initialize()     # indexes + session restore
    ... services.auth / services.catalog / services.favorites ...
    await services.teardown()
"""

import logging
from dataclasses import dataclass

from dotenv import load_dotenv

# Must run before importing adapters, which read their env vars at import time
load_dotenv()

from adapter.mongodb.connection import reset_client
from adapter.mongodb.indexes import ensure_all_indexes
from adapter.storage.redis_session_storage import RedisSessionStorage
from app.dependencies import Repositories, Settings, build_repositories, build_session_storage
from domain.model.result import Result
from domain.model.user import User
from port.session_storage import SessionStorage
from services.auth_service import AuthService
from services.catalog_service import CatalogService
from services.credential_store import CredentialStore
from services.favorite_sync import FavoriteSync
from services.session_manager import SessionManager
from services.tag_normalizer import TagNormalizer
from utils.logging import setup_structured_logging

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """The services a UI layer talks to, plus what they need torn down."""
    auth: AuthService
    catalog: CatalogService
    favorites: FavoriteSync
    repositories: Repositories
    session_storage: SessionStorage

    async def initialize(self) -> Result[User | None]:
        """Ensure indexes (MongoDB backend) and restore any persisted session."""
        db = self.repositories.db
        if db is not None:
            if await ensure_all_indexes(db):
                logger.info("MongoDB indexes verified/created successfully")
            else:
                logger.warning("Failed to create some MongoDB indexes")
        return await self.auth.initialize()

    async def teardown(self) -> None:
        """Release connections. The persisted session is kept for the next start."""
        if isinstance(self.session_storage, RedisSessionStorage):
            await self.session_storage.close()
        if self.repositories.db is not None:
            await reset_client()


def wire_services(
    repositories: Repositories,
    session_storage: SessionStorage,
    secret_key: str,
    credentials: CredentialStore | None = None,
) -> AppServices:
    """Build the service graph on top of already constructed adapters."""
    sessions = SessionManager(session_storage, secret_key=secret_key)
    auth = AuthService(
        users=repositories.users,
        profiles=repositories.profiles,
        credentials=credentials or CredentialStore(),
        sessions=sessions,
    )
    catalog = CatalogService(
        prompts=repositories.prompts,
        tags=repositories.tags,
        favorites=repositories.favorites,
        normalizer=TagNormalizer(repositories.tags),
        auth=auth,
    )
    favorites = FavoriteSync(repositories.favorites, auth)
    return AppServices(
        auth=auth,
        catalog=catalog,
        favorites=favorites,
        repositories=repositories,
        session_storage=session_storage,
    )


async def create_services(settings: Settings | None = None) -> AppServices:
    """Configure logging and build services from the environment."""
    setup_structured_logging()

    settings = settings or Settings.from_env()
    repositories = await build_repositories(settings)
    session_storage = build_session_storage(settings)
    logger.info(
        "Services created",
        extra={"backend": settings.backend, "sessionStore": settings.session_store},
    )
    return wire_services(repositories, session_storage, settings.session_secret_key)
