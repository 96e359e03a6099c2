"""
Indian Rummy - Service Factory

Wires a GameService to the store backend named in settings.
"""

import logging

from indian_rummy.config.settings import Settings, get_settings
from indian_rummy.database.client import get_supabase_client
from indian_rummy.database.store import DocumentStore, InMemoryDocumentStore
from indian_rummy.database.supabase_store import SupabaseDocumentStore
from indian_rummy.realtime.sync_manager import RealtimeManager
from indian_rummy.services.game_service import GameService

logger = logging.getLogger(__name__)


def create_store(settings: Settings | None = None) -> DocumentStore:
    """Build the document store selected by `store_backend`."""
    settings = settings or get_settings()
    if settings.store_backend == "memory":
        logger.info("Using in-memory document store")
        return InMemoryDocumentStore()

    client = get_supabase_client()
    watcher = RealtimeManager(
        client,
        poll_interval=settings.realtime_poll_interval,
        subscribe_timeout=settings.subscribe_timeout,
    )
    logger.info("Using Supabase document store")
    return SupabaseDocumentStore(client, watcher=watcher)


def create_game_service(settings: Settings | None = None) -> GameService:
    settings = settings or get_settings()
    return GameService(create_store(settings), settings=settings)
