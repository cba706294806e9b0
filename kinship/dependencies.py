"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
import threading

from fastapi import HTTPException, Request

from kinship.config import get_settings
from kinship.db import DbClient, InMemoryDbClient, PostgresDbClient
from kinship.seed import seed_sample_data

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"

_db_client: DbClient | None = None
_db_client_lock = threading.Lock()


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.

    Sync dependencies run in the threadpool, so the first build and seed are
    done under a lock.
    """
    global _db_client
    if _db_client:
        return _db_client

    with _db_client_lock:
        if _db_client:
            return _db_client

        settings = get_settings()
        if settings.use_in_memory_backends or not settings.database_url:
            client: DbClient = InMemoryDbClient()
        else:
            client = PostgresDbClient(settings.database_url)
        logger.info("Using %s storage", client.__class__.__name__)

        if settings.seed_sample_data:
            seed_sample_data(client)
        _db_client = client
    return _db_client


def get_current_user_id(request: Request) -> int:
    """Return the logged-in user's id from the session, or fail with 401."""
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return int(user_id)
