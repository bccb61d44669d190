"""
Candidate stores for the ranking engine.

Usage:
    from flight_search.stores import create_store

    store = create_store()            # backend from STORE_BACKEND
    candidates = await store.fetch_candidates(filters, limit=1001)
"""

import logging
from typing import Optional

from .. import config
from .base import CandidateStore
from .memory import InMemoryFlightStore
from .postgres import PostgresFlightStore

logger = logging.getLogger(__name__)


def create_store(backend: Optional[str] = None) -> CandidateStore:
    """
    Create a store from configuration.

    Config (env vars):
        STORE_BACKEND: "postgres" (default) | "memory"
        DATABASE_URL: PostgreSQL DSN (postgres backend only)

    The postgres store still needs `await store.connect()` before use.
    """
    backend = (backend or config.STORE_BACKEND).lower()
    if backend == "postgres":
        logger.info("Creating PostgreSQL candidate store")
        return PostgresFlightStore()
    if backend == "memory":
        logger.info("Creating in-memory candidate store")
        return InMemoryFlightStore()
    raise ValueError(f"Unknown store backend: {backend}. Valid options: postgres, memory")


__all__ = [
    "CandidateStore",
    "InMemoryFlightStore",
    "PostgresFlightStore",
    "create_store",
]
