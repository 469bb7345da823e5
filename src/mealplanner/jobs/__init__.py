"""
Meal Planner - Job Record Store.

get_job_store() returns the backend selected by settings. The in-memory
store is a process-wide singleton so the web app and the background
executor share the same maps.
"""

import logging

from mealplanner.jobs.memory_store import InMemoryJobStore
from mealplanner.jobs.store import JobStore
from mealplanner.jobs.supabase_store import SupabaseJobStore

logger = logging.getLogger(__name__)

_store: JobStore | None = None


def get_job_store() -> JobStore:
    """Get the configured job store (cached)."""
    global _store

    if _store is None:
        from mealplanner.config import settings

        backend = settings.resolved_store_backend
        if backend == "memory":
            if settings.is_production:
                logger.warning("In-memory job store selected in production; jobs will not survive restarts")
            _store = InMemoryJobStore()
        else:
            from mealplanner.db.client import get_service_client

            _store = SupabaseJobStore(get_service_client())
        logger.info(f"Job store backend: {backend}")

    return _store


def set_job_store(store: JobStore | None) -> None:
    """Override the cached store (tests, CLI)."""
    global _store
    _store = store


__all__ = [
    "InMemoryJobStore",
    "JobStore",
    "SupabaseJobStore",
    "get_job_store",
    "set_job_store",
]
