"""
Meal Planner - Supabase Client.

Low-level database access. The job store, group source, notifier and
auth dependency all share the service-role client.
"""

from supabase import Client, create_client

from mealplanner.config import settings

# Singleton client instances
_service_client: Client | None = None


def _require(value: str | None, name: str) -> str:
    if not value:
        raise RuntimeError(f"{name} is not configured")
    return value


def get_service_client() -> Client:
    """
    Get the service-role Supabase client.

    Background jobs write on behalf of users after the request that
    created them has finished, so they cannot rely on the caller's token.
    """
    global _service_client

    if _service_client is None:
        _service_client = create_client(
            _require(settings.supabase_url, "SUPABASE_URL"),
            _require(settings.supabase_service_role_key, "SUPABASE_SERVICE_ROLE_KEY"),
        )

    return _service_client
