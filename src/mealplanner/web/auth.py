"""
Authentication utilities for FastAPI routes.

Shared auth dependency used by all route modules.
"""

import asyncio
import logging

from fastapi import Header
from pydantic import BaseModel

from mealplanner.config import settings
from mealplanner.errors import AuthRequired

logger = logging.getLogger(__name__)


class AuthenticatedUser(BaseModel):
    """Authenticated user info from Supabase JWT."""
    id: str
    email: str | None
    access_token: str


def _verify_with_supabase(access_token: str) -> AuthenticatedUser | None:
    from mealplanner.db.client import get_service_client

    client = get_service_client()
    user_response = client.auth.get_user(access_token)
    if not user_response or not user_response.user:
        return None

    user = user_response.user
    return AuthenticatedUser(id=user.id, email=user.email, access_token=access_token)


async def get_current_user(authorization: str = Header(None)) -> AuthenticatedUser:
    """
    Validate the bearer token and extract user info.

    Expects Authorization header: "Bearer <access_token>"

    With the in-memory backend there is no auth server, so the token is
    taken as the user id (development only).
    """
    if not authorization:
        raise AuthRequired("Missing authorization header")

    if not authorization.startswith("Bearer "):
        raise AuthRequired("Invalid authorization format")

    access_token = authorization[7:].strip()  # Remove "Bearer " prefix
    if not access_token:
        raise AuthRequired("Invalid or expired token")

    if settings.resolved_store_backend == "memory":
        return AuthenticatedUser(id=access_token, email=None, access_token=access_token)

    try:
        user = await asyncio.to_thread(_verify_with_supabase, access_token)
    except Exception as e:
        logger.warning(f"Auth validation failed: {e}")
        raise AuthRequired("Invalid or expired token") from e

    if user is None:
        raise AuthRequired("Invalid or expired token")
    return user
