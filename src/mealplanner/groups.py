"""
Group lookup for plan submission.

Groups are created and edited elsewhere; this service only reads the
caller's active groups when a plan is submitted.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from supabase import Client

from mealplanner.errors import StoreError
from mealplanner.models import Group

logger = logging.getLogger(__name__)

GROUPS_TABLE = "groups"


@runtime_checkable
class GroupSource(Protocol):
    async def list_active_groups(self, user_id: str) -> list[Group]:
        """Active groups owned by user_id."""
        ...


class SupabaseGroupSource:
    """Reads the groups table."""

    def __init__(self, client: Client):
        self.client = client

    async def list_active_groups(self, user_id: str) -> list[Group]:
        def select() -> list[dict]:
            result = (
                self.client.table(GROUPS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .eq("status", "active")
                .execute()
            )
            return result.data or []

        try:
            rows = await asyncio.to_thread(select)
        except Exception as e:
            logger.error(f"Failed to load groups for user {user_id}: {e}")
            raise StoreError("Failed to load groups") from e
        return [Group.model_validate(row) for row in rows]


class InMemoryGroupSource:
    """Groups held in a dict, for development and tests."""

    def __init__(self, groups: list[Group] | None = None):
        self._groups: dict[str, Group] = {}
        for group in groups or []:
            self.add_group(group)

    def add_group(self, group: Group) -> None:
        self._groups[group.id] = group

    def remove_group(self, group_id: str) -> None:
        self._groups.pop(group_id, None)

    async def list_active_groups(self, user_id: str) -> list[Group]:
        return [
            g.model_copy(deep=True)
            for g in self._groups.values()
            if g.user_id == user_id and g.status == "active"
        ]


def parse_groups(rows: list[dict[str, Any]], default_user_id: str) -> list[Group]:
    """Build groups from plain rows. Rows without a user_id belong to default_user_id."""
    return [Group.model_validate({"user_id": default_user_id, **row}) for row in rows]


def load_groups_file(path: str | Path, default_user_id: str) -> list[Group]:
    """
    Read groups from a JSON file.

    The file holds either a list of group rows or an object with a "groups"
    list, the same shape the `generate` CLI command reads.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    rows = data.get("groups", []) if isinstance(data, dict) else data
    return parse_groups(rows, default_user_id)


_source: GroupSource | None = None


def get_group_source() -> GroupSource:
    """Get the configured group source (cached)."""
    global _source

    if _source is None:
        from mealplanner.config import settings

        if settings.resolved_store_backend == "memory":
            groups = []
            if settings.dev_groups_file:
                groups = load_groups_file(settings.dev_groups_file, settings.dev_user_id)
                logger.info(f"Loaded {len(groups)} groups from {settings.dev_groups_file}")
            else:
                logger.warning("No DEV_GROUPS_FILE set, in-memory group source starts empty")
            _source = InMemoryGroupSource(groups)
        else:
            from mealplanner.db.client import get_service_client

            _source = SupabaseGroupSource(get_service_client())

    return _source


def set_group_source(source: GroupSource | None) -> None:
    global _source
    _source = source
