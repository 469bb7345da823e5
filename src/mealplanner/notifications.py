"""
User notifications for finished generation jobs.

Notifying is fire-and-forget: a failed notification is logged and never
changes the outcome of the job it describes.
"""

import asyncio
import logging
from typing import Protocol, runtime_checkable

from supabase import Client

logger = logging.getLogger(__name__)

NOTIFICATIONS_TABLE = "user_notifications"

JOB_COMPLETED = "meal_generation_completed"
JOB_FAILED = "meal_generation_failed"


@runtime_checkable
class Notifier(Protocol):
    async def notify(
        self, *, user_id: str, kind: str, title: str, message: str, job_id: str
    ) -> None:
        ...


class SupabaseNotifier:
    """Writes a row to user_notifications."""

    def __init__(self, client: Client):
        self.client = client

    async def notify(
        self, *, user_id: str, kind: str, title: str, message: str, job_id: str
    ) -> None:
        row = {
            "user_id": user_id,
            "type": kind,
            "title": title,
            "message": message,
            "job_id": job_id,
        }
        await asyncio.to_thread(
            lambda: self.client.table(NOTIFICATIONS_TABLE).insert(row).execute()
        )


class LoggingNotifier:
    """Development notifier: logs and remembers what it was asked to send."""

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []

    async def notify(
        self, *, user_id: str, kind: str, title: str, message: str, job_id: str
    ) -> None:
        self.sent.append(
            {"user_id": user_id, "kind": kind, "title": title, "message": message, "job_id": job_id}
        )
        logger.info(f"Notification for {user_id} [{kind}] {title}: {message}")


async def send_notification(
    notifier: Notifier | None,
    *,
    user_id: str,
    kind: str,
    title: str,
    message: str,
    job_id: str,
) -> None:
    """Send a notification, logging instead of raising on failure."""
    if notifier is None:
        return
    try:
        await notifier.notify(
            user_id=user_id, kind=kind, title=title, message=message, job_id=job_id
        )
    except Exception as e:
        logger.error(f"Failed to send {kind} notification for job {job_id}: {e}")


def get_notifier() -> Notifier:
    from mealplanner.config import settings

    if settings.resolved_store_backend == "memory":
        return LoggingNotifier()

    from mealplanner.db.client import get_service_client

    return SupabaseNotifier(get_service_client())
