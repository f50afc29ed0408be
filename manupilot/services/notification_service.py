"""
In-app notification service.
"""

from dataclasses import dataclass, field

from manupilot.config.settings import settings
from manupilot.database.base import utcnow
from manupilot.database.store import DataStore, Row
from manupilot.utils.logging import ServiceLogger


@dataclass
class NotificationPage:
    notifications: list[Row] = field(default_factory=list)
    unread_count: int = 0


class NotificationService:
    """Lists a user's notifications and marks them read."""

    def __init__(self, store: DataStore):
        self.store = store
        self.logger = ServiceLogger("notification")

    async def list_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int | None = None,
    ) -> NotificationPage:
        """
        Return the user's latest notifications, newest first.

        The unread count always covers all of the user's notifications,
        not just the returned page.
        """
        filters: dict = {"user_id": user_id}
        if unread_only:
            filters["read"] = False

        notifications = await self.store.select(
            "notifications",
            filters,
            order_by="created_at",
            descending=True,
            limit=limit or settings.sourcing.notifications_page_size,
        )
        unread_count = await self.store.count("notifications", {"user_id": user_id, "read": False})

        return NotificationPage(notifications=notifications, unread_count=unread_count)

    async def mark_read(
        self,
        user_id: str,
        notification_ids: list[str] | None = None,
        mark_all: bool = False,
    ) -> int:
        """
        Mark notifications as read.

        Args:
            user_id: Owner of the notifications
            notification_ids: Specific notifications to mark
            mark_all: Mark every unread notification of the user

        Returns:
            Number of notifications updated

        Raises:
            ValueError: If neither ids nor mark_all is given
        """
        if mark_all:
            filters = {"user_id": user_id, "read": False}
        elif notification_ids is not None:
            filters = {"user_id": user_id, "id__in": list(notification_ids)}
        else:
            raise ValueError("Notification IDs required")

        updated = await self.store.update(
            "notifications",
            filters,
            {"read": True, "read_at": utcnow()},
        )

        self.logger.log_operation_complete(
            "mark_read",
            user_id=user_id,
            mark_all=mark_all,
            updated=len(updated),
        )
        return len(updated)
