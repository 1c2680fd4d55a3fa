"""Best-effort notification delivery and the notification inbox."""

from fulfillment.config import get_settings
from fulfillment.errors import NotFoundError
from fulfillment.models.notification import Notification, NotificationData, NotificationType
from fulfillment.state.store import RecordStore, Transaction
from fulfillment.utils.clock import Clock
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


class Notifier:
    """
    Records notifications and announces them on a pub/sub channel.

    Notifications are side effects of transitions that have already
    committed, so a failing sink is logged and never reaches the caller.
    """

    def __init__(self, store: RecordStore, clock: Clock):
        self.store = store
        self.clock = clock
        self.channel = get_settings().notification_channel

    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType = NotificationType.SYSTEM,
        data: NotificationData | None = None,
    ) -> Notification | None:
        """Send a notification to a user; returns None if the sink failed."""
        try:
            now = self.clock.now_ms()
            notification = Notification(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                data=data,
                created_at=now,
                updated_at=now,
            )
            await self.store.insert(notification)
            await self.store.state.publish(self.channel, notification.model_dump_json())
        except Exception as e:
            logger.error(
                "notification_failed",
                user_id=user_id,
                notification_type=type.value,
                title=title,
                error=str(e),
            )
            return None

        logger.debug("notification_sent", user_id=user_id, notification_id=notification.id)
        return notification

    async def notify_user(
        self,
        user_id: str,
        title: str,
        message: str,
        data: NotificationData | None = None,
    ) -> Notification | None:
        return await self.notify(user_id, title, message, NotificationType.ORDER_UPDATE, data)

    async def notify_shopkeeper(
        self,
        owner_id: str,
        title: str,
        message: str,
        data: NotificationData | None = None,
    ) -> Notification | None:
        return await self.notify(owner_id, title, message, NotificationType.ORDER_UPDATE, data)

    async def notify_rider(
        self,
        rider_user_id: str,
        title: str,
        message: str,
        data: NotificationData | None = None,
    ) -> Notification | None:
        return await self.notify(rider_user_id, title, message, NotificationType.DELIVERY, data)


class NotificationService:
    """A user's notification inbox."""

    def __init__(self, store: RecordStore, clock: Clock):
        self.store = store
        self.clock = clock

    async def list_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int | None = None,
    ) -> list[Notification]:
        """Newest notifications first."""
        if not unread_only:
            return await self.store.query(Notification, "user_id", user_id, limit=limit)

        notifications = await self.store.query(Notification, "user_id", user_id)
        unread = [n for n in notifications if not n.is_read]
        return unread[:limit] if limit is not None else unread

    async def unread_count(self, user_id: str) -> int:
        return len(await self.list_notifications(user_id, unread_only=True))

    async def mark_as_read(self, notification_id: str) -> Notification:
        async def op(txn: Transaction) -> Notification:
            notification = await txn.require(Notification, notification_id, "notification")
            notification.is_read = True
            notification.updated_at = self.clock.now_ms()
            txn.put(notification)
            return notification

        return await self.store.transaction(op)

    async def mark_all_as_read(self, user_id: str) -> int:
        """Mark every unread notification of a user as read; returns how many."""
        unread = await self.list_notifications(user_id, unread_only=True)
        marked = 0
        for notification in unread:
            try:
                await self.mark_as_read(notification.id)
            except NotFoundError:
                continue
            marked += 1
        return marked

    async def delete_notification(self, notification_id: str) -> None:
        if not await self.store.delete(Notification, notification_id):
            raise NotFoundError("notification", notification_id)
