"""Tests for notification delivery and the inbox."""

import pytest

from fulfillment.errors import NotFoundError
from fulfillment.models import NotificationType, OrderStatus, OrderUpdateData, SystemData
from fulfillment.models.notification import Notification


@pytest.mark.asyncio
async def test_notify_records_and_publishes(notifier, store, redis_client) -> None:
    pubsub = redis_client.pubsub()
    await pubsub.subscribe("notifications")

    notification = await notifier.notify(
        "customer_1",
        "Welcome",
        "Thanks for signing up.",
        data=SystemData(detail="signup"),
    )

    assert notification is not None
    assert notification.type == NotificationType.SYSTEM
    assert await store.get(Notification, notification.id) == notification

    message = None
    for _ in range(5):
        message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=0.2)
        if message is not None:
            break
    assert message is not None
    assert Notification.model_validate_json(message["data"]).id == notification.id

    await pubsub.unsubscribe("notifications")
    await pubsub.aclose()


@pytest.mark.asyncio
async def test_sink_failure_is_swallowed(notifier, state_manager, monkeypatch) -> None:
    async def broken_publish(channel: str, message: str) -> None:
        raise ConnectionError("pub/sub unavailable")

    monkeypatch.setattr(state_manager, "publish", broken_publish)

    result = await notifier.notify_user("customer_1", "Order placed", "Your order is in.")

    assert result is None


@pytest.mark.asyncio
async def test_transition_survives_broken_sink(
    order_service, notifier, state_manager, place_order, monkeypatch
) -> None:
    order = await place_order()

    async def broken_publish(channel: str, message: str) -> None:
        raise ConnectionError("pub/sub unavailable")

    monkeypatch.setattr(state_manager, "publish", broken_publish)

    order = await order_service.accept_order(order.id, "owner_1")

    assert order.status == OrderStatus.ACCEPTED_BY_SHOPKEEPER


@pytest.mark.asyncio
async def test_typed_payload_round_trips(notifier, notification_service) -> None:
    data = OrderUpdateData(order_id="o1", order_number="MM1", status=OrderStatus.PENDING)
    await notifier.notify_shopkeeper("owner_1", "New order", "Order MM1", data)

    [stored] = await notification_service.list_notifications("owner_1")

    assert isinstance(stored.data, OrderUpdateData)
    assert stored.data == data


@pytest.mark.asyncio
async def test_inbox_read_state(notifier, notification_service, clock) -> None:
    first = await notifier.notify_rider("rider_user_1", "Pickup", "Order MM1")
    clock.advance(1_000)
    await notifier.notify_rider("rider_user_1", "Pickup", "Order MM2")
    clock.advance(1_000)
    third = await notifier.notify_rider("rider_user_1", "Pickup", "Order MM3")

    listed = await notification_service.list_notifications("rider_user_1")
    assert [n.message for n in listed] == ["Order MM3", "Order MM2", "Order MM1"]
    assert listed[0].type == NotificationType.DELIVERY

    read = await notification_service.mark_as_read(first.id)
    assert read.is_read is True
    assert await notification_service.unread_count("rider_user_1") == 2

    unread = await notification_service.list_notifications("rider_user_1", unread_only=True, limit=1)
    assert [n.id for n in unread] == [third.id]

    assert await notification_service.mark_all_as_read("rider_user_1") == 2
    assert await notification_service.unread_count("rider_user_1") == 0


@pytest.mark.asyncio
async def test_mark_missing_notification(notification_service) -> None:
    with pytest.raises(NotFoundError):
        await notification_service.mark_as_read("missing")


@pytest.mark.asyncio
async def test_delete_notification(notifier, notification_service, store) -> None:
    kept = await notifier.notify_rider("rider_user_1", "Pickup", "Order MM1")
    dropped = await notifier.notify_rider("rider_user_1", "Pickup", "Order MM2")

    await notification_service.delete_notification(dropped.id)

    assert await store.get(Notification, dropped.id) is None
    assert [n.id for n in await notification_service.list_notifications("rider_user_1")] == [kept.id]
    assert await notification_service.unread_count("rider_user_1") == 1

    with pytest.raises(NotFoundError):
        await notification_service.delete_notification(dropped.id)
