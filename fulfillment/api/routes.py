"""API routes for the fulfillment service."""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from fulfillment.config import get_settings
from fulfillment.errors import NotFoundError
from fulfillment.models import (
    Address,
    Coordinates,
    Notification,
    Order,
    OrderItem,
    OrderStatus,
    OrderTotals,
    PaymentStatus,
    Rider,
)
from fulfillment.services import (
    DispatchResult,
    EtaWindow,
    NotificationService,
    Notifier,
    OrderItemDetail,
    OrderService,
    OrderStats,
    RiderService,
)
from fulfillment.state.manager import get_state_manager
from fulfillment.state.store import RecordStore
from fulfillment.utils.clock import Clock, SystemClock
from fulfillment.utils.ids import OrderNumberGenerator
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


# Request/Response Models


class CreateOrderRequest(OrderTotals):
    """Checkout payload; totals are validated on arrival."""

    user_id: str
    shop_id: str
    items: list[OrderItem]
    delivery_address: Address
    payment_method: str
    notes: str | None = None


class ActorRequest(BaseModel):
    """Identifies the shop owner acting on an order."""

    actor_id: str


class AssignRiderRequest(ActorRequest):
    rider_id: str


class UpdateStatusRequest(BaseModel):
    """Generic status change, routed through the matching transition."""

    status: OrderStatus
    actor_id: str | None = None
    rider_id: str | None = None
    delivery_time: str | None = None
    payment_status: PaymentStatus | None = None


class UpdatePaymentRequest(BaseModel):
    payment_status: PaymentStatus


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class DispatchResponse(BaseModel):
    """Outcome of automatic rider dispatch."""

    assigned: bool
    result: DispatchResult | None = None


class RegisterRiderRequest(BaseModel):
    user_id: str
    name: str
    phone: str
    location: Coordinates


class RiderOnlineRequest(BaseModel):
    is_online: bool


class UnreadCountResponse(BaseModel):
    user_id: str
    unread: int


class MarkAllReadResponse(BaseModel):
    user_id: str
    marked: int


# Dependencies


async def get_store() -> RecordStore:
    """Get a record store on the shared state manager."""
    state_manager = await get_state_manager()
    return RecordStore(state_manager)


def get_clock() -> Clock:
    return SystemClock()


def get_order_numbers(clock: Clock = Depends(get_clock)) -> OrderNumberGenerator:
    return OrderNumberGenerator(clock, prefix=get_settings().order_number_prefix)


def get_order_service(
    store: RecordStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
    order_numbers: OrderNumberGenerator = Depends(get_order_numbers),
) -> OrderService:
    """Get order service instance."""
    return OrderService(store, Notifier(store, clock), clock, order_numbers)


def get_rider_service(
    store: RecordStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> RiderService:
    return RiderService(store, clock)


def get_notification_service(
    store: RecordStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> NotificationService:
    return NotificationService(store, clock)


# Order endpoints


@router.post("/orders", response_model=Order, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    orders: OrderService = Depends(get_order_service),
) -> Order:
    """
    Place an order.

    Stock for every item is taken immediately; the order starts pending
    until the shop accepts it.
    """
    return await orders.create_order(
        user_id=request.user_id,
        shop_id=request.shop_id,
        items=request.items,
        totals=OrderTotals(
            subtotal=request.subtotal,
            delivery_fee=request.delivery_fee,
            tax=request.tax,
            total_amount=request.total_amount,
        ),
        delivery_address=request.delivery_address,
        payment_method=request.payment_method,
        notes=request.notes,
    )


@router.get("/orders/stats", response_model=OrderStats)
async def get_order_stats(
    user_id: str | None = None,
    shop_id: str | None = None,
    start: int | None = None,
    end: int | None = None,
    orders: OrderService = Depends(get_order_service),
) -> OrderStats:
    """Order counts and revenue, optionally scoped to a user or shop."""
    return await orders.get_order_stats(user_id, shop_id, start, end)


@router.get("/orders/recent", response_model=list[Order])
async def get_recent_orders(
    user_id: str | None = None,
    shop_id: str | None = None,
    limit: int | None = None,
    orders: OrderService = Depends(get_order_service),
) -> list[Order]:
    """Newest orders first, optionally scoped to a user or shop."""
    return await orders.get_recent_orders(user_id, shop_id, limit)


@router.get("/orders/{order_id}", response_model=Order)
async def get_order(
    order_id: str,
    orders: OrderService = Depends(get_order_service),
) -> Order:
    """Get order details."""
    order = await orders.get_order(order_id)

    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found",
        )

    return order


@router.get("/orders/{order_id}/items", response_model=list[OrderItemDetail])
async def get_order_items(
    order_id: str,
    orders: OrderService = Depends(get_order_service),
) -> list[OrderItemDetail]:
    return await orders.get_order_items(order_id)


@router.post("/orders/{order_id}/accept", response_model=Order)
async def accept_order(
    order_id: str,
    request: ActorRequest,
    orders: OrderService = Depends(get_order_service),
) -> Order:
    return await orders.accept_order(order_id, request.actor_id)


@router.post("/orders/{order_id}/assign", response_model=Order)
async def assign_rider(
    order_id: str,
    request: AssignRiderRequest,
    orders: OrderService = Depends(get_order_service),
) -> Order:
    """Assign a specific rider chosen by the shop owner."""
    return await orders.assign_rider(order_id, request.rider_id, request.actor_id)


@router.post("/orders/{order_id}/dispatch", response_model=DispatchResponse)
async def dispatch_order(
    order_id: str,
    request: ActorRequest,
    orders: OrderService = Depends(get_order_service),
) -> DispatchResponse:
    """Let the dispatch engine pick and assign the nearest available rider."""
    result = await orders.auto_assign_rider(order_id, request.actor_id)
    return DispatchResponse(assigned=result is not None, result=result)


@router.patch("/orders/{order_id}/status", response_model=Order)
async def update_order_status(
    order_id: str,
    request: UpdateStatusRequest,
    orders: OrderService = Depends(get_order_service),
) -> Order:
    return await orders.update_order_status(
        order_id,
        request.status,
        delivery_time=request.delivery_time,
        payment_status=request.payment_status,
        actor_id=request.actor_id,
        rider_id=request.rider_id,
    )


@router.patch("/orders/{order_id}/payment", response_model=Order)
async def update_payment_status(
    order_id: str,
    request: UpdatePaymentRequest,
    orders: OrderService = Depends(get_order_service),
) -> Order:
    return await orders.update_payment_status(order_id, request.payment_status)


@router.post("/orders/{order_id}/cancel", response_model=Order)
async def cancel_order(
    order_id: str,
    request: CancelOrderRequest = CancelOrderRequest(),
    orders: OrderService = Depends(get_order_service),
) -> Order:
    return await orders.cancel_order(order_id, request.reason)


@router.get("/orders/{order_id}/eta", response_model=EtaWindow)
async def estimate_delivery(
    order_id: str,
    orders: OrderService = Depends(get_order_service),
) -> EtaWindow:
    """Current delivery window; safe to poll."""
    return await orders.estimate_delivery(order_id)


@router.get("/users/{user_id}/orders", response_model=list[Order])
async def list_user_orders(
    user_id: str,
    status: OrderStatus | None = None,
    offset: int = 0,
    limit: int | None = None,
    orders: OrderService = Depends(get_order_service),
) -> list[Order]:
    return await orders.list_orders_by_user(user_id, status, offset, limit)


@router.get("/shops/{shop_id}/orders", response_model=list[Order])
async def list_shop_orders(
    shop_id: str,
    status: OrderStatus | None = None,
    offset: int = 0,
    limit: int | None = None,
    orders: OrderService = Depends(get_order_service),
) -> list[Order]:
    return await orders.list_orders_by_shop(shop_id, status, offset, limit)


# Rider endpoints


@router.post("/riders", response_model=Rider, status_code=status.HTTP_201_CREATED)
async def register_rider(
    request: RegisterRiderRequest,
    riders: RiderService = Depends(get_rider_service),
) -> Rider:
    return await riders.register_rider(
        request.user_id, request.name, request.phone, request.location
    )


@router.get("/riders", response_model=list[Rider])
async def list_riders(
    riders: RiderService = Depends(get_rider_service),
) -> list[Rider]:
    return await riders.list_all_riders()


@router.get("/riders/by-phone/{phone}", response_model=Rider)
async def get_rider_by_phone(
    phone: str,
    riders: RiderService = Depends(get_rider_service),
) -> Rider:
    rider = await riders.get_rider_by_phone(phone)
    if rider is None:
        raise NotFoundError("rider", phone)
    return rider


@router.get("/riders/available", response_model=list[Rider])
async def list_available_riders(
    riders: RiderService = Depends(get_rider_service),
) -> list[Rider]:
    """Online riders without an active delivery."""
    return await riders.list_available_riders()


@router.get("/riders/{rider_id}", response_model=Rider)
async def get_rider(
    rider_id: str,
    riders: RiderService = Depends(get_rider_service),
) -> Rider:
    rider = await riders.get_rider(rider_id)
    if rider is None:
        raise NotFoundError("rider", rider_id)
    return rider


@router.patch("/riders/{rider_id}/location", response_model=Rider)
async def update_rider_location(
    rider_id: str,
    location: Coordinates,
    riders: RiderService = Depends(get_rider_service),
) -> Rider:
    return await riders.update_location(rider_id, location)


@router.patch("/riders/{rider_id}/online", response_model=Rider)
async def set_rider_online(
    rider_id: str,
    request: RiderOnlineRequest,
    riders: RiderService = Depends(get_rider_service),
) -> Rider:
    return await riders.set_online(rider_id, request.is_online)


# Notification endpoints


@router.get("/users/{user_id}/notifications", response_model=list[Notification])
async def list_notifications(
    user_id: str,
    unread_only: bool = False,
    limit: int | None = None,
    notifications: NotificationService = Depends(get_notification_service),
) -> list[Notification]:
    return await notifications.list_notifications(user_id, unread_only, limit)


@router.get(
    "/users/{user_id}/notifications/unread-count",
    response_model=UnreadCountResponse,
)
async def unread_count(
    user_id: str,
    notifications: NotificationService = Depends(get_notification_service),
) -> UnreadCountResponse:
    return UnreadCountResponse(
        user_id=user_id,
        unread=await notifications.unread_count(user_id),
    )


@router.post("/notifications/{notification_id}/read", response_model=Notification)
async def mark_notification_read(
    notification_id: str,
    notifications: NotificationService = Depends(get_notification_service),
) -> Notification:
    return await notifications.mark_as_read(notification_id)


@router.delete(
    "/notifications/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_notification(
    notification_id: str,
    notifications: NotificationService = Depends(get_notification_service),
) -> None:
    await notifications.delete_notification(notification_id)


@router.post(
    "/users/{user_id}/notifications/read-all",
    response_model=MarkAllReadResponse,
)
async def mark_all_notifications_read(
    user_id: str,
    notifications: NotificationService = Depends(get_notification_service),
) -> MarkAllReadResponse:
    marked = await notifications.mark_all_as_read(user_id)

    logger.info("notifications_marked_read", user_id=user_id, count=marked)

    return MarkAllReadResponse(user_id=user_id, marked=marked)
