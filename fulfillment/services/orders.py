"""Order lifecycle: the only code path that changes an order's status."""

from collections import Counter
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from fulfillment.config import Settings, get_settings
from fulfillment.errors import (
    ConcurrencyConflictError,
    FulfillmentError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    UnauthorizedError,
)
from fulfillment.models.location import Address
from fulfillment.models.notification import (
    DeliveryData,
    NotificationType,
    OrderUpdateData,
    PaymentData,
)
from fulfillment.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    OrderTotals,
    PaymentStatus,
)
from fulfillment.models.rider import Rider
from fulfillment.models.shop import Product, Shop
from fulfillment.services.dispatch import DispatchEngine, DispatchResult
from fulfillment.services.eta import EtaWindow, estimate_eta
from fulfillment.services.geo import haversine_km
from fulfillment.services.notifier import Notifier
from fulfillment.state.store import RecordStore, Transaction
from fulfillment.state.workflow import (
    EVENT_ACTIONS,
    OrderEvent,
    OrderTransitions,
    PaymentTransitions,
)
from fulfillment.utils.clock import Clock
from fulfillment.utils.ids import OrderNumberGenerator
from fulfillment.utils.logging import TransitionLogger
from fulfillment.utils.time import is_peak_hour

# Orders the shop is still preparing, used as its current load.
OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.ACCEPTED_BY_SHOPKEEPER)

TransitionBody = Callable[[Transaction, Order, dict[str, Any]], Awaitable[None]]


class OrderItemDetail(OrderItem):
    """Line item with the product as it is now; None once the product is gone."""

    product: Product | None = None


class OrderStats(BaseModel):
    """Aggregate figures over a set of orders."""

    total_orders: int
    total_revenue: float
    average_order_value: float
    by_status: dict[OrderStatus, int]


class OrderService:
    """
    Owns the order record and its legal transitions.

    Every transition reads the records it guards on inside one optimistic
    transaction and commits the order together with any product or rider
    it touches. A failed guard raises before anything is queued, so a
    rejected transition leaves every record as it was. Notifications go
    out only after the commit.
    """

    def __init__(
        self,
        store: RecordStore,
        notifier: Notifier,
        clock: Clock,
        order_numbers: OrderNumberGenerator,
        dispatch_engine: DispatchEngine | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self.order_numbers = order_numbers
        self.settings = settings or get_settings()
        self.dispatch_engine = dispatch_engine or DispatchEngine(self.settings)
        self.logger = TransitionLogger("order_lifecycle")

    # =====================================================
    # QUERIES
    # =====================================================
    async def get_order(self, order_id: str) -> Order | None:
        return await self.store.get(Order, order_id)

    async def list_orders_by_user(
        self,
        user_id: str,
        status: OrderStatus | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Order]:
        """A customer's orders, newest first."""
        return await self._list_orders("user_id", user_id, status, offset, limit)

    async def list_orders_by_shop(
        self,
        shop_id: str,
        status: OrderStatus | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Order]:
        """A shop's orders, newest first."""
        return await self._list_orders("shop_id", shop_id, status, offset, limit)

    async def get_order_stats(
        self,
        user_id: str | None = None,
        shop_id: str | None = None,
        start: int | None = None,
        end: int | None = None,
    ) -> OrderStats:
        """Order counts and revenue, optionally scoped and bounded by created_at."""
        if user_id:
            orders = await self.store.query(Order, "user_id", user_id)
        elif shop_id:
            orders = await self.store.query(Order, "shop_id", shop_id)
        else:
            orders = await self._all_orders()

        if shop_id:
            orders = [o for o in orders if o.shop_id == shop_id]
        if start is not None:
            orders = [o for o in orders if o.created_at >= start]
        if end is not None:
            orders = [o for o in orders if o.created_at <= end]

        revenue = float(sum((o.total_amount for o in orders), 0))
        counts = Counter(o.status for o in orders)

        return OrderStats(
            total_orders=len(orders),
            total_revenue=revenue,
            average_order_value=revenue / len(orders) if orders else 0.0,
            by_status={status: counts.get(status, 0) for status in OrderStatus},
        )

    async def get_recent_orders(
        self,
        user_id: str | None = None,
        shop_id: str | None = None,
        limit: int | None = None,
    ) -> list[Order]:
        """Newest orders first, for one customer, one shop or the whole marketplace."""
        if user_id:
            return await self.store.query(Order, "user_id", user_id, limit=limit)
        if shop_id:
            return await self.store.query(Order, "shop_id", shop_id, limit=limit)

        orders = sorted(await self._all_orders(), key=lambda o: o.created_at, reverse=True)
        return orders if limit is None else orders[:limit]

    async def get_order_items(self, order_id: str) -> list[OrderItemDetail]:
        order = await self._require_order(order_id)
        products = await self.store.get_many(Product, [item.product_id for item in order.items])
        by_id = {product.id: product for product in products}
        return [
            OrderItemDetail(**item.model_dump(), product=by_id.get(item.product_id))
            for item in order.items
        ]

    async def estimate_delivery(self, order_id: str) -> EtaWindow:
        """
        Current delivery window for an order.

        Measured from the shop, or from the rider's last reported location
        once the order is out for delivery. Reads only, so clients can poll it.
        """
        order = await self._require_order(order_id)
        if order.is_terminal:
            raise PreconditionFailedError(f"Order is already {order.status.value}")

        shop = await self.store.get(Shop, order.shop_id)
        if shop is None:
            raise NotFoundError("shop", order.shop_id)

        destination = order.delivery_address.coordinates
        if destination is None:
            raise PreconditionFailedError("Order has no delivery coordinates")

        origin = shop.location
        if order.status == OrderStatus.OUT_FOR_DELIVERY and order.rider_id:
            rider = await self.store.get(Rider, order.rider_id)
            if rider:
                origin = rider.current_location
        if origin is None:
            raise PreconditionFailedError("Shop has no coordinates")

        shop_orders = await self.store.query(Order, "shop_id", shop.id)
        open_orders = sum(
            1 for o in shop_orders if o.id != order.id and o.status in OPEN_STATUSES
        )

        return estimate_eta(
            haversine_km(origin, destination),
            shop.delivery_profile,
            open_orders,
            is_peak_hour(self.clock.now_ms(), self.settings),
            self.settings,
        )

    # =====================================================
    # COMMANDS
    # =====================================================
    async def create_order(
        self,
        user_id: str,
        shop_id: str,
        items: list[OrderItem | dict[str, Any]],
        totals: OrderTotals | dict[str, Any],
        delivery_address: Address | dict[str, Any],
        payment_method: str,
        notes: str | None = None,
    ) -> Order:
        """
        Place a new order and take its items out of stock.

        Stock is decremented from the value read at commit time and clamped
        at zero. A missing product aborts the whole order.

        Raises:
            NotFoundError: shop or a product does not exist
        """
        items = [OrderItem.model_validate(item) for item in items]
        totals = OrderTotals.model_validate(totals)
        address = Address.model_validate(delivery_address)

        shop = await self.store.get(Shop, shop_id)
        if shop is None:
            raise NotFoundError("shop", shop_id)

        quantities: Counter[str] = Counter()
        for item in items:
            quantities[item.product_id] += item.quantity

        now = self.clock.now_ms()

        async def op(txn: Transaction) -> Order:
            order = Order(
                order_number=await self._claim_order_number(txn),
                user_id=user_id,
                shop_id=shop_id,
                items=items,
                subtotal=totals.subtotal,
                delivery_fee=totals.delivery_fee,
                tax=totals.tax,
                total_amount=totals.total_amount,
                delivery_address=address,
                payment_method=payment_method,
                notes=notes,
                created_at=now,
                updated_at=now,
            )

            for product_id, quantity in quantities.items():
                product = await txn.require(Product, product_id, "product")
                product.apply_order(quantity)
                product.updated_at = now
                txn.put(product)

            await txn.insert(order)
            return order

        try:
            order = await self.store.transaction(op)
        except FulfillmentError as e:
            self.logger.log_rejected(None, OrderEvent.CREATE.value, e.code, e.message, shop_id=shop_id)
            raise

        self.logger.log_transition(
            order.id,
            OrderEvent.CREATE.value,
            None,
            order.status.value,
            actor_id=user_id,
            order_number=order.order_number,
            total_amount=float(order.total_amount),
        )

        await self.notifier.notify_user(
            order.user_id,
            "Order placed",
            f"Your order {order.order_number} has been placed.",
            self._order_data(order),
        )
        await self.notifier.notify_shopkeeper(
            shop.owner_id,
            "New order received",
            f"Order {order.order_number} is waiting for your confirmation.",
            self._order_data(order),
        )
        return order

    async def accept_order(
        self,
        order_id: str,
        actor_id: str,
        *,
        payment_status: PaymentStatus | None = None,
        delivery_time: str | None = None,
    ) -> Order:
        """Shop owner confirms a pending order."""

        async def body(txn: Transaction, order: Order, ctx: dict[str, Any]) -> None:
            ctx["shop"] = await self._require_shop_owner(txn, order, actor_id)
            self._advance(order, OrderEvent.ACCEPT)

        order, ctx = await self._run(
            order_id, OrderEvent.ACCEPT, body, actor_id, payment_status, delivery_time
        )

        await self.notifier.notify_user(
            order.user_id,
            "Order accepted",
            f"{ctx['shop'].name} accepted your order {order.order_number}.",
            self._order_data(order),
        )
        return order

    async def assign_rider(
        self,
        order_id: str,
        rider_id: str,
        actor_id: str,
        *,
        payment_status: PaymentStatus | None = None,
        delivery_time: str | None = None,
    ) -> Order:
        """
        Hand an accepted order to a rider and mark the rider busy.

        Order and rider are committed together. When two orders race for the
        same rider only one commit sees the rider idle; the other is retried
        and fails with PreconditionFailedError.
        """

        async def body(txn: Transaction, order: Order, ctx: dict[str, Any]) -> None:
            await self._require_shop_owner(txn, order, actor_id)
            self._advance(order, OrderEvent.ASSIGN_RIDER)

            rider = await txn.require(Rider, rider_id, "rider")
            if not rider.is_online:
                raise PreconditionFailedError(f"Rider {rider_id} is offline")
            if rider.is_busy:
                raise PreconditionFailedError(
                    f"Rider {rider_id} is unavailable, already assigned to another order"
                )

            order.rider_id = rider.id
            rider.is_busy = True
            rider.assigned_order_id = order.id
            rider.updated_at = self.clock.now_ms()
            txn.put(rider)
            ctx["rider"] = rider

        order, ctx = await self._run(
            order_id,
            OrderEvent.ASSIGN_RIDER,
            body,
            actor_id,
            payment_status,
            delivery_time,
            rider_id=rider_id,
        )

        rider = ctx["rider"]
        await self.notifier.notify_rider(
            rider.user_id,
            "New delivery assigned",
            f"Pick up order {order.order_number}.",
            self._delivery_data(order),
        )
        await self.notifier.notify_user(
            order.user_id,
            "Rider assigned",
            f"{rider.name} will deliver your order {order.order_number}.",
            self._delivery_data(order),
        )
        return order

    async def start_delivery(
        self,
        order_id: str,
        rider_id: str | None = None,
        *,
        payment_status: PaymentStatus | None = None,
        delivery_time: str | None = None,
    ) -> Order:
        """Rider confirms pickup. A given rider must be the one assigned."""

        async def body(txn: Transaction, order: Order, ctx: dict[str, Any]) -> None:
            self._advance(order, OrderEvent.START_DELIVERY)
            if rider_id is not None and rider_id != order.rider_id:
                raise UnauthorizedError(f"Rider {rider_id} is not assigned to this order")

        order, _ = await self._run(
            order_id,
            OrderEvent.START_DELIVERY,
            body,
            rider_id,
            payment_status,
            delivery_time,
        )

        await self.notifier.notify_user(
            order.user_id,
            "Out for delivery",
            f"Your order {order.order_number} is on its way.",
            self._delivery_data(order),
        )
        return order

    async def mark_delivered(
        self,
        order_id: str,
        delivery_time: str | None = None,
        *,
        payment_status: PaymentStatus | None = None,
    ) -> Order:
        """Complete the delivery and free the rider."""

        async def body(txn: Transaction, order: Order, ctx: dict[str, Any]) -> None:
            self._advance(order, OrderEvent.DELIVER)
            ctx["shop"] = await txn.get(Shop, order.shop_id)

            if order.rider_id is None:
                return
            rider = await txn.get(Rider, order.rider_id)
            if rider is None or rider.assigned_order_id != order.id:
                ctx["rider_not_released"] = order.rider_id
                return

            rider.is_busy = False
            rider.assigned_order_id = None
            rider.updated_at = self.clock.now_ms()
            txn.put(rider)

        order, ctx = await self._run(
            order_id, OrderEvent.DELIVER, body, None, payment_status, delivery_time
        )

        if "rider_not_released" in ctx:
            self.logger.logger.warning(
                "rider_not_released",
                order_id=order.id,
                rider_id=ctx["rider_not_released"],
            )

        await self.notifier.notify_user(
            order.user_id,
            "Order delivered",
            f"Your order {order.order_number} has been delivered.",
            self._delivery_data(order),
        )
        if ctx["shop"] is not None:
            await self.notifier.notify_shopkeeper(
                ctx["shop"].owner_id,
                "Order delivered",
                f"Order {order.order_number} was delivered to the customer.",
                self._delivery_data(order),
            )
        return order

    async def cancel_order(
        self,
        order_id: str,
        reason: str | None = None,
        *,
        payment_status: PaymentStatus | None = None,
    ) -> Order:
        """
        Cancel an order that has not been handed to a rider yet.

        Stock taken at creation is not put back.
        """

        async def body(txn: Transaction, order: Order, ctx: dict[str, Any]) -> None:
            if order.status == OrderStatus.DELIVERED:
                raise PreconditionFailedError("Cannot cancel a delivered order")
            self._advance(order, OrderEvent.CANCEL)
            if reason:
                order.notes = f"{order.notes or ''}\nCancellation reason: {reason}"

        order, _ = await self._run(order_id, OrderEvent.CANCEL, body, None, payment_status)

        self.logger.logger.info(
            "stock_not_restored",
            order_id=order.id,
            products=[item.product_id for item in order.items],
        )
        return order

    async def update_order_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        delivery_time: str | None = None,
        payment_status: PaymentStatus | None = None,
        actor_id: str | None = None,
        rider_id: str | None = None,
    ) -> Order:
        """Move an order to ``new_status`` through the matching transition."""
        new_status = OrderStatus(new_status)
        extras = {"payment_status": payment_status}

        if new_status == OrderStatus.ACCEPTED_BY_SHOPKEEPER:
            return await self.accept_order(
                order_id, actor_id, delivery_time=delivery_time, **extras
            )
        if new_status == OrderStatus.ASSIGNED_TO_RIDER:
            if rider_id is None:
                raise PreconditionFailedError("A rider is required to assign an order")
            return await self.assign_rider(
                order_id, rider_id, actor_id, delivery_time=delivery_time, **extras
            )
        if new_status == OrderStatus.OUT_FOR_DELIVERY:
            return await self.start_delivery(
                order_id, rider_id, delivery_time=delivery_time, **extras
            )
        if new_status == OrderStatus.DELIVERED:
            return await self.mark_delivered(order_id, delivery_time, **extras)
        if new_status == OrderStatus.CANCELLED:
            return await self.cancel_order(order_id, **extras)

        # Nothing leads back to pending.
        order = await self._require_order(order_id)
        raise InvalidTransitionError("move back to pending", order.status.value)

    async def update_payment_status(
        self,
        order_id: str,
        payment_status: PaymentStatus,
    ) -> Order:
        """Record a payment outcome; reaching ``paid`` notifies the customer."""
        payment_status = PaymentStatus(payment_status)

        async def op(txn: Transaction) -> Order:
            order = await txn.require(Order, order_id, "order")
            self._apply_payment(order, payment_status)
            order.updated_at = self.clock.now_ms()
            txn.put(order)
            return order

        try:
            order = await self.store.transaction(op)
        except FulfillmentError as e:
            self.logger.log_rejected(order_id, "payment", e.code, e.message)
            raise

        self.logger.logger.info(
            "payment_status_updated",
            order_id=order.id,
            payment_status=order.payment_status.value,
        )
        if order.payment_status == PaymentStatus.PAID:
            await self._notify_paid(order)
        return order

    async def auto_assign_rider(self, order_id: str, actor_id: str) -> DispatchResult | None:
        """
        Let the dispatch engine pick a rider and assign them.

        A rider taken by a concurrent assignment is left out and dispatch
        runs again. Returns None when nobody qualifies; the order then stays
        accepted for a later retry or a manual pick.
        """
        excluded: set[str] = set()

        for _ in range(self.settings.dispatch_max_attempts):
            order = await self._require_order(order_id)
            shop = await self.store.get(Shop, order.shop_id)
            if shop is None:
                raise NotFoundError("shop", order.shop_id)
            if shop.owner_id != actor_id:
                raise UnauthorizedError("Only the shop owner can dispatch this order")
            if not OrderTransitions.can_transition(order.status, OrderEvent.ASSIGN_RIDER):
                raise InvalidTransitionError(
                    EVENT_ACTIONS[OrderEvent.ASSIGN_RIDER], order.status.value
                )
            if shop.location is None:
                raise PreconditionFailedError("Shop has no coordinates to dispatch from")

            online = await self.store.query(Rider, "is_online", True)
            candidates = [rider for rider in online if rider.id not in excluded]

            result = self.dispatch_engine.assign(
                order, candidates, shop.location, shop.delivery_profile
            )
            if result is None:
                return None

            try:
                await self.assign_rider(order_id, result.rider_id, actor_id)
            except PreconditionFailedError:
                excluded.add(result.rider_id)
                continue
            return result

        return None

    # =====================================================
    # INTERNALS
    # =====================================================
    async def _run(
        self,
        order_id: str,
        event: OrderEvent,
        body: TransitionBody,
        actor_id: str | None,
        payment_status: PaymentStatus | None = None,
        delivery_time: str | None = None,
        **log_fields: Any,
    ) -> tuple[Order, dict[str, Any]]:
        """Apply one transition atomically and log its outcome."""
        now = self.clock.now_ms()

        async def op(txn: Transaction) -> tuple[Order, dict[str, Any]]:
            order = await txn.require(Order, order_id, "order")
            ctx: dict[str, Any] = {"from_status": order.status}

            await body(txn, order, ctx)

            if payment_status is not None:
                ctx["paid"] = self._apply_payment(order, payment_status)
            if delivery_time:
                order.delivery_time = delivery_time
            order.updated_at = now
            txn.put(order)
            return order, ctx

        try:
            order, ctx = await self.store.transaction(op)
        except FulfillmentError as e:
            self.logger.log_rejected(
                order_id, event.value, e.code, e.message, actor_id=actor_id, **log_fields
            )
            raise

        self.logger.log_transition(
            order.id,
            event.value,
            ctx["from_status"].value,
            order.status.value,
            actor_id=actor_id,
            **log_fields,
        )
        if ctx.get("paid"):
            await self._notify_paid(order)
        return order, ctx

    async def _require_order(self, order_id: str) -> Order:
        order = await self.store.get(Order, order_id)
        if order is None:
            raise NotFoundError("order", order_id)
        return order

    async def _require_shop_owner(
        self,
        txn: Transaction,
        order: Order,
        actor_id: str | None,
    ) -> Shop:
        shop = await txn.require(Shop, order.shop_id, "shop")
        if actor_id is None or shop.owner_id != actor_id:
            raise UnauthorizedError("Only the shop owner can manage this order")
        return shop

    async def _claim_order_number(self, txn: Transaction) -> str:
        for _ in range(self.settings.order_number_max_attempts):
            order_number = self.order_numbers.next()
            if await txn.find_unique(Order, "order_number", order_number) is None:
                return order_number
        raise ConcurrencyConflictError("Could not allocate a unique order number")

    @staticmethod
    def _advance(order: Order, event: OrderEvent) -> None:
        next_status = OrderTransitions.next_status(order.status, event)
        if next_status is None:
            raise InvalidTransitionError(EVENT_ACTIONS[event], order.status.value)
        order.status = next_status

    @staticmethod
    def _apply_payment(order: Order, payment_status: PaymentStatus) -> bool:
        """Move the payment status; returns True when it became paid."""
        payment_status = PaymentStatus(payment_status)
        if not PaymentTransitions.can_transition(order.payment_status, payment_status):
            raise InvalidTransitionError(
                f"mark payment {payment_status.value} for",
                order.payment_status.value,
            )
        order.payment_status = payment_status
        return payment_status == PaymentStatus.PAID

    async def _list_orders(
        self,
        field: str,
        value: str,
        status: OrderStatus | None,
        offset: int,
        limit: int | None,
    ) -> list[Order]:
        if status is None:
            return await self.store.query(Order, field, value, offset=offset, limit=limit)

        status = OrderStatus(status)
        orders = [o for o in await self.store.query(Order, field, value) if o.status == status]
        end = None if limit is None else offset + limit
        return orders[offset:end]

    async def _all_orders(self) -> list[Order]:
        orders = []
        for status in OrderStatus:
            orders.extend(await self.store.query(Order, "status", status))
        return orders

    async def _notify_paid(self, order: Order) -> None:
        await self.notifier.notify(
            order.user_id,
            "Payment successful",
            f"Payment of {order.total_amount} for order {order.order_number} was received.",
            NotificationType.PAYMENT,
            PaymentData(
                order_id=order.id,
                payment_status=order.payment_status,
                amount=order.total_amount,
            ),
        )

    @staticmethod
    def _order_data(order: Order) -> OrderUpdateData:
        return OrderUpdateData(
            order_id=order.id,
            order_number=order.order_number,
            status=order.status,
        )

    @staticmethod
    def _delivery_data(order: Order) -> DeliveryData:
        return DeliveryData(order_id=order.id, rider_id=order.rider_id, status=order.status)
