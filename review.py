"""Admin review of orders: approve, reject, list and dashboard numbers.

pending -> success | rejected. Both targets are terminal; asking for the state
an order is already in is a no-op, asking for the other one is refused.
"""

from typing import Callable, List, Optional

import structlog

from database import utcnow
from errors import InvalidInput, InvalidTransition, OrderNotFound
from schemas import CamelModel, Order, OrderStatus
from stores import CatalogStore, OrderStore

logger = structlog.get_logger(__name__)


class OrderStats(CamelModel):
    total_orders: int
    pending_orders: int
    success_orders: int
    rejected_orders: int
    total_revenue: float
    total_products: int


def parse_status(value: Optional[str]) -> Optional[OrderStatus]:
    if value in (None, "", "all"):
        return None
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidInput(f"Unknown order status: {value}") from None


class OrderReview:
    def __init__(self, orders: OrderStore, products: Optional[CatalogStore] = None, clock: Callable = utcnow):
        self.orders = orders
        self.products = products
        self.clock = clock

    def approve(self, order_id: str) -> Order:
        return self._transition(order_id, OrderStatus.SUCCESS)

    def reject(self, order_id: str) -> Order:
        return self._transition(order_id, OrderStatus.REJECTED)

    def _transition(self, order_id: str, target: OrderStatus) -> Order:
        order = self.orders.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        if order.status == target.value:
            logger.info("Order already in target status", order_id=order_id, status=target.value)
            return order
        if order.status != OrderStatus.PENDING.value:
            raise InvalidTransition(f"Order {order_id} is already {order.status}.")

        now = self.clock()
        applied = self.orders.update_order_status(
            order_id, target, now, expected_status=OrderStatus.PENDING
        )
        if not applied:
            # Someone else moved it between our read and write
            current = self.orders.get_order(order_id)
            if current is None:
                raise OrderNotFound(order_id)
            if current.status == target.value:
                return current
            raise InvalidTransition(f"Order {order_id} is already {current.status}.")

        logger.info("Order reviewed", order_id=order_id, status=target.value)
        return order.model_copy(update={"status": target.value, "updated_at": now})

    def list_orders(self, status: Optional[str] = None) -> List[Order]:
        return self.orders.list_orders(parse_status(status))

    def stats(self) -> OrderStats:
        orders = self.orders.list_orders()
        approved = [o for o in orders if o.status == OrderStatus.SUCCESS.value]
        return OrderStats(
            total_orders=len(orders),
            pending_orders=sum(1 for o in orders if o.status == OrderStatus.PENDING.value),
            success_orders=len(approved),
            rejected_orders=sum(1 for o in orders if o.status == OrderStatus.REJECTED.value),
            total_revenue=round(sum(o.total for o in approved), 2),
            total_products=self.products.count_products() if self.products is not None else 0,
        )
