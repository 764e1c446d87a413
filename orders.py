"""Order intake: turns a checkout submission into a stored, pending order."""

import secrets
import string
import threading
import time
from typing import Callable, Optional

import structlog

from catalog import Catalog, order_total
from checkout import ValidatedCheckout, validate_checkout
from database import utcnow
from errors import DuplicateOrderId, OrderIdCollision
from notifications import OrderNotifier
from schemas import CheckoutRequest, CheckoutResponse, Order, OrderStatus
from stores import OrderStore

logger = structlog.get_logger(__name__)

ORDER_ID_PREFIX = "ORD"
SUFFIX_LENGTH = 5
MAX_ID_ATTEMPTS = 3

_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase
_stamp_lock = threading.Lock()
_last_stamp = 0


def _next_stamp() -> int:
    """Millisecond timestamp, strictly increasing within this process."""
    global _last_stamp
    with _stamp_lock:
        stamp = max(int(time.time() * 1000), _last_stamp + 1)
        _last_stamp = stamp
        return stamp


def generate_order_id() -> str:
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{ORDER_ID_PREFIX}-{_next_stamp()}-{suffix}"


class OrderIntake:
    """Validates, prices and stores new orders.

    Nothing is written until every rule has passed and every line has been
    priced from the catalog. The owner notification runs after the write and
    cannot undo it.
    """

    def __init__(
        self,
        catalog: Catalog,
        orders: OrderStore,
        notifier: Optional[OrderNotifier] = None,
        id_factory: Callable[[], str] = generate_order_id,
        clock: Callable = utcnow,
    ):
        self.catalog = catalog
        self.orders = orders
        self.notifier = notifier
        self.id_factory = id_factory
        self.clock = clock

    def place_order(self, request: CheckoutRequest) -> CheckoutResponse:
        checkout = validate_checkout(request)
        items = self.catalog.price_items(checkout.lines)
        total = order_total(items)

        order = self._store(checkout, items, total)
        logger.info(
            "Order placed",
            order_id=order.order_id,
            username=order.minecraft_username,
            edition=order.edition,
            utr=order.transaction_reference,
            total=order.total,
            items=", ".join(f"{i.name} x{i.quantity}" for i in order.items),
        )

        if self.notifier is not None:
            self.notifier.notify(order)

        return CheckoutResponse(
            order_id=order.order_id,
            minecraft_username=order.minecraft_username,
            edition=order.edition,
            total=order.total,
            item_count=len(order.items),
            items=order.items,
            message=(
                f"Order placed for {order.minecraft_username}! We'll verify your payment "
                f"(UTR: {order.transaction_reference}) and deliver your items in-game."
            ),
        )

    def _store(self, checkout: ValidatedCheckout, items, total) -> Order:
        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            now = self.clock()
            order = Order(
                order_id=self.id_factory(),
                minecraft_username=checkout.minecraft_username,
                edition=checkout.edition,
                transaction_reference=checkout.transaction_reference,
                items=items,
                total=total,
                status=OrderStatus.PENDING.value,
                created_at=now,
                updated_at=now,
            )
            try:
                self.orders.insert_order(order)
            except DuplicateOrderId:
                logger.warning("Order id collision", order_id=order.order_id, attempt=attempt)
                continue
            return order

        logger.error("Gave up allocating an order id", attempts=MAX_ID_ATTEMPTS)
        raise OrderIdCollision("Could not allocate an order id. Please try again.")
