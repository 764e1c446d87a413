"""Shopping cart held per browser session.

Carts live in process memory only; losing them on restart is accepted. Prices
held here are the ones shown to the shopper and are never used to charge.
"""

import itertools
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from schemas import CheckoutItemIn, Product

TOAST_TTL = 2.5
CART_IDLE_TTL = 60 * 60 * 24


@dataclass
class Toast:
    id: int
    message: str
    expires_at: float


class ToastQueue:
    """Short-lived "added to cart" notices. Each expires after ``ttl`` seconds or when dismissed."""

    def __init__(self, ttl: float = TOAST_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._ids = itertools.count(1)
        self._toasts: List[Toast] = []

    def push(self, message: str) -> Toast:
        toast = Toast(id=next(self._ids), message=message, expires_at=self.clock() + self.ttl)
        self._toasts.append(toast)
        return toast

    def active(self) -> List[Toast]:
        now = self.clock()
        self._toasts = [t for t in self._toasts if t.expires_at > now]
        return list(self._toasts)

    def dismiss(self, toast_id: int) -> bool:
        before = len(self._toasts)
        self._toasts = [t for t in self._toasts if t.id != toast_id]
        return len(self._toasts) != before


@dataclass
class CartLine:
    product: Product
    quantity: int = 1

    @property
    def line_total(self) -> float:
        return round(self.product.price * self.quantity, 2)


@dataclass
class Cart:
    lines: List[CartLine] = field(default_factory=list)
    toasts: ToastQueue = field(default_factory=ToastQueue)

    def find(self, product_id: str) -> Optional[CartLine]:
        return next((line for line in self.lines if line.product.id == product_id), None)

    def add(self, product: Product) -> CartLine:
        line = self.find(product.id)
        if line is not None:
            line.quantity += 1
        else:
            line = CartLine(product=product)
            self.lines.append(line)
        self.toasts.push(f"{product.name} added to cart!")
        return line

    def set_quantity(self, product_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove(product_id)
            return
        line = self.find(product_id)
        if line is not None:
            line.quantity = quantity

    def remove(self, product_id: str) -> None:
        self.lines = [line for line in self.lines if line.product.id != product_id]

    def clear(self) -> None:
        self.lines = []

    def subtotal(self) -> float:
        return round(sum(line.product.price * line.quantity for line in self.lines), 2)

    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def checkout_items(self) -> List[CheckoutItemIn]:
        return [CheckoutItemIn(id=line.product.id, quantity=line.quantity) for line in self.lines]


class CartRegistry:
    """Session id -> Cart.

    A cart is created only by ``get`` and dropped after ``idle_ttl`` seconds
    without being touched.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, idle_ttl: float = CART_IDLE_TTL):
        self.clock = clock
        self.idle_ttl = idle_ttl
        self._lock = threading.Lock()
        self._carts: Dict[str, Cart] = {}
        self._touched: Dict[str, float] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._carts)

    def get(self, session_id: str) -> Cart:
        with self._lock:
            now = self.clock()
            self._sweep(now)
            cart = self._carts.get(session_id)
            if cart is None:
                cart = Cart(toasts=ToastQueue(clock=self.clock))
                self._carts[session_id] = cart
            self._touched[session_id] = now
            return cart

    def find(self, session_id: Optional[str]) -> Optional[Cart]:
        """Existing cart for the session, or None. Never creates one."""
        if not session_id:
            return None
        with self._lock:
            now = self.clock()
            self._sweep(now)
            cart = self._carts.get(session_id)
            if cart is not None:
                self._touched[session_id] = now
            return cart

    def discard(self, session_id: Optional[str]) -> None:
        with self._lock:
            self._carts.pop(session_id, None)
            self._touched.pop(session_id, None)

    def _sweep(self, now: float) -> None:
        idle = [sid for sid, touched in self._touched.items() if now - touched > self.idle_ttl]
        for sid in idle:
            self._carts.pop(sid, None)
            self._touched.pop(sid, None)
