"""In-process catalog and order stores.

Same contracts as the MongoDB adapters; used by the test suite and handy for
running the API without a database.
"""

import threading
from typing import Dict, List, Optional

from database import utcnow
from errors import DuplicateOrderId, ProductExists
from schemas import Order, OrderStatus, Product
from stores import CatalogStore, OrderStore


class InMemoryCatalogStore(CatalogStore):
    def __init__(self, products: Optional[List[Product]] = None):
        self._lock = threading.Lock()
        self._products: Dict[str, Product] = {}
        for product in products or []:
            self.insert_product(product)

    def get_product(self, product_id: str) -> Optional[Product]:
        product = self._products.get(product_id)
        return product.model_copy(deep=True) if product else None

    def list_products(self, category: Optional[str] = None) -> List[Product]:
        return [
            p.model_copy(deep=True)
            for p in self._products.values()
            if category is None or p.category == category
        ]

    def count_products(self) -> int:
        return len(self._products)

    def insert_product(self, product: Product) -> str:
        with self._lock:
            if product.id in self._products:
                raise ProductExists(product.id)
            self._products[product.id] = product.model_copy(deep=True)
        return product.id

    def replace_product(self, product: Product) -> bool:
        with self._lock:
            if product.id not in self._products:
                return False
            self._products[product.id] = product.model_copy(deep=True)
        return True

    def delete_product(self, product_id: str) -> bool:
        with self._lock:
            return self._products.pop(product_id, None) is not None


class InMemoryOrderStore(OrderStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._orders: Dict[str, Order] = {}

    def insert_order(self, order: Order) -> str:
        with self._lock:
            if order.order_id in self._orders:
                raise DuplicateOrderId(order.order_id)
            self._orders[order.order_id] = order.model_copy(deep=True)
        return order.order_id

    def get_order(self, order_id: str) -> Optional[Order]:
        order = self._orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    def update_order_status(self, order_id, status, updated_at=None, expected_status=None) -> bool:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                return False
            if expected_status is not None and order.status != OrderStatus(expected_status).value:
                return False
            self._orders[order_id] = order.model_copy(
                update={"status": OrderStatus(status).value, "updated_at": updated_at or utcnow()}
            )
        return True

    def list_orders(self, status=None) -> List[Order]:
        orders = [
            o.model_copy(deep=True)
            for o in self._orders.values()
            if status is None or o.status == OrderStatus(status).value
        ]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)
