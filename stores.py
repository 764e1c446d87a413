"""Storage ports for the catalog and orders, plus their MongoDB adapters.

The checkout core only ever reads from a CatalogStore; writes to it come from
the admin product routes.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

import structlog
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from database import create_document, get_documents, serialize_doc, utcnow
from errors import DuplicateOrderId, PersistenceError, ProductExists
from schemas import Order, OrderStatus, Product

logger = structlog.get_logger(__name__)

PRODUCT_COLLECTION = "product"
ORDER_COLLECTION = "order"


class CatalogStore(ABC):
    @abstractmethod
    def get_product(self, product_id: str) -> Optional[Product]:
        ...

    @abstractmethod
    def list_products(self, category: Optional[str] = None) -> List[Product]:
        ...

    @abstractmethod
    def count_products(self) -> int:
        ...

    @abstractmethod
    def insert_product(self, product: Product) -> str:
        """Insert a new product. Raises ProductExists when the slug is taken."""

    @abstractmethod
    def replace_product(self, product: Product) -> bool:
        """Overwrite an existing product's fields. Returns False when it does not exist."""

    @abstractmethod
    def delete_product(self, product_id: str) -> bool:
        ...


class OrderStore(ABC):
    @abstractmethod
    def insert_order(self, order: Order) -> str:
        """Insert a new order. Raises DuplicateOrderId instead of overwriting."""

    @abstractmethod
    def get_order(self, order_id: str) -> Optional[Order]:
        ...

    @abstractmethod
    def update_order_status(
        self,
        order_id: str,
        status: OrderStatus,
        updated_at: datetime,
        expected_status: Optional[OrderStatus] = None,
    ) -> bool:
        """Set status and updated_at in one atomic write.

        When ``expected_status`` is given the write only applies if the order is
        currently in that status. Returns whether a document matched.
        """

    @abstractmethod
    def list_orders(self, status: Optional[OrderStatus] = None) -> List[Order]:
        """Orders newest first, optionally filtered by status."""


# --------- MongoDB adapters ---------

class MongoCatalogStore(CatalogStore):
    def __init__(self, database: Database):
        self.db = database
        self.collection = database[PRODUCT_COLLECTION]

    def get_product(self, product_id: str) -> Optional[Product]:
        try:
            doc = self.collection.find_one({"_id": product_id})
        except PyMongoError as exc:
            logger.exception("Catalog lookup failed", product_id=product_id)
            raise PersistenceError() from exc
        return Product(**serialize_doc(doc)) if doc else None

    def list_products(self, category: Optional[str] = None) -> List[Product]:
        query = {"category": category} if category else {}
        try:
            docs = get_documents(PRODUCT_COLLECTION, query, sort=[("created_at", 1)], database=self.db)
        except PyMongoError as exc:
            logger.exception("Catalog listing failed", category=category)
            raise PersistenceError() from exc
        return [Product(**serialize_doc(d)) for d in docs]

    def count_products(self) -> int:
        try:
            return self.collection.count_documents({})
        except PyMongoError as exc:
            logger.exception("Catalog count failed")
            raise PersistenceError() from exc

    def insert_product(self, product: Product) -> str:
        doc = product.model_dump()
        doc["_id"] = doc.pop("id")
        try:
            create_document(PRODUCT_COLLECTION, doc, database=self.db)
        except DuplicateKeyError as exc:
            raise ProductExists(product.id) from exc
        except PyMongoError as exc:
            logger.exception("Product insert failed", product_id=product.id)
            raise PersistenceError("Failed to add product.") from exc
        return product.id

    def replace_product(self, product: Product) -> bool:
        fields = product.model_dump(exclude={"id"})
        fields["updated_at"] = utcnow()
        try:
            result = self.collection.update_one({"_id": product.id}, {"$set": fields})
        except PyMongoError as exc:
            logger.exception("Product update failed", product_id=product.id)
            raise PersistenceError("Failed to update product.") from exc
        return result.matched_count == 1

    def delete_product(self, product_id: str) -> bool:
        try:
            result = self.collection.delete_one({"_id": product_id})
        except PyMongoError as exc:
            logger.exception("Product delete failed", product_id=product_id)
            raise PersistenceError("Failed to delete product.") from exc
        return result.deleted_count == 1


class MongoOrderStore(OrderStore):
    def __init__(self, database: Database):
        self.db = database
        self.collection = database[ORDER_COLLECTION]

    def insert_order(self, order: Order) -> str:
        doc = order.model_dump()
        doc["_id"] = doc.pop("order_id")
        try:
            create_document(ORDER_COLLECTION, doc, database=self.db)
        except DuplicateKeyError as exc:
            raise DuplicateOrderId(order.order_id) from exc
        except PyMongoError as exc:
            logger.exception("Order insert failed", order_id=order.order_id)
            raise PersistenceError() from exc
        return order.order_id

    def get_order(self, order_id: str) -> Optional[Order]:
        try:
            doc = self.collection.find_one({"_id": order_id})
        except PyMongoError as exc:
            logger.exception("Order lookup failed", order_id=order_id)
            raise PersistenceError() from exc
        return Order(**serialize_doc(doc, "order_id")) if doc else None

    def update_order_status(self, order_id, status, updated_at, expected_status=None) -> bool:
        query = {"_id": order_id}
        if expected_status is not None:
            query["status"] = OrderStatus(expected_status).value
        try:
            result = self.collection.update_one(
                query,
                {"$set": {"status": OrderStatus(status).value, "updated_at": updated_at}},
            )
        except PyMongoError as exc:
            logger.exception("Order status update failed", order_id=order_id, status=str(status))
            raise PersistenceError() from exc
        return result.matched_count == 1

    def list_orders(self, status=None) -> List[Order]:
        query = {"status": OrderStatus(status).value} if status is not None else {}
        try:
            docs = get_documents(ORDER_COLLECTION, query, sort=[("created_at", DESCENDING)], database=self.db)
        except PyMongoError as exc:
            logger.exception("Order listing failed")
            raise PersistenceError() from exc
        return [Order(**serialize_doc(d, "order_id")) for d in docs]
