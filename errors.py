"""Error taxonomy for the store.

Every error carries the HTTP status it maps to and a message that is safe to
show to the caller. main.py renders them as ``{"success": false, "error": ...}``.
"""


class StoreError(Exception):
    status_code = 500
    kind = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(StoreError):
    """Malformed input; the client should fix it and resubmit."""

    status_code = 400
    kind = "invalid_input"


class UnknownProduct(StoreError):
    """A cart line references a product the catalog no longer has."""

    status_code = 409
    kind = "unknown_product"

    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class ProductNotFound(StoreError):
    status_code = 404
    kind = "not_found"

    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class ProductExists(StoreError):
    status_code = 409
    kind = "conflict"

    def __init__(self, product_id: str):
        super().__init__(f"Product already exists: {product_id}")
        self.product_id = product_id


class OrderNotFound(StoreError):
    status_code = 404
    kind = "not_found"

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class InvalidTransition(StoreError):
    status_code = 409
    kind = "conflict"


class AdminAuthError(StoreError):
    status_code = 401
    kind = "unauthorized"


class PersistenceError(StoreError):
    """The store could not be read or written; the caller should retry later."""

    def __init__(self, message: str = "Something went wrong processing your order. Please try again."):
        super().__init__(message)


class DuplicateOrderId(PersistenceError):
    def __init__(self, order_id: str):
        super().__init__()
        self.order_id = order_id


class OrderIdCollision(PersistenceError):
    pass
