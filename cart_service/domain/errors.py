# cart_service/domain/errors.py
"""
Wyjatki domeny cart.
Kazdy ma stabilny kod (code) mapowany 1:1 na status HTTP w api/errors.py.
"""


class CartError(Exception):
    """Base exception for all cart business errors."""

    code = "CART_ERROR"

    def __init__(self, message: str = "Cart operation failed"):
        self.message = message
        super().__init__(self.message)


class InvalidRequestError(CartError):
    """Missing identity, bad quantity or price on the request."""

    code = "INVALID_REQUEST"


class CartValidationError(InvalidRequestError):
    """Raised by the Cart aggregate when an invariant would be broken."""


class ProductNotFoundError(CartError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str | None = None):
        msg = f"Product not found: {product_id}" if product_id else "Product not found"
        super().__init__(msg)
        self.product_id = product_id


class InsufficientStockError(CartError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, message: str, available_quantity: int | None = None):
        super().__init__(message)
        self.available_quantity = available_quantity


class CartNotFoundError(CartError):
    code = "CART_NOT_FOUND"

    def __init__(self, identifier: str | None = None):
        msg = f"Cart not found: {identifier}" if identifier else "Cart not found"
        super().__init__(msg)


class CartItemNotFoundError(CartError):
    code = "CART_ITEM_NOT_FOUND"

    def __init__(self, product_id: str):
        super().__init__(f"Product {product_id} is not in the cart")
        self.product_id = product_id


class CartVersionConflictError(CartError):
    """Optimistic locking: the cart row changed since it was loaded."""

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, cart_id: str):
        super().__init__(f"Cart {cart_id} was modified by another operation")
        self.cart_id = cart_id


class ExternalServiceError(CartError):
    code = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, service_name: str, message: str):
        super().__init__(f"{service_name} error: {message}")
