"""Domain errors raised by the cart and checkout services."""


class CheckoutError(Exception):
    """Base class for cart and checkout failures."""

    code = "checkout_error"


class UnknownProduct(CheckoutError):
    """The requested sku is not in the catalog."""

    code = "unknown_product"

    def __init__(self, sku: str):
        super().__init__(f"Unknown product: {sku}")
        self.sku = sku


class InvalidQuantity(CheckoutError):
    """The requested quantity is outside the allowed per-line range."""

    code = "invalid_quantity"

    def __init__(self, quantity, maximum: int):
        super().__init__(f"Quantity must be between 1 and {maximum}, got {quantity!r}")
        self.quantity = quantity
        self.maximum = maximum


class EmptyCart(CheckoutError):
    code = "cart_empty"

    def __init__(self):
        super().__init__("Cart is empty")


class CheckoutFailed(CheckoutError):
    """Persisting the order failed; nothing was committed."""

    code = "checkout_failed"


class StoreUnavailable(CheckoutError):
    """A backing store (database or session cart store) cannot be reached."""

    code = "store_unavailable"


class OrderNotFound(CheckoutError):
    code = "order_not_found"

    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id
