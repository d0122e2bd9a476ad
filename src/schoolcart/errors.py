"""Custom exceptions for schoolcart."""


class SchoolCartError(Exception):
    """Base exception for all schoolcart errors."""

    pass


# --- Discount codes ---


class EmptyCodeError(SchoolCartError):
    """Raised when a blank discount code is submitted."""

    def __init__(self):
        super().__init__("Enter a discount code")


class CodeNotRecognisedError(SchoolCartError):
    """Raised when a discount code is not in the site's code list."""

    def __init__(self, code: str):
        self.code = code
        super().__init__("Code not recognised")


class CodeAlreadyAppliedError(SchoolCartError):
    """Raised when a discount code is already in the applied set."""

    def __init__(self, code: str):
        self.code = code
        super().__init__("Code already applied")


class PercentCodeLimitError(SchoolCartError):
    """Raised when a second percentage code is applied."""

    def __init__(self, code: str, existing: str):
        self.code = code
        self.existing = existing
        super().__init__("Only one percentage discount can be used")


# --- Catalog ---


class CatalogFileError(SchoolCartError):
    """Raised when a catalog data file is missing or malformed."""

    def __init__(self, path: str, reason: str | None = None):
        self.path = path
        msg = f"Failed to load {path}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class StoreNotFoundError(SchoolCartError):
    """Raised when a store ID doesn't exist in the catalog."""

    def __init__(self, store_id: str):
        self.store_id = store_id
        super().__init__(f'Store "{store_id}" not found')


class ProductNotFoundError(SchoolCartError):
    """Raised when a sku isn't sold by the given store."""

    def __init__(self, store_id: str, sku: str):
        self.store_id = store_id
        self.sku = sku
        super().__init__(f"Product {sku} not found in store {store_id}")


# --- Cart ---


class QuantityLimitError(SchoolCartError):
    """Raised when a cart line would exceed the store's per-item limit."""

    def __init__(self, sku: str, qty: int, max_qty: int):
        self.sku = sku
        self.qty = qty
        self.max_qty = max_qty
        super().__init__(
            f"Quantity {qty} for {sku} exceeds the limit of {max_qty} per item"
        )


class InvalidLineSpecError(SchoolCartError):
    """Raised when a 'sku=qty' line spec can't be parsed."""

    def __init__(self, spec: str, reason: str | None = None):
        self.spec = spec
        msg = f"Invalid line: {spec}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class CartNotFoundError(SchoolCartError):
    """Raised when a cart ID doesn't exist."""

    def __init__(self, cart_id: str):
        self.cart_id = cart_id
        super().__init__(f"Cart not found: {cart_id}")


class EmptyCartError(SchoolCartError):
    """Raised when checking out with nothing in the cart."""

    def __init__(self):
        super().__init__("Your cart is empty.")


# --- Checkout ---


class InvalidBuyerError(SchoolCartError):
    """Raised when buyer details or justifications are invalid."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class InvalidCardNumberError(SchoolCartError):
    """Raised when a gift card number isn't 6-24 digits."""

    def __init__(self, number: str):
        self.number = number
        super().__init__("Enter 6-24 digits")


class GiftCardNotFoundError(SchoolCartError):
    """Raised when a gift card number isn't in the card list."""

    def __init__(self, number: str):
        self.number = number
        super().__init__("Gift card not found")


class InsufficientBalanceError(SchoolCartError):
    """Raised when a gift card can't cover the charge."""

    def __init__(self, balance: str, amount: str):
        self.balance = balance
        self.amount = amount
        super().__init__(f"Insufficient balance (available {balance})")


class OrderNotFoundError(SchoolCartError):
    """Raised when an order ID doesn't exist in history."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")
