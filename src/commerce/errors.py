"""Domain errors for the commerce service.

Every error that crosses a component boundary is a ``CommerceError`` with a
stable ``code``. The API layer renders ``code``, the message and ``extra()``
and uses ``status_code`` for the HTTP response.
"""


class CommerceError(Exception):
    """Base exception for all commerce errors."""

    code = "CommerceError"
    status_code = 400

    def extra(self) -> dict:
        """Additional fields rendered alongside the error message."""
        return {}


class ConfigurationError(CommerceError):
    """Raised at startup when required settings are missing or invalid."""

    code = "ConfigurationError"
    status_code = 500

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


class ProductNotFound(CommerceError):
    code = "ProductNotFound"
    status_code = 404

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class InsufficientStock(CommerceError):
    """Requested quantity exceeds what is left in stock."""

    code = "InsufficientStock"

    def __init__(self, product_id: str, available: int, message: str | None = None):
        self.product_id = product_id
        self.available = max(available, 0)
        super().__init__(message or f"Only {self.available} item(s) of product {product_id} are available")

    def extra(self) -> dict:
        return {"productId": self.product_id, "available": self.available}


class OutOfStock(InsufficientStock):
    """The product has no remaining stock at all."""

    code = "OutOfStock"

    def __init__(self, product_id: str):
        super().__init__(product_id, 0, f"Product {product_id} is out of stock")


class CartLineNotFound(CommerceError):
    code = "NotFound"
    status_code = 404

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product {product_id} is not in the cart")


class EmptyCart(CommerceError):
    code = "EmptyCart"

    def __init__(self):
        super().__init__("Cart is empty")


class NotConfigured(CommerceError):
    """A product cannot be sold because it has no usable price reference."""

    code = "NotConfigured"

    def __init__(self, product_id: str, reason: str = "is not configured for payments"):
        self.product_id = product_id
        super().__init__(f"Product {product_id} {reason}")


class PriceNotFound(CommerceError):
    """The payment provider does not know the requested price."""

    code = "PriceNotFound"
    status_code = 404

    def __init__(self, price_id: str):
        self.price_id = price_id
        super().__init__(f"Price not found: {price_id}")


class PaymentProviderError(CommerceError):
    """The payment provider timed out, rejected the request or answered garbage.

    Safe to retry from the client: nothing was persisted locally.
    """

    code = "PaymentProviderError"
    status_code = 500

    def __init__(self, message: str, detail: str | None = None, retryable: bool = True):
        self.detail = detail
        self.retryable = retryable
        super().__init__(message)

    def extra(self) -> dict:
        extra = {"retryable": self.retryable}
        if self.detail:
            extra["detail"] = self.detail
        return extra


class InvalidTransaction(CommerceError):
    """A provider transaction cannot be reconciled by this system."""

    code = "InvalidTransaction"

    def __init__(self, transaction_id: str | None, reason: str):
        self.transaction_id = transaction_id
        self.reason = reason
        super().__init__(f"Invalid transaction {transaction_id}: {reason}")


class InvalidWebhookSignature(CommerceError):
    code = "InvalidWebhookSignature"
    status_code = 401

    def __init__(self):
        super().__init__("Invalid webhook signature")


class DuplicateTransaction(CommerceError):
    """An order already exists for the provider transaction."""

    code = "DuplicateTransaction"
    status_code = 409

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} is already reconciled")


class OversellRefused(CommerceError):
    """Stock ran out before a paid transaction could be fulfilled."""

    code = "OversellRefused"
    status_code = 409

    def __init__(self, transaction_id: str, product_ids: list[str]):
        self.transaction_id = transaction_id
        self.product_ids = product_ids
        super().__init__(f"Insufficient stock to fulfil transaction {transaction_id}")


class NotFoundYet(CommerceError):
    """The order does not exist yet; reconciliation may still be pending."""

    code = "NotFoundYet"
    status_code = 404

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__("Order not found yet")


class InvalidOrAlreadyUsed(CommerceError):
    code = "InvalidOrAlreadyUsed"
    status_code = 404

    def __init__(self):
        super().__init__("This confirmation link is invalid or has already been used")


class NotAuthenticated(CommerceError):
    code = "NotAuthenticated"
    status_code = 401

    def __init__(self):
        super().__init__("Authentication required")


class NotAuthorized(CommerceError):
    code = "NotAuthorized"
    status_code = 403

    def __init__(self):
        super().__init__("Administrator access required")


class EmailDeliveryError(CommerceError):
    """An email could not be delivered. Never fatal to a purchase."""

    code = "EmailDeliveryError"
    status_code = 502

    def __init__(self, recipient: str, reason: str):
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Email to {recipient} failed: {reason}")
