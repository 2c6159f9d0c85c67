"""Payment gateway port (abstract interface).

Defines the contract that all payment provider adapters must implement.
FakeGateway (dev/test) and PaddleGateway (production) are interchangeable
without changing any domain or application code.

Every method raises PaymentProviderError when the provider times out,
rejects the request or returns a response that cannot be understood.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

COMPLETED_STATUSES = frozenset({"completed", "paid"})
RECONCILABLE_EVENTS = frozenset({"transaction.completed", "transaction.paid"})


@dataclass(frozen=True)
class LineItem:
    """A provider price reference and the quantity to charge for it."""

    price_id: str
    quantity: int


@dataclass(frozen=True)
class CheckoutSession:
    """Handle returned to the client after a transaction is created."""

    transaction_id: str
    checkout_url: str


@dataclass(frozen=True)
class PricePreview:
    """A price as the provider would charge it. ``amount`` is in minor units."""

    amount: int
    currency: str
    display_price: str


@dataclass(frozen=True)
class ProviderTransaction:
    """The provider's view of a transaction, reduced to what reconciliation needs."""

    transaction_id: str
    status: str
    custom_data: dict = field(default_factory=dict)
    customer_id: str | None = None
    currency: str | None = None
    grand_total: int | None = None
    display_total: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status in COMPLETED_STATUSES


@dataclass(frozen=True)
class WebhookEvent:
    """A verified notification from the provider."""

    event_id: str | None
    event_type: str
    transaction: ProviderTransaction | None = None

    @property
    def is_reconcilable(self) -> bool:
        return self.event_type in RECONCILABLE_EVENTS and self.transaction is not None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_transaction(
        self,
        items: list[LineItem],
        customer_email: str,
        custom_data: dict,
        customer_id: str | None = None,
    ) -> CheckoutSession:
        """Create a transaction the customer completes in the provider's checkout."""
        ...

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> ProviderTransaction:
        """Fetch the current state of a transaction."""
        ...

    @abstractmethod
    def preview_price(self, price_id: str, country: str) -> PricePreview:
        """Price a single unit as a customer in ``country`` would pay it."""
        ...

    @abstractmethod
    def get_price(self, price_id: str) -> PricePreview:
        """Fetch the base unit price of ``price_id``."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Verify that a raw webhook payload is authentically from the provider."""
        ...

    @abstractmethod
    def parse_webhook(self, payload: bytes) -> WebhookEvent:
        """Decode a verified raw webhook payload."""
        ...
