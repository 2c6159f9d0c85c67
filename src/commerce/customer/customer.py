"""Customer aggregate — the local record of an authenticated shopper.

Identity, sessions and profile editing are owned by the authentication
service. The commerce service keeps the fields it needs to fulfil a
purchase: contact email for notifications, the payment provider's customer
id and the set of products the customer has bought.
"""

import json
from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, String, Text

from commerce.customer.events import PurchaseRecorded
from commerce.domain import commerce


@commerce.aggregate
class Customer:
    email = String(required=True, max_length=254)
    name = String(max_length=255)
    country = String(max_length=2)
    is_admin = Boolean(default=False)
    provider_customer_id = String(max_length=255)
    purchased_product_ids = Text()  # JSON array of product ids
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, customer_id, email, name=None, country=None, is_admin=False):
        now = datetime.now(UTC)
        return cls(
            id=str(customer_id),
            email=email,
            name=name,
            country=(country or "").upper() or None,
            is_admin=is_admin,
            purchased_product_ids=json.dumps([]),
            created_at=now,
            updated_at=now,
        )

    @property
    def first_name(self) -> str:
        return (self.name or "").split(" ")[0] or "there"

    @property
    def purchased_products(self) -> list:
        return json.loads(self.purchased_product_ids) if self.purchased_product_ids else []

    def record_purchase(self, product_id) -> bool:
        """Add ``product_id`` to the purchased products. Returns False if already present."""
        purchased = self.purchased_products
        if str(product_id) in purchased:
            return False

        purchased.append(str(product_id))
        now = datetime.now(UTC)
        self.purchased_product_ids = json.dumps(purchased)
        self.updated_at = now

        self.raise_(
            PurchaseRecorded(
                customer_id=str(self.id),
                product_id=str(product_id),
                recorded_at=now,
            )
        )
        return True

    def link_provider_customer(self, provider_customer_id) -> None:
        if provider_customer_id and provider_customer_id != self.provider_customer_id:
            self.provider_customer_id = provider_customer_id
            self.updated_at = datetime.now(UTC)
