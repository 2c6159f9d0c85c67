"""Product aggregate — the sellable item and its inventory ledger.

Product lifecycle (creation, edits) belongs to the catalogue administration
screens. This service reads the price references and owns exactly one
mutable fact: ``remaining_stock``. Only reconciliation decrements it and
only an administrator restocks it.

Stock Model:
    total_stock:      units ever made available
    remaining_stock:  units still sellable (0 <= remaining_stock <= total_stock)
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Integer, String, Text

from commerce.domain import commerce
from commerce.product.events import OversellDetected, ProductRestocked, StockDecremented


@commerce.aggregate
class Product:
    name = String(required=True, max_length=255)
    description = Text()
    image_url = String(max_length=1000)
    provider_product_id = String(max_length=255)
    provider_price_id = String(max_length=255)
    localized_prices = Text()  # JSON: {country_code: provider_price_id}
    unit_price = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="USD")
    total_stock = Integer(default=0, min_value=0)
    remaining_stock = Integer(default=0, min_value=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def remaining_stock_must_not_exceed_total(self):
        if (self.remaining_stock or 0) > (self.total_stock or 0):
            raise ValidationError({"remaining_stock": ["Remaining stock cannot exceed total stock"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        name,
        unit_price,
        stock,
        provider_price_id=None,
        provider_product_id=None,
        currency="USD",
        description=None,
        image_url=None,
        localized_prices=None,
        **kwargs,
    ):
        now = datetime.now(UTC)
        return cls(
            name=name,
            description=description,
            image_url=image_url,
            provider_product_id=provider_product_id,
            provider_price_id=provider_price_id,
            localized_prices=json.dumps({k.upper(): v for k, v in (localized_prices or {}).items()}),
            unit_price=unit_price,
            currency=currency,
            total_stock=stock,
            remaining_stock=stock,
            created_at=now,
            updated_at=now,
            **kwargs,
        )

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    @property
    def price_table(self) -> dict:
        return json.loads(self.localized_prices) if self.localized_prices else {}

    @property
    def is_payable(self) -> bool:
        return bool(self.provider_price_id)

    def known_price_references(self) -> set:
        references = set(self.price_table.values())
        if self.provider_price_id:
            references.add(self.provider_price_id)
        return references

    def price_reference_for(self, country, fallback=None):
        """Localized price id for ``country``, else ``fallback``, else the default price id."""
        localized = self.price_table.get((country or "").upper())
        return localized or fallback or self.provider_price_id

    # -------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------
    def has_stock_for(self, quantity) -> bool:
        return quantity <= (self.remaining_stock or 0)

    def commit_sale(self, quantity, transaction_id=None, allow_oversell=True):
        """Consume ``quantity`` units for a paid purchase.

        Stock never goes below zero. When fewer units remain than were paid
        for, the shortfall is recorded as an oversell and returned; with
        ``allow_oversell=False`` the sale is rejected instead.
        """
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        available = self.remaining_stock or 0
        now = datetime.now(UTC)

        if quantity <= available:
            self.remaining_stock = available - quantity
            self.updated_at = now
            self.raise_(
                StockDecremented(
                    product_id=str(self.id),
                    quantity=quantity,
                    remaining_stock=self.remaining_stock,
                    transaction_id=transaction_id,
                    decremented_at=now,
                )
            )
            return 0

        if not allow_oversell:
            raise ValidationError({"quantity": [f"Insufficient stock: {available} available, {quantity} requested"]})

        oversold = quantity - available
        self.remaining_stock = 0
        self.updated_at = now
        self.raise_(
            OversellDetected(
                product_id=str(self.id),
                requested=quantity,
                available=available,
                oversold=oversold,
                transaction_id=transaction_id,
                detected_at=now,
            )
        )
        return oversold

    def restock(self, quantity):
        """Add units to both total and remaining stock."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        now = datetime.now(UTC)
        self.total_stock = (self.total_stock or 0) + quantity
        self.remaining_stock = (self.remaining_stock or 0) + quantity
        self.updated_at = now

        self.raise_(
            ProductRestocked(
                product_id=str(self.id),
                quantity=quantity,
                remaining_stock=self.remaining_stock,
                total_stock=self.total_stock,
                restocked_at=now,
            )
        )
