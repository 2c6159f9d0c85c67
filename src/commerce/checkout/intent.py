"""PurchaseIntent — what a checkout asks the customer to pay for.

Single-product and cart checkouts share one shape: a list of lines, where a
single-product purchase is a list of length one. The intent travels to the
payment provider as the transaction's custom data and comes back on the
completion notification, which is how reconciliation knows what to fulfil.
"""

from dataclasses import dataclass

from commerce.errors import InvalidTransaction
from commerce.order.order import OrderOrigin


@dataclass(frozen=True)
class PurchaseLine:
    product_id: str
    quantity: int
    price_reference: str | None = None

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price_reference": self.price_reference,
        }


@dataclass(frozen=True)
class PurchaseIntent:
    user_id: str
    lines: tuple[PurchaseLine, ...]
    origin: str = OrderOrigin.PRODUCT.value

    @classmethod
    def single(cls, user_id, product_id, quantity, price_reference=None) -> "PurchaseIntent":
        return cls(
            user_id=str(user_id),
            lines=(PurchaseLine(str(product_id), int(quantity), price_reference),),
            origin=OrderOrigin.PRODUCT.value,
        )

    @classmethod
    def from_cart(cls, cart) -> "PurchaseIntent":
        return cls(
            user_id=str(cart.user_id),
            lines=tuple(PurchaseLine(str(line.product_id), line.quantity, line.price_reference) for line in cart.lines),
            origin=OrderOrigin.CART.value,
        )

    @property
    def is_cart_purchase(self) -> bool:
        return self.origin == OrderOrigin.CART.value

    def with_prices(self, price_references: dict) -> "PurchaseIntent":
        """Copy of the intent with the resolved price reference per product."""
        lines = tuple(
            PurchaseLine(line.product_id, line.quantity, price_references.get(line.product_id, line.price_reference))
            for line in self.lines
        )
        return PurchaseIntent(user_id=self.user_id, lines=lines, origin=self.origin)

    def to_custom_data(self) -> dict:
        return {
            "userId": self.user_id,
            "origin": self.origin,
            "cart": [
                {
                    "productId": line.product_id,
                    "quantity": line.quantity,
                    "priceReference": line.price_reference,
                }
                for line in self.lines
            ],
        }

    @classmethod
    def from_custom_data(cls, transaction_id, data) -> "PurchaseIntent":
        """Rebuild the intent from provider custom data.

        Also accepts the flat ``{userId, productId, quantity}`` shape used by
        single-product checkouts created before cart support.
        """
        if not isinstance(data, dict) or not data.get("userId"):
            raise InvalidTransaction(transaction_id, "custom data is missing the user id")

        raw_lines = data.get("cart")
        if raw_lines is None and data.get("productId"):
            raw_lines = [{"productId": data["productId"], "quantity": data.get("quantity", 1)}]
        if not raw_lines or not isinstance(raw_lines, list):
            raise InvalidTransaction(transaction_id, "custom data has no purchase lines")

        lines = []
        for raw in raw_lines:
            try:
                quantity = int(raw.get("quantity", 1))
            except (AttributeError, TypeError, ValueError):
                raise InvalidTransaction(transaction_id, "custom data has a malformed purchase line") from None
            if not raw.get("productId") or quantity < 1:
                raise InvalidTransaction(transaction_id, "custom data has a malformed purchase line")
            lines.append(PurchaseLine(str(raw["productId"]), quantity, raw.get("priceReference")))

        origin = data.get("origin")
        if origin not in (OrderOrigin.PRODUCT.value, OrderOrigin.CART.value):
            origin = OrderOrigin.CART.value if len(lines) > 1 else OrderOrigin.PRODUCT.value

        return cls(user_id=str(data["userId"]), lines=tuple(lines), origin=origin)
