"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state — no cross-user sharing.
"""

from dataclasses import dataclass, field


@dataclass
class ShopperState:
    """Tracks one simulated shopper through checkout and confirmation."""

    headers: dict = field(default_factory=dict)
    product_id: str | None = None
    transaction_id: str | None = None
    webhook_payload: str | None = None
    webhook_signature: str | None = None
    order_id: str | None = None
    access_token: str | None = None
    cart_lines: int = 0
