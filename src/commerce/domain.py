"""Commerce bounded context — products, carts, checkout and orders.

Handles the purchase flow of the recipe shop: cart management, payment
provider transaction creation, asynchronous confirmation reconciliation
and one-time order confirmation access.
"""

import structlog
from protean.domain import Domain

commerce = Domain(name="commerce")

logger = structlog.get_logger(__name__)
