"""Faker-based data generators for Locust load test scenarios.

Shoppers are identified the way the auth gateway in front of the service
identifies them: with ``X-User-*`` headers.
"""

import os
import random
import uuid

from faker import Faker

fake = Faker()

COUNTRIES = ["US", "GB", "DE", "FR", "IN", "JP", "AU", "CA"]


def product_ids() -> list[str]:
    """Product ids to shop for, from LOADTEST_PRODUCT_IDS (comma separated)."""
    raw = os.environ.get("LOADTEST_PRODUCT_IDS", "")
    return [product_id.strip() for product_id in raw.split(",") if product_id.strip()]


def price_ids() -> list[str]:
    """Provider price ids to preview, from LOADTEST_PRICE_IDS (comma separated)."""
    raw = os.environ.get("LOADTEST_PRICE_IDS", "")
    return [price_id.strip() for price_id in raw.split(",") if price_id.strip()]


def shopper_headers(country: str | None = None) -> dict:
    """Headers for a new, unique signed-in shopper."""
    user_id = f"lt-user-{uuid.uuid4().hex[:12]}"
    return {
        "X-User-Id": user_id,
        "X-User-Email": f"{fake.user_name()[:20]}.{uuid.uuid4().hex[:4]}@{fake.free_email_domain()}",
        "X-User-Name": fake.name()[:255],
        "X-User-Country": country or random.choice(COUNTRIES),
    }


def admin_headers() -> dict:
    return {
        "X-User-Id": "lt-admin",
        "X-User-Email": "loadtest-admin@example.com",
        "X-User-Name": "Load Test Admin",
        "X-User-Role": "admin",
    }


def quantity() -> int:
    """Mostly single units, occasionally a few."""
    return random.choices([1, 2, 3], weights=[80, 15, 5])[0]
