"""Price Localization Adapter.

Asks the payment provider how much a price costs for a customer in a given
country. When the provider cannot answer, the catalogue's stored price is
shown instead so the storefront never renders an empty price.

The fallback country is given to ``PriceLocalizer`` when the application is
wired. The module-level functions use the configured localizer.
"""

import structlog
from protean.exceptions import ValidationError

from commerce.config import Settings
from commerce.errors import PaymentProviderError, PriceNotFound
from commerce.gateway import get_gateway
from commerce.pricing.money import format_money, minor_units
from commerce.product.management import find_product_by_price_reference

logger = structlog.get_logger(__name__)

PRICE_ID_PREFIX = "pri_"


class PriceLocalizer:
    def __init__(self, default_country=Settings.default_country):
        self.default_country = default_country.upper()

    @classmethod
    def from_settings(cls, settings: Settings) -> "PriceLocalizer":
        return cls(default_country=settings.default_country)

    def resolve_country(self, country) -> str:
        """Two-letter country code, defaulting to the fallback country."""
        code = (country or "").strip().upper()
        if len(code) != 2 or not code.isalpha():
            return self.default_country
        return code

    def preview_price(self, price_id, country=None) -> dict:
        """Localized single-unit price for ``price_id``.

        Returns ``{"price_id", "country", "amount", "currency", "display_price", "localized"}``.
        ``localized`` is False when the stored catalogue price was used.
        """
        if not price_id:
            raise ValidationError({"price_id": ["A price id is required"]})

        country = self.resolve_country(country)
        try:
            preview = get_gateway().preview_price(price_id, country)
        except PaymentProviderError as exc:
            product = find_product_by_price_reference(price_id)
            if product is None:
                raise

            logger.warning(
                "Price preview failed, using stored price",
                price_id=price_id,
                country=country,
                product_id=str(product.id),
                detail=exc.detail or str(exc),
            )
            amount = minor_units(product.unit_price, product.currency)
            return {
                "price_id": price_id,
                "country": country,
                "amount": amount,
                "currency": product.currency,
                "display_price": format_money(amount, product.currency),
                "localized": False,
            }

        return {
            "price_id": price_id,
            "country": country,
            "amount": preview.amount,
            "currency": preview.currency,
            "display_price": preview.display_price,
            "localized": True,
        }

    def live_price(self, price_id) -> dict:
        """Base unit price of ``price_id`` straight from the provider."""
        if not price_id or not price_id.startswith(PRICE_ID_PREFIX):
            raise ValidationError({"price_id": [f"Invalid price id: {price_id!r}"]})

        try:
            price = get_gateway().get_price(price_id)
        except PaymentProviderError as exc:
            logger.info("Live price lookup failed", price_id=price_id, detail=exc.detail or str(exc))
            raise PriceNotFound(price_id) from None

        return {"price_id": price_id, "amount": price.amount, "currency": price.currency}


_current_localizer: PriceLocalizer | None = None


def get_localizer() -> PriceLocalizer:
    global _current_localizer
    if _current_localizer is None:
        _current_localizer = PriceLocalizer()
    return _current_localizer


def set_localizer(localizer: PriceLocalizer) -> None:
    global _current_localizer
    _current_localizer = localizer


def reset_localizer() -> None:
    global _current_localizer
    _current_localizer = None


def resolve_country(country) -> str:
    return get_localizer().resolve_country(country)


def preview_price(price_id, country=None) -> dict:
    return get_localizer().preview_price(price_id, country)


def live_price(price_id) -> dict:
    return get_localizer().live_price(price_id)
