"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- PaddleGateway for production
"""

from commerce.config import PaymentProviderKind, Settings
from commerce.gateway.fake_adapter import FakeGateway
from commerce.gateway.paddle_adapter import PaddleGateway
from commerce.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def build_gateway(settings: Settings) -> PaymentGateway:
    """Construct the gateway selected by ``settings.payment_provider``."""
    if settings.payment_provider == PaymentProviderKind.PADDLE:
        return PaddleGateway(
            api_key=settings.paddle_api_key,
            webhook_secret=settings.paddle_webhook_secret,
            api_url=settings.paddle_api_url,
            checkout_url=settings.checkout_url,
            timeout=settings.provider_timeout,
        )
    return FakeGateway(checkout_url=settings.checkout_url)


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
