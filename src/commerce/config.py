"""Process configuration for the commerce service.

Settings are read from the environment once, at process start, by
``Settings.from_env()`` and installed with ``set_settings()``. The payment
gateway, email channel, reconciler and price localizer receive the values
they need in their constructors when the application is wired.
``get_settings()`` serves the API layer.
"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum

from commerce.errors import ConfigurationError


class OversellPolicy(Enum):
    TOLERATE = "tolerate"
    REFUSE = "refuse"


class PaymentProviderKind(Enum):
    FAKE = "fake"
    PADDLE = "paddle"


class EmailBackend(Enum):
    FAKE = "fake"
    SMTP = "smtp"


PADDLE_SANDBOX_URL = "https://sandbox-api.paddle.com"
PADDLE_PRODUCTION_URL = "https://api.paddle.com"


@dataclass(frozen=True)
class Settings:
    """Immutable process configuration."""

    environment: str = "development"
    payment_provider: PaymentProviderKind = PaymentProviderKind.FAKE
    paddle_api_key: str | None = None
    paddle_webhook_secret: str | None = None
    paddle_api_url: str = PADDLE_SANDBOX_URL
    checkout_url: str = "http://localhost:5173/checkout"
    provider_timeout: float = 15.0
    default_country: str = "US"
    oversell_policy: OversellPolicy = OversellPolicy.TOLERATE
    email_backend: EmailBackend = EmailBackend.FAKE
    email_host: str | None = None
    email_port: int = 587
    email_user: str | None = None
    email_password: str | None = field(default=None, repr=False)
    email_from: str | None = None
    admin_email: str | None = None
    frontend_url: str = "http://localhost:5173"
    site_name: str = "Fork & Fire"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Assemble settings from environment variables.

        Raises ConfigurationError listing every missing or invalid key.
        """
        env = os.environ if environ is None else environ
        problems: list[str] = []

        environment = env.get("PROTEAN_ENV", "development")
        provider = _parse_enum(env, "PAYMENT_PROVIDER", PaymentProviderKind, PaymentProviderKind.FAKE, problems)
        policy = _parse_enum(env, "OVERSELL_POLICY", OversellPolicy, OversellPolicy.TOLERATE, problems)
        backend = _parse_enum(env, "EMAIL_BACKEND", EmailBackend, EmailBackend.FAKE, problems)

        if provider == PaymentProviderKind.PADDLE:
            problems.extend(
                f"{key} is required when PAYMENT_PROVIDER=paddle"
                for key in ("PADDLE_API_KEY", "PADDLE_WEBHOOK_SECRET", "PADDLE_CHECKOUT_URL")
                if not env.get(key)
            )
        if backend == EmailBackend.SMTP:
            problems.extend(
                f"{key} is required when EMAIL_BACKEND=smtp"
                for key in ("EMAIL_HOST", "EMAIL_FROM")
                if not env.get(key)
            )

        timeout = _parse_number(env, "PAYMENT_PROVIDER_TIMEOUT", float, 15.0, problems)
        email_port = _parse_number(env, "EMAIL_PORT", int, 587, problems)

        if problems:
            raise ConfigurationError(problems)

        default_api_url = PADDLE_PRODUCTION_URL if environment == "production" else PADDLE_SANDBOX_URL
        return cls(
            environment=environment,
            payment_provider=provider,
            paddle_api_key=env.get("PADDLE_API_KEY"),
            paddle_webhook_secret=env.get("PADDLE_WEBHOOK_SECRET"),
            paddle_api_url=env.get("PADDLE_API_URL", default_api_url),
            checkout_url=env.get("PADDLE_CHECKOUT_URL", cls.checkout_url),
            provider_timeout=timeout,
            default_country=env.get("DEFAULT_COUNTRY", "US").upper(),
            oversell_policy=policy,
            email_backend=backend,
            email_host=env.get("EMAIL_HOST"),
            email_port=email_port,
            email_user=env.get("EMAIL_USER"),
            email_password=env.get("EMAIL_PASS"),
            email_from=env.get("EMAIL_FROM"),
            admin_email=env.get("ADMIN_EMAIL"),
            frontend_url=env.get("FRONTEND_URL", cls.frontend_url),
            site_name=env.get("SITE_NAME", cls.site_name),
        )

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes)


def _parse_enum(env, key, enum_cls, default, problems):
    raw = env.get(key)
    if not raw:
        return default
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        problems.append(f"{key} must be one of: {choices} (got {raw!r})")
        return default


def _parse_number(env, key, kind, default, problems):
    raw = env.get(key)
    if not raw:
        return default
    try:
        return kind(raw)
    except ValueError:
        problems.append(f"{key} must be a number (got {raw!r})")
        return default


_current_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the active settings. Defaults to development settings."""
    global _current_settings
    if _current_settings is None:
        _current_settings = Settings()
    return _current_settings


def set_settings(settings: Settings) -> None:
    """Install the settings assembled at process start (or in tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    """Reset to default settings."""
    global _current_settings
    _current_settings = None
