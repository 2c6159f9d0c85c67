"""Email channel registry.

Provides get_email_channel() / set_email_channel(). The fake adapter is
used unless SMTP delivery is configured.
"""

from commerce.channel.port import EmailChannel
from commerce.channel.fake_email import FakeEmailAdapter
from commerce.channel.smtp_email import SMTPEmailAdapter
from commerce.config import EmailBackend, Settings

_current_channel: EmailChannel | None = None


def build_email_channel(settings: Settings) -> EmailChannel:
    if settings.email_backend == EmailBackend.SMTP:
        return SMTPEmailAdapter(
            host=settings.email_host,
            port=settings.email_port,
            sender=settings.email_from,
            user=settings.email_user,
            password=settings.email_password,
            timeout=settings.provider_timeout,
        )
    return FakeEmailAdapter()


def get_email_channel() -> EmailChannel:
    """Return the configured email channel. Defaults to FakeEmailAdapter."""
    global _current_channel
    if _current_channel is None:
        _current_channel = FakeEmailAdapter()
    return _current_channel


def set_email_channel(channel: EmailChannel) -> None:
    global _current_channel
    _current_channel = channel


def reset_email_channel() -> None:
    """Reset to default channel (useful for testing)."""
    global _current_channel
    _current_channel = None
