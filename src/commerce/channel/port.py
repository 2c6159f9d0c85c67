"""Email channel port.

Order confirmations go out through an ``EmailChannel``. Delivery failures
are reported in the returned dict, never raised, so a mail outage cannot
undo an order that was already placed.
"""

from abc import ABC, abstractmethod

SENT = "sent"
FAILED = "failed"


class EmailChannel(ABC):
    """Sends one transactional email to one recipient."""

    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        """Send ``body`` as plain text, with ``html_body`` as the HTML alternative when given.

        Returns ``{"message_id", "status", "error"}``. ``status`` is ``"sent"``
        or ``"failed"``; ``message_id`` is None and ``error`` explains why when
        delivery failed.
        """
        ...
