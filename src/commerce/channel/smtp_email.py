"""SMTP email adapter.

Port 465 uses implicit TLS; any other port upgrades with STARTTLS.
Delivery problems are reported in the returned status, never raised.
"""

import smtplib
import ssl
from email.message import EmailMessage
from email.utils import make_msgid

import structlog

from commerce.channel.port import FAILED, SENT, EmailChannel

logger = structlog.get_logger(__name__)


class SMTPEmailAdapter(EmailChannel):
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        user: str | None = None,
        password: str | None = None,
        timeout: float = 15.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.user = user
        self.password = password
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=context)

        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.starttls(context=context)
        return server

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid()
        message.set_content(body)
        if html_body:
            message.add_alternative(html_body, subtype="html")

        try:
            with self._connect() as server:
                if self.user:
                    server.login(self.user, self.password or "")
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("SMTP delivery failed", recipient=to, error=str(exc))
            return {"message_id": None, "status": FAILED, "error": str(exc)}

        return {"message_id": message["Message-ID"], "status": SENT, "error": None}
