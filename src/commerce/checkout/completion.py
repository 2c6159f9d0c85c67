"""The two reconciliation triggers: the provider's signed webhook and the
client reporting that its checkout completed.
"""

import structlog

from commerce.checkout.intent import PurchaseIntent
from commerce.checkout.reconciliation import PENDING, reconcile
from commerce.errors import InvalidTransaction, InvalidWebhookSignature, PaymentProviderError
from commerce.gateway import get_gateway

logger = structlog.get_logger(__name__)

IGNORED = "ignored"


def handle_webhook(payload: bytes, signature: str | None) -> dict:
    """Verify, decode and reconcile a raw provider notification.

    The signature is checked against the raw bytes before anything is parsed.
    Notifications that are authentic but not reconcilable are acknowledged
    and ignored so the provider stops redelivering them.
    """
    gateway = get_gateway()
    if not gateway.verify_webhook_signature(payload, signature or ""):
        logger.warning("Webhook rejected: invalid signature", size=len(payload))
        raise InvalidWebhookSignature()

    try:
        event = gateway.parse_webhook(payload)
    except PaymentProviderError as exc:
        logger.warning("Webhook acknowledged without an order", reason=str(exc), size=len(payload))
        return {"status": IGNORED, "order_id": None}

    if not event.is_reconcilable:
        logger.info("Webhook ignored", event_id=event.event_id, event_type=event.event_type)
        return {"status": IGNORED, "order_id": None}

    try:
        return reconcile(event.transaction, source="webhook")
    except InvalidTransaction as exc:
        logger.warning(
            "Webhook acknowledged without an order",
            event_id=event.event_id,
            transaction_id=exc.transaction_id,
            reason=exc.reason,
        )
        return {"status": IGNORED, "order_id": None}


def complete_checkout(user_id, transaction_id) -> dict:
    """Reconcile on the client's word that checkout completed.

    The client is not trusted: the transaction is fetched from the provider
    and must be paid and belong to the caller.
    """
    transaction = get_gateway().get_transaction(transaction_id)
    if not transaction.is_completed:
        logger.info("Checkout completion reported early", transaction_id=transaction_id, status=transaction.status)
        return {"status": PENDING, "order_id": None}

    intent = PurchaseIntent.from_custom_data(transaction_id, transaction.custom_data)
    if intent.user_id != str(user_id):
        logger.warning("Checkout completion for a foreign transaction", transaction_id=transaction_id, user_id=str(user_id))
        raise InvalidTransaction(transaction_id, "transaction belongs to another customer")

    return reconcile(transaction, source="client")
