"""Email templates. Each template renders ``{"subject", "body", "html_body"}`` from a context dict."""

from commerce.templates.order_confirmation import ADMIN, CUSTOMER, OrderConfirmationTemplate

__all__ = ["ADMIN", "CUSTOMER", "OrderConfirmationTemplate"]
