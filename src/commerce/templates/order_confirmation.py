"""Order confirmation template — sent to the customer and the shop admin
once a paid transaction has been reconciled into an order.

One template renders both audiences. ``context`` keys:

- ``audience``: "customer" or "admin"
- ``site_name``, ``frontend_url``
- ``recipient_name``: greeting name for the customer copy
- ``customer_name``, ``customer_email``: shown on the admin copy
- ``lines``: list of {"name", "quantity", "unit_price"} (unit price already formatted)
- ``display_price``: formatted grand total
- ``transaction_id``, ``purchased_at``
- ``needs_review``: flags an oversold order on the admin copy
"""

from datetime import datetime
from html import escape

CUSTOMER = "customer"
ADMIN = "admin"


def _purchase_date(value) -> str:
    if isinstance(value, datetime):
        return value.strftime("%B %d, %Y")
    return str(value or "")


class OrderConfirmationTemplate:
    @staticmethod
    def render(context: dict) -> dict:
        audience = context.get("audience", CUSTOMER)
        site_name = context.get("site_name", "Fork & Fire")
        frontend_url = context.get("frontend_url", "").rstrip("/")
        transaction_id = context.get("transaction_id", "N/A")
        total = context.get("display_price") or "N/A"
        purchased_on = _purchase_date(context.get("purchased_at"))
        lines = context.get("lines", [])

        item_lines = [f"- {line['name']} x {line['quantity']} ({line.get('unit_price') or 'N/A'})" for line in lines]
        item_rows = "".join(
            f"<tr><td>{escape(str(line['name']))}</td>"
            f"<td align=\"center\">{int(line['quantity'])}</td>"
            f"<td align=\"right\">{escape(str(line.get('unit_price') or 'N/A'))}</td></tr>"
            for line in lines
        )

        if audience == ADMIN:
            customer = f"{context.get('customer_name') or 'Unknown'} ({context.get('customer_email') or 'no email'})"
            subject = f"New order at {site_name}: {transaction_id}"
            if context.get("needs_review"):
                subject = f"[Needs review] {subject}"
            intro = f"A new purchase has been made by {customer}."
            link = f"{frontend_url}/admin/orders"
        else:
            subject = f"Your {site_name} order is confirmed"
            intro = f"Thank you for your order, {context.get('recipient_name') or 'there'}!"
            link = f"{frontend_url}/profile/orders"

        body = "\n".join(
            [
                intro,
                "",
                *item_lines,
                "",
                f"Grand total: {total}",
                f"Order date: {purchased_on}",
                f"Transaction ID: {transaction_id}",
                "",
                link,
                "",
                f"The {site_name} Team",
            ]
        )
        html_body = (
            f"<h1>{escape(site_name)}</h1>"
            f"<p>{escape(intro)}</p>"
            "<table><tr><th>Item</th><th>Qty</th><th>Price</th></tr>"
            f"{item_rows}</table>"
            f"<p><strong>Grand total:</strong> {escape(total)}</p>"
            f"<p><strong>Order date:</strong> {escape(purchased_on)}<br>"
            f"<strong>Transaction ID:</strong> {escape(transaction_id)}</p>"
            f"<p><a href=\"{escape(link)}\">{escape(link)}</a></p>"
        )
        return {"subject": subject, "body": body, "html_body": html_body}
