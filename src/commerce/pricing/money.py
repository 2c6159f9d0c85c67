"""Money formatting for display when the provider does not supply a formatted string."""

from decimal import ROUND_HALF_UP, Decimal

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
    "AUD": "A$",
    "CAD": "CA$",
}

ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW"})


def minor_units(amount, currency) -> int:
    """Convert a major-unit amount (e.g. 29.99) to minor units (2999)."""
    if (currency or "").upper() in ZERO_DECIMAL_CURRENCIES:
        return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_money(amount_minor, currency) -> str:
    """Format minor units, e.g. ``format_money(2999, "USD") == "$29.99"``."""
    code = (currency or "USD").upper()
    if code in ZERO_DECIMAL_CURRENCIES:
        major = Decimal(int(amount_minor))
        text = f"{major:,.0f}"
    else:
        major = Decimal(int(amount_minor)) / 100
        text = f"{major:,.2f}"

    symbol = CURRENCY_SYMBOLS.get(code)
    return f"{symbol}{text}" if symbol else f"{code} {text}"
