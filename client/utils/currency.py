"""Amount utilities: decimal-string parsing and formatting. Amounts never pass through float."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

CENT = Decimal("0.01")

# Amounts must stay below 10**13 so cent rounding never exceeds the decimal context
MAX_AMOUNT_EXPONENT = 12

# Display symbols; the backend itself is currency-agnostic
CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def to_decimal(value: Union[str, int, Decimal, None]) -> Optional[Decimal]:
    """Parse user or wire input into a finite Decimal, or None if it is not a number."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
    if not amount.is_finite():
        return None
    return amount


def parse_amount(value: Union[str, int, Decimal, None]) -> Optional[Decimal]:
    """
    Parse a payment amount.

    Returns the amount as a Decimal when it is a finite number that is at
    rounds to at least one cent and stays below 10**13, otherwise None.
    """
    amount = to_decimal(value)
    if amount is None or amount <= 0:
        return None
    if amount.adjusted() > MAX_AMOUNT_EXPONENT or round_cents(amount) <= 0:
        return None
    return amount


def round_cents(amount: Decimal) -> Decimal:
    """Round half-up to exactly two decimal places."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(amount: Union[str, Decimal]) -> str:
    """
    Format an amount as the two-decimal string the backend expects.

    Args:
        amount: Decimal or decimal string (e.g., Decimal("33.333"), "12.5")

    Returns:
        String with exactly two decimals (e.g., "33.33", "12.50")
    """
    value = to_decimal(amount)
    if value is None:
        raise ValueError(f"Not a decimal amount: {amount!r}")
    return f"{round_cents(value):.2f}"


def format_currency(amount: Union[str, Decimal], currency: str = "INR") -> str:
    """Format an amount with its currency symbol (e.g., "₹12.34", "-$5.00")."""
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    value = round_cents(to_decimal(amount) or Decimal(0))
    if value < 0:
        return f"-{symbol}{abs(value):.2f}"
    return f"{symbol}{value:.2f}"
