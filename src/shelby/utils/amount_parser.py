"""Amount parsing and validation utilities."""

from decimal import Decimal, InvalidOperation
import re

from shelby.domain.errors import InvalidAmount

CENT = Decimal("0.01")
# Largest magnitude an amount or balance may reach; stored cents must fit in 64 bits
MAX_AMOUNT = Decimal("1000000000000000")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "€123.45"
    - "-123.45"
    - "1,234.56"
    - "123,45" (comma as the only decimal separator)
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        InvalidAmount: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise InvalidAmount("Empty amount string")

    amount_str = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    amount_str = re.sub(r"[$€£¥\s]", "", amount_str)

    if "," in amount_str and "." not in amount_str and amount_str.count(",") == 1:
        # "12,50" uses the comma as decimal separator
        head, _, tail = amount_str.partition(",")
        if len(tail) <= 2:
            amount_str = f"{head}.{tail}"
    amount_str = amount_str.replace(",", "")

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        raise InvalidAmount(f"Could not parse amount '{amount_str}'")

    return -amount if is_negative else amount


def to_amount(value: Decimal | int | str) -> Decimal:
    """Validate a ledger amount and normalize it to two fractional digits.

    Args:
        value: Decimal, integer or amount string

    Returns:
        Decimal with exactly two fractional digits

    Raises:
        InvalidAmount: If the value is not finite, is zero, or has more than
            two fractional digits, or its magnitude reaches MAX_AMOUNT
    """
    if isinstance(value, bool) or isinstance(value, float):
        # floats cannot represent cents exactly
        raise InvalidAmount(f"Amount must be a Decimal, integer or string, got {value!r}")

    if isinstance(value, str):
        amount = parse_amount(value)
    else:
        try:
            amount = Decimal(value)
        except (InvalidOperation, TypeError):
            raise InvalidAmount(f"Invalid amount {value!r}")

    if not amount.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {amount}")
    if amount.is_zero():
        raise InvalidAmount("Amount must not be zero")
    if abs(amount) >= MAX_AMOUNT:
        raise InvalidAmount(f"Amount {amount} is too large")
    try:
        quantized = amount.quantize(CENT)
    except InvalidOperation:
        raise InvalidAmount(f"Invalid amount {amount}")
    if amount != quantized:
        raise InvalidAmount(f"Amount {amount} has more than two fractional digits")

    return quantized
