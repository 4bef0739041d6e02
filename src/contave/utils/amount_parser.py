"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


def parse_amount(amount: str | int | float | Decimal | None) -> Decimal:
    """Parse an amount into a Decimal.

    Handles various formats:
    - "123.45" and "1,234.56"
    - "1.234,56" (comma as decimal separator)
    - "Bs. 123,45", "$123.45"
    - "(123.45)" (negative in parentheses)

    Numbers pass through; floats go through ``str`` so ``0.1`` stays ``0.1``.
    ``None`` and empty strings are zero.

    Raises:
        ValueError: If the amount cannot be parsed
    """
    if amount is None:
        return Decimal("0")
    if isinstance(amount, bool):
        raise ValueError(f"Could not parse amount '{amount}'")
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, (int, float)):
        return Decimal(str(amount))

    amount_str = amount.strip()
    if not amount_str:
        return Decimal("0")

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols
    amount_str = re.sub(r"(?i)bs\.?|ves|usd|[$€]", "", amount_str).strip()

    # The separator that comes last is the decimal one
    if "," in amount_str and amount_str.rfind(",") > amount_str.rfind("."):
        amount_str = amount_str.replace(".", "").replace(",", ".")
    else:
        amount_str = amount_str.replace(",", "")

    try:
        value = Decimal(amount_str)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount}'")
    if not value.is_finite():
        raise ValueError(f"Could not parse amount '{amount}'")
    return -value if is_negative else value
