"""
Exact decimal handling for monetary amounts.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Union

from banking.core.errors import InvalidAmount, InvalidRequest

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# NUMERIC(15, 2) holds at most 13 integer digits
MAX_AMOUNT = Decimal("9999999999999.99")

CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")

AmountLike = Union[Decimal, int, str]


def to_decimal(value: AmountLike) -> Decimal:
    """
    Convert an input amount to a Decimal with exactly two fractional digits.

    Floats are refused: a binary float cannot represent most cent values, so
    callers must pass Decimal, int or a numeric string. Values with more than
    two fractional digits are rejected rather than rounded.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmount("Amounts must be given as Decimal, int or string, not float")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Invalid amount: {value!r}")

    if not amount.is_finite():
        raise InvalidAmount(f"Invalid amount: {value!r}")
    if abs(amount) > MAX_AMOUNT:
        raise InvalidAmount(f"Amount {amount} exceeds the maximum of {MAX_AMOUNT}")
    if amount.as_tuple().exponent < -2 and amount != amount.quantize(CENT):
        raise InvalidAmount(f"Amount {amount} has more than 2 decimal places")

    return amount.quantize(CENT)


def positive_amount(value: AmountLike) -> Decimal:
    """Validate a money-movement amount: strictly positive, cent precision."""
    amount = to_decimal(value)
    if amount <= ZERO:
        raise InvalidAmount(f"Amount must be greater than zero, got {amount}")
    return amount


def opening_balance(value: AmountLike) -> Decimal:
    """Validate an initial account balance: zero or positive, cent precision."""
    amount = to_decimal(value)
    if amount < ZERO:
        raise InvalidRequest("Initial balance cannot be negative")
    return amount


def normalize_currency(currency: str) -> str:
    code = (currency or "").strip().upper()
    if not CURRENCY_PATTERN.match(code):
        raise InvalidRequest(f"Invalid currency code: {currency!r}")
    return code
