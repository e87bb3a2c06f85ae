"""
Custom Validators
Validation helpers shared by the Daraja request schemas
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

# Daraja only moves whole shillings
MIN_AMOUNT = 1

_URL_PATTERN = re.compile(r'^https?://[^\s/$.?#].[^\s]*$', re.IGNORECASE)


def round_amount(amount) -> int:
    """
    Round an amount half-up to a whole number of shillings

    Args:
        amount: int, float, Decimal or numeric string

    Returns:
        Rounded integer amount

    Raises:
        ValueError: If the amount is not a finite number
    """
    if isinstance(amount, bool):
        raise ValueError(f"Amount must be a number, got {type(amount).__name__}")

    try:
        if isinstance(amount, Decimal):
            amount_decimal = amount
        elif isinstance(amount, (int, float, str)):
            amount_decimal = Decimal(str(amount).strip())
        else:
            raise ValueError(f"Amount must be a number, got {type(amount).__name__}")
    except InvalidOperation:
        raise ValueError(f"Invalid amount format: {amount!r}")

    if not amount_decimal.is_finite():
        raise ValueError(f"Amount must be a finite number, got {amount!r}")

    return int(amount_decimal.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def validate_amount(amount, min_amount: int = MIN_AMOUNT) -> tuple[bool, Optional[str]]:
    """
    Validate that an amount rounds to at least `min_amount`

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        rounded = round_amount(amount)
    except ValueError as e:
        return False, str(e)

    if rounded < min_amount:
        return False, (
            f"Amount {amount} rounds to {rounded}, which is below the "
            f"minimum of {min_amount} KES"
        )

    return True, None


def validate_callback_url(url: str) -> tuple[bool, Optional[str]]:
    """
    Validate a publicly reachable callback URL

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url:
        return False, "URL is required"

    if not _URL_PATTERN.match(url):
        return False, f"Invalid URL: {url}"

    return True, None

