"""
Phone Number Utilities
Daraja expects MSISDNs as 12 digits: 254 followed by the 9-digit subscriber
number, with no '+', spaces or dashes.

Accepted input formats:
    0712345678      -> 254712345678
    +254712345678   -> 254712345678
    254712345678    -> 254712345678
    712345678       -> 254712345678
"""

import re

from daraja_gateway.errors import InvalidPhone

_NON_DIGITS = re.compile(r'\D')
_CANONICAL = re.compile(r'^254\d{9}$')


def _to_kenyan_msisdn(digits: str) -> str:
    if digits.startswith('254'):
        return digits
    if digits.startswith('0'):
        return '254' + digits[1:]
    return '254' + digits


def normalize_phone(phone) -> str:
    """
    Normalise a Kenyan phone number to 254XXXXXXXXX

    Args:
        phone: Phone number in any common local or international format

    Returns:
        12-digit canonical MSISDN

    Raises:
        InvalidPhone: If the number does not reduce to 254 + 9 digits
    """
    if phone is None or not str(phone).strip():
        raise InvalidPhone('Phone number is required')

    digits = _NON_DIGITS.sub('', str(phone))
    normalised = _to_kenyan_msisdn(digits)

    if not _CANONICAL.match(normalised):
        raise InvalidPhone(
            f'Invalid phone number "{phone}": normalised to "{normalised}", '
            f'expected 254XXXXXXXXX (12 digits). '
            f'Use 07XXXXXXXX, 2547XXXXXXXX or +2547XXXXXXXX.'
        )

    return normalised


def msisdn_to_int(phone) -> int:
    """Normalised MSISDN as a number (C2B simulate sends Msisdn unquoted)."""
    return int(normalize_phone(phone))


def is_valid_phone(phone) -> bool:
    try:
        normalize_phone(phone)
    except InvalidPhone:
        return False
    return True
