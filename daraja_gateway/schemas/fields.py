"""
Custom Marshmallow Fields
Field types that apply Daraja's input rules while loading
"""

from marshmallow import ValidationError, fields

from daraja_gateway.utils.phone import normalize_phone
from daraja_gateway.utils.validators import (
    round_amount,
    validate_amount,
    validate_callback_url,
)


class Amount(fields.Field):
    """Amount rounded half-up to whole shillings, at least 1."""

    def _deserialize(self, value, attr, data, **kwargs):
        is_valid, error = validate_amount(value)
        if not is_valid:
            raise ValidationError(error)
        return round_amount(value)


class PhoneNumber(fields.Field):
    """
    Kenyan MSISDN normalised to 254XXXXXXXXX.

    Raises InvalidPhone rather than a field error.
    """

    def _deserialize(self, value, attr, data, **kwargs):
        return normalize_phone(value)


class CallbackUrl(fields.Field):
    def _deserialize(self, value, attr, data, **kwargs):
        is_valid, error = validate_callback_url(value if isinstance(value, str) else '')
        if not is_valid:
            raise ValidationError(error)
        return value


class ShortCode(fields.Field):
    """Shortcode, till or paybill number; numbers are accepted and sent as text."""

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ValidationError('Must be a string or number.')
        text = str(value).strip()
        if not text:
            raise ValidationError('Must not be empty.')
        return text
