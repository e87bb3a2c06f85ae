"""
Utils Package
Utility functions and helpers
"""

from daraja_gateway.utils.encryption import encrypt_security_credential, load_certificate_file
from daraja_gateway.utils.logger import get_logger, configure_app_logging, RequestLogger, redact_payload
from daraja_gateway.utils.phone import normalize_phone, msisdn_to_int, is_valid_phone
from daraja_gateway.utils.validators import (
    round_amount,
    validate_amount,
    validate_callback_url
)

__all__ = [
    'encrypt_security_credential',
    'load_certificate_file',
    'get_logger',
    'configure_app_logging',
    'RequestLogger',
    'redact_payload',
    'normalize_phone',
    'msisdn_to_int',
    'is_valid_phone',
    'round_amount',
    'validate_amount',
    'validate_callback_url'
]
