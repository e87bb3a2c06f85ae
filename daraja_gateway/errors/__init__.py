from daraja_gateway.errors.exceptions import (
    ApiError,
    AuthFailed,
    DarajaError,
    EncryptionFailed,
    HttpError,
    InvalidCredentials,
    InvalidPhone,
    InvalidResponse,
    NetworkError,
    RequestFailed,
    RequestTimeout,
    TRANSIENT_CODES,
    ValidationError,
)

__all__ = [
    'DarajaError',
    'AuthFailed',
    'InvalidCredentials',
    'ValidationError',
    'EncryptionFailed',
    'InvalidPhone',
    'NetworkError',
    'RequestTimeout',
    'HttpError',
    'ApiError',
    'RequestFailed',
    'InvalidResponse',
    'TRANSIENT_CODES',
]
