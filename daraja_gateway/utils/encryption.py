"""
Security Credential Encryption
Daraja's privileged commands (B2C, B2B, Reversal, Transaction Status) take the
initiator password encrypted with Safaricom's public certificate.

Padding is RSA PKCS#1 v1.5. Daraja rejects OAEP ciphertexts without saying why.
"""

import base64
from typing import Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.padding import PKCS1v15

from daraja_gateway.errors import EncryptionFailed

_PEM_MARKER = b'-----BEGIN'

_MISMATCH_HINT = (
    'Check that the certificate matches the environment: sandbox and '
    'production certificates are not interchangeable.'
)


def _as_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode('utf-8')


def _load_public_key(certificate: bytes) -> rsa.RSAPublicKey:
    """Load an RSA public key from a PEM/DER certificate or a PEM public key."""
    if _PEM_MARKER in certificate:
        if b'CERTIFICATE' in certificate:
            public_key = x509.load_pem_x509_certificate(certificate).public_key()
        else:
            public_key = serialization.load_pem_public_key(certificate)
    else:
        public_key = x509.load_der_x509_certificate(certificate).public_key()

    if not isinstance(public_key, rsa.RSAPublicKey):
        raise TypeError(f'Expected an RSA public key, got {type(public_key).__name__}')
    return public_key


def encrypt_security_credential(
    initiator_password: str,
    certificate_pem: Union[str, bytes],
) -> str:
    """
    Encrypt an initiator password into a Daraja SecurityCredential

    Args:
        initiator_password: Plain-text API operator password
        certificate_pem: Safaricom certificate (PEM or DER) or PEM public key

    Returns:
        Base64 encoded ciphertext

    Raises:
        EncryptionFailed: On any certificate or encryption problem
    """
    if not initiator_password:
        raise EncryptionFailed('Initiator password is required to build a security credential')
    if not certificate_pem:
        raise EncryptionFailed('Certificate is required to build a security credential')

    try:
        public_key = _load_public_key(_as_bytes(certificate_pem))
        encrypted = public_key.encrypt(initiator_password.encode('utf-8'), PKCS1v15())
    except (ValueError, TypeError) as exc:
        raise EncryptionFailed(
            f'Failed to encrypt security credential: {exc}. {_MISMATCH_HINT}',
            cause=exc,
        )

    return base64.b64encode(encrypted).decode('utf-8')


def load_certificate_file(path: str) -> bytes:
    """Read a certificate file as bytes, ready for encrypt_security_credential."""
    try:
        with open(path, 'rb') as fh:
            return fh.read()
    except OSError as exc:
        raise EncryptionFailed(f'Unable to read certificate file {path}: {exc}', cause=exc)
