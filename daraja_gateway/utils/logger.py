"""
Logging Configuration
Centralized logging setup for the gateway layer
"""

import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

_REDACTED = '[REDACTED]'

# Fields that must never reach a log record in clear text
_SECRET_FIELDS = frozenset({
    'Password',
    'SecurityCredential',
    'access_token',
    'Authorization',
    'initiator_password',
    'security_credential',
    'consumer_secret',
    'passkey',
})

_PHONE_FIELDS = frozenset({
    'PartyA',
    'PhoneNumber',
    'Msisdn',
    'MSISDN',
    'phone_number',
})


def _mask_phone(value: Any) -> str:
    text = str(value)
    if len(text) <= 4:
        return _REDACTED
    return f'{text[:3]}****{text[-3:]}'


def redact_payload(payload: Any) -> Any:
    """
    Return a copy of a request/response body safe for logging

    Secrets are replaced, phone numbers are masked, nested dicts and
    lists are walked.
    """
    if isinstance(payload, dict):
        redacted = {}
        for key, value in payload.items():
            if key in _SECRET_FIELDS:
                redacted[key] = _REDACTED
            elif key in _PHONE_FIELDS and value is not None:
                redacted[key] = _mask_phone(value)
            else:
                redacted[key] = redact_payload(value)
        return redacted
    if isinstance(payload, list):
        return [redact_payload(item) for item in payload]
    return payload


def get_logger(name: str, log_dir: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger instance

    Args:
        name: Logger name (typically __name__)
        log_dir: Directory for the rotating log file; console only when None

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        logger.setLevel(logging.INFO)

        # Console handler
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter(
            '%(levelname)s - %(name)s - %(message)s'
        ))
        logger.addHandler(console_handler)

        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, 'gateway.log'),
                maxBytes=10485760,  # 10MB
                backupCount=10
            )
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            logger.addHandler(file_handler)

    return logger


def configure_app_logging(app):
    """
    Configure logging for the Flask application

    Args:
        app: Flask application instance
    """
    app.logger.setLevel(logging.INFO)

    log_dir = app.config.get('LOG_DIR')
    if not log_dir:
        return

    os.makedirs(log_dir, exist_ok=True)

    error_handler = RotatingFileHandler(
        os.path.join(log_dir, 'error.log'),
        maxBytes=10485760,
        backupCount=10
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s\n%(pathname)s:%(lineno)d',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    app.logger.addHandler(error_handler)


class RequestLogger:
    """
    Logs each inbound request with its duration

    JSON bodies (payment requests, Daraja callbacks) are logged at DEBUG
    after redact_payload, so credentials and phone numbers never reach the
    log in clear text.
    """

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        from flask import g, request

        logger = get_logger('daraja_gateway.request', app.config.get('LOG_DIR'))

        @app.before_request
        def log_request():
            g.request_started = time.monotonic()
            if request.is_json:
                logger.debug('%s %s body=%s', request.method, request.path,
                             redact_payload(request.get_json(silent=True)))

        @app.after_request
        def log_response(response):
            started = g.pop('request_started', None)
            elapsed_ms = (time.monotonic() - started) * 1000 if started is not None else 0.0
            logger.info('%s %s -> %s in %.1fms (ip=%s)', request.method, request.path,
                        response.status_code, elapsed_ms, request.remote_addr)
            return response
