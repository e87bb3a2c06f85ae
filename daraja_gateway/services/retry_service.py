"""
Retry Service
Exponential backoff for forwarding webhook notifications to your own
subscribers (at-least-once delivery).

Daraja itself does not retry a callback it could not deliver, so once a
callback has been acknowledged the onward processing is ours to retry.
"""

import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

from daraja_gateway.errors import DarajaError

logger = logging.getLogger(__name__)

DELIVERED = 'delivered'
EXHAUSTED = 'exhausted'
REJECTED = 'rejected'
CANCELLED = 'cancelled'

# 30 days
DEFAULT_MAX_RETRY_DURATION = 30 * 24 * 60 * 60

# "port=443", "port 443"
_PORT_PATTERN = re.compile(r'\bport\s*[=:]?\s*\d+', re.IGNORECASE)

# A standalone 4xx status, e.g. "HTTP 404" but not "1400" or "host:443"
_CLIENT_ERROR_PATTERN = re.compile(r'(?<![\w:.])4\d{2}(?!\w)')


@dataclass(frozen=True)
class RetryResult:
    success: bool
    data: Any = None
    attempts: int = 0
    error: Optional[BaseException] = None
    outcome: str = DELIVERED
    elapsed: float = 0.0


def _status_code(exc: BaseException) -> Optional[int]:
    status = getattr(exc, 'status_code', None)
    if status is None:
        # requests.HTTPError keeps it on the response
        status = getattr(getattr(exc, 'response', None), 'status_code', None)
    if isinstance(status, int) and not isinstance(status, bool):
        return status
    return None


def is_client_error(exc: BaseException) -> bool:
    """
    True for failures that will not heal on retry (HTTP 4xx)

    A structured status code wins. Network failures and timeouts are never
    client errors. Otherwise the message, with port numbers removed, is
    searched for a standalone 4xx status.
    """
    status = _status_code(exc)
    if status is not None:
        return 400 <= status < 500
    if isinstance(exc, DarajaError) and exc.is_transient:
        return False
    if isinstance(exc, (requests.ConnectionError, requests.Timeout, ConnectionError, TimeoutError)):
        return False
    message = _PORT_PATTERN.sub('', str(exc))
    return bool(_CLIENT_ERROR_PATTERN.search(message))


def _wait(delay: float, sleep: Optional[Callable[[float], Any]],
          cancel_event: Optional[threading.Event]) -> bool:
    """Wait out a backoff delay; returns True if cancelled meanwhile."""
    if sleep is not None:
        sleep(delay)
    elif cancel_event is not None:
        return cancel_event.wait(delay)
    else:
        time.sleep(delay)
    return cancel_event is not None and cancel_event.is_set()


def retry_with_backoff(
    fn: Callable[[], Any],
    max_retries: Optional[int] = None,
    initial_delay: float = 1.0,
    max_delay: float = 3600.0,
    backoff_multiplier: float = 2.0,
    max_retry_duration: float = DEFAULT_MAX_RETRY_DURATION,
    sleep: Optional[Callable[[float], Any]] = None,
    clock: Callable[[], float] = time.monotonic,
    cancel_event: Optional[threading.Event] = None,
) -> RetryResult:
    """
    Call `fn` until it succeeds, a limit is hit, or it fails with a 4xx

    Args:
        fn: Zero-argument callable doing the delivery
        max_retries: Maximum number of attempts; None for no limit
        initial_delay: Seconds before the second attempt
        max_delay: Ceiling for the doubled delay
        backoff_multiplier: Delay growth per attempt
        max_retry_duration: Give up once this many seconds have elapsed
        sleep: Replacement for time.sleep (tests)
        clock: Monotonic clock in seconds (tests)
        cancel_event: Set it to abort the loop between attempts

    Returns:
        RetryResult. Never raises: the last error is returned in `error`.
    """
    start = clock()
    delay = initial_delay
    attempts = 0
    last_error: Optional[BaseException] = None

    def _result(success, outcome, data=None):
        return RetryResult(
            success=success,
            data=data,
            attempts=attempts,
            error=last_error,
            outcome=outcome,
            elapsed=clock() - start,
        )

    while max_retries is None or attempts < max_retries:
        if cancel_event is not None and cancel_event.is_set():
            logger.info('Delivery cancelled after %d attempt(s)', attempts)
            return _result(False, CANCELLED)

        if clock() - start > max_retry_duration:
            logger.warning('Max retry duration exceeded after %d attempt(s)', attempts)
            if last_error is None:
                last_error = TimeoutError('Max retry duration exceeded')
            return _result(False, EXHAUSTED)

        attempts += 1
        try:
            data = fn()
        except Exception as exc:
            last_error = exc
            if is_client_error(exc):
                logger.warning('Delivery rejected with a client error, not retrying: %s', exc)
                return _result(False, REJECTED)

            logger.warning('Delivery attempt %d failed: %s', attempts, exc)
            if max_retries is not None and attempts >= max_retries:
                break
            if _wait(delay, sleep, cancel_event):
                logger.info('Delivery cancelled after %d attempt(s)', attempts)
                return _result(False, CANCELLED)
            delay = min(delay * backoff_multiplier, max_delay)
            continue

        return _result(True, DELIVERED, data=data)

    return _result(False, EXHAUSTED)
