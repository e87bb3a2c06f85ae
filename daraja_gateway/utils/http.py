"""
HTTP Transport
JSON request executor for the Daraja API with timeouts and bounded retries.

Transient failures (429 / 5xx, connection errors, timeouts) are retried with
exponential backoff and jitter when `retries > 0`. Any other 4xx is final.

A transient failure that exhausts its retries means the outcome at Safaricom
is unknown: the request may still have been accepted. Callers must wait for
the callback instead of marking the payment failed.
"""

import logging
import random
import time
from typing import Any, Dict, NamedTuple, Optional

import requests

from daraja_gateway.errors import (
    ApiError,
    DarajaError,
    HttpError,
    NetworkError,
    RequestFailed,
    RequestTimeout,
)
from daraja_gateway.utils.logger import redact_payload

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_RETRY_DELAY = 2.0

# Status codes that are transient and safe to retry
RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


class HttpResponse(NamedTuple):
    data: Any
    status: int
    headers: Dict[str, str]


def _jitter(base: float) -> float:
    """Spread a delay by +/-25% so concurrent retries don't line up."""
    spread = base * 0.25
    return base + random.uniform(-spread, spread)


def _error_message(data: Any, status: int) -> str:
    if isinstance(data, dict):
        message = data.get('errorMessage') or data.get('ResponseDescription')
        if message:
            return str(message)
    return f'HTTP {status}'


def _request_id(data: Any) -> Optional[str]:
    if isinstance(data, dict):
        return data.get('requestId')
    return None


def _is_retryable(exc: DarajaError) -> bool:
    if isinstance(exc, (NetworkError, RequestTimeout)):
        return True
    return isinstance(exc, RequestFailed) and exc.status_code in RETRYABLE_STATUSES


class HttpClient:
    """Thin wrapper around a requests.Session that speaks JSON to Daraja."""

    def __init__(self, session: Optional[requests.Session] = None, sleep=time.sleep):
        self._session = session or requests.Session()
        self._sleep = sleep

    def request(
        self,
        url: str,
        method: str = 'GET',
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = 0,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> HttpResponse:
        """
        Send a JSON request and return the parsed response

        Args:
            url: Absolute URL
            method: HTTP method
            headers: Extra headers; override the JSON defaults
            body: JSON-serialisable request body
            timeout: Seconds before the request is abandoned
            retries: Additional attempts for transient failures
            retry_delay: Base delay in seconds, doubled per attempt

        Returns:
            HttpResponse(data, status, headers)

        Raises:
            RequestTimeout, NetworkError, RequestFailed, HttpError, ApiError
        """
        request_headers = {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }
        request_headers.update(headers or {})

        attempt = 0
        while True:
            if attempt > 0:
                delay = _jitter(retry_delay * (2 ** (attempt - 1)))
                logger.info('Retrying %s %s in %.2fs (attempt %d of %d)',
                            method, url, delay, attempt + 1, retries + 1)
                self._sleep(delay)

            try:
                return self._send(method, url, request_headers, body, timeout)
            except DarajaError as exc:
                if not _is_retryable(exc) or attempt >= retries:
                    raise
                logger.warning('Transient failure calling %s: %s', url, exc.message)
            attempt += 1

    def post_json(
        self,
        url: str,
        access_token: str,
        body: Dict[str, Any],
        **kwargs,
    ) -> Any:
        """POST an authenticated JSON body and return the parsed data."""
        response = self.request(
            url,
            method='POST',
            headers={'Authorization': f'Bearer {access_token}'},
            body=body,
            **kwargs,
        )
        return response.data

    def _send(self, method, url, headers, body, timeout) -> HttpResponse:
        kwargs = {'headers': headers, 'timeout': timeout}
        if body is not None:
            kwargs['json'] = body
            logger.debug('%s %s body=%s', method, url, redact_payload(body))

        try:
            resp = self._session.request(method, url, **kwargs)
        except requests.exceptions.Timeout as exc:
            raise RequestTimeout(
                f'Request to {url} timed out after {timeout}s', cause=exc
            )
        except requests.exceptions.ConnectionError as exc:
            raise NetworkError(f'Network error calling {url}: {exc}', cause=exc)
        except requests.RequestException as exc:
            raise RequestFailed(f'Request to {url} failed: {exc}', cause=exc)

        data = self._parse_body(resp)
        response_headers = dict(resp.headers or {})

        logger.debug('HTTP %s from %s: %s', resp.status_code, url, redact_payload(data))

        if not 200 <= resp.status_code < 300:
            message = _error_message(data, resp.status_code)
            error_cls = RequestFailed if resp.status_code in RETRYABLE_STATUSES else HttpError
            raise error_cls(
                f'{method} {url} failed with HTTP {resp.status_code}: {message}',
                status_code=resp.status_code,
                response=data,
                request_id=_request_id(data),
            )

        # Daraja sometimes returns 2xx with an error in the body
        if isinstance(data, dict) and data.get('errorCode'):
            raise ApiError(
                f"Daraja error {data['errorCode']}: {_error_message(data, resp.status_code)}",
                status_code=resp.status_code,
                response=data,
                request_id=_request_id(data),
            )

        return HttpResponse(data=data, status=resp.status_code, headers=response_headers)

    @staticmethod
    def _parse_body(resp) -> Any:
        text = resp.text or ''
        if not text.strip():
            return {}

        content_type = (resp.headers or {}).get('Content-Type', '')
        if 'json' not in content_type.lower():
            return text

        try:
            return resp.json()
        except ValueError:
            return text
