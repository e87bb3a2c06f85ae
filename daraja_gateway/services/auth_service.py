"""
Auth Service
OAuth client-credentials token lifecycle for the Daraja API
"""

import base64
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from daraja_gateway.errors import AuthFailed, InvalidResponse
from daraja_gateway.utils.http import HttpClient

logger = logging.getLogger(__name__)

OAUTH_PATH = '/oauth/v1/generate'

# Tokens are treated as expired this many seconds early
EXPIRY_BUFFER = 60

DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_at: float

    def is_valid(self, now: float, buffer: float = EXPIRY_BUFFER) -> bool:
        return now + buffer < self.expires_at


class TokenManager:
    """
    Caches one bearer token per consumer key/secret pair.

    Refresh is not serialised: two callers racing past an expired token may
    both fetch. Both tokens are valid, so the last one written wins.
    """

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        base_url: str,
        http: Optional[HttpClient] = None,
        clock: Callable[[], float] = time.time,
        timeout: float = 30,
    ):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.base_url = base_url.rstrip('/')
        self._http = http or HttpClient()
        self._clock = clock
        self._timeout = timeout
        self._token: Optional[AccessToken] = None

    def _basic_auth(self) -> str:
        raw = f'{self.consumer_key}:{self.consumer_secret}'
        return base64.b64encode(raw.encode('utf-8')).decode('utf-8')

    def get_access_token(self) -> AccessToken:
        """
        Return the cached token, fetching a new one when it is near expiry

        Raises:
            AuthFailed: If Daraja answers without an access_token
            InvalidResponse: If expires_in is not a number
            NetworkError, RequestTimeout, HttpError: From the transport
        """
        now = self._clock()
        if self._token is not None and self._token.is_valid(now):
            return self._token

        response = self._http.request(
            f'{self.base_url}{OAUTH_PATH}?grant_type=client_credentials',
            method='GET',
            headers={'Authorization': f'Basic {self._basic_auth()}'},
            timeout=self._timeout,
        )
        data = response.data

        if not isinstance(data, dict) or not data.get('access_token'):
            raise AuthFailed(
                'Daraja did not return an access token. Check the consumer key '
                'and secret for this environment.',
                status_code=response.status,
                response=data,
            )

        try:
            expires_in = int(data.get('expires_in') or DEFAULT_EXPIRES_IN)
        except (TypeError, ValueError) as exc:
            raise InvalidResponse(
                f'Unusable expires_in in token response: {data.get("expires_in")!r}',
                status_code=response.status,
                response=data,
                cause=exc,
            )
        self._token = AccessToken(
            value=data['access_token'],
            expires_at=now + expires_in,
        )

        logger.debug('Access token refreshed (expires in %ds)', expires_in)
        return self._token

    def clear_cache(self) -> None:
        """Drop the cached token so the next call fetches a fresh one."""
        self._token = None
