"""
Unit Tests for retry_with_backoff
Sleeps go through a Mock and time through a fake clock; nothing waits.
"""

import threading
from unittest.mock import Mock

import pytest
import requests

from daraja_gateway.errors import HttpError, NetworkError, RequestFailed, RequestTimeout
from daraja_gateway.services.retry_service import (
    CANCELLED,
    DELIVERED,
    EXHAUSTED,
    REJECTED,
    is_client_error,
    retry_with_backoff,
)
from daraja_gateway.utils.http import HttpClient


class FakeClock:

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def flaky(failures, error=None, result='ok'):
    """Callable failing `failures` times before returning `result`."""
    error = error or ConnectionError('connection reset')
    fn = Mock(side_effect=[error] * failures + [result])
    return fn


class TestIsClientError:

    @pytest.mark.parametrize('message, expected', [
        ('HTTP 404 Not Found', True),
        ('Subscriber returned 400', True),
        ('HTTP 500 Internal Server Error', False),
        ('order 1400 failed', False),
        ('timeout after 4s', False),
        ('port 4040 refused', False),
        ("HTTPSConnectionPool(host='hooks.example.com', port=443): Max retries exceeded", False),
        ('Could not reach https://hooks.example.com:443/notify', False),
        ('Connection refused on PORT 404', False),
        ('status_code=403 Forbidden', True),
    ])
    def test_message_parsing(self, message, expected):
        assert is_client_error(Exception(message)) is expected

    def test_structured_status_wins(self):
        assert is_client_error(HttpError('nope', status_code=422)) is True
        assert is_client_error(RequestFailed('HTTP 404 in message', status_code=503)) is False

    def test_requests_http_error(self):
        response = Mock(status_code=410)

        assert is_client_error(requests.HTTPError('gone', response=response)) is True

    def test_transient_gateway_errors_are_never_client_errors(self):
        assert is_client_error(NetworkError('proxy answered 407')) is False
        assert is_client_error(RequestTimeout('no answer from port 443 after 401ms')) is False

    def test_connection_errors_are_never_client_errors(self):
        assert is_client_error(requests.ConnectionError('host:443 said 404')) is False
        assert is_client_error(requests.Timeout('read timed out (read timeout=400)')) is False
        assert is_client_error(ConnectionRefusedError('errno 111 at 10.0.0.1 400')) is False


class TestRetryWithBackoff:

    def test_first_attempt_success(self):
        fn = Mock(return_value={'status': 'ok'})

        result = retry_with_backoff(fn, sleep=Mock())

        assert result.success is True
        assert result.outcome == DELIVERED
        assert result.data == {'status': 'ok'}
        assert result.attempts == 1
        assert result.error is None

    def test_succeeds_after_failures(self):
        sleep = Mock()

        result = retry_with_backoff(flaky(3), sleep=sleep)

        assert result.success is True
        assert result.attempts == 4
        assert sleep.call_count == 3

    def test_delays_double(self):
        sleep = Mock()

        retry_with_backoff(flaky(4), initial_delay=1.0, sleep=sleep)

        assert [c[0][0] for c in sleep.call_args_list] == [1.0, 2.0, 4.0, 8.0]

    def test_delay_is_capped(self):
        sleep = Mock()

        retry_with_backoff(flaky(5), initial_delay=10.0, max_delay=25.0, sleep=sleep)

        assert [c[0][0] for c in sleep.call_args_list] == [10.0, 20.0, 25.0, 25.0, 25.0]

    def test_custom_multiplier(self):
        sleep = Mock()

        retry_with_backoff(flaky(2), initial_delay=1.0, backoff_multiplier=3.0, sleep=sleep)

        assert [c[0][0] for c in sleep.call_args_list] == [1.0, 3.0]

    def test_client_error_is_not_retried(self):
        error = Exception('Subscriber responded with HTTP 404')
        fn = Mock(side_effect=error)
        sleep = Mock()

        result = retry_with_backoff(fn, sleep=sleep)

        assert result.success is False
        assert result.outcome == REJECTED
        assert result.attempts == 1
        assert result.error is error
        sleep.assert_not_called()

    def test_status_code_like_numbers_are_retried(self):
        result = retry_with_backoff(flaky(1, Exception('order 1400 failed')), sleep=Mock())

        assert result.success is True
        assert result.attempts == 2

    def test_exhausted_by_max_retries(self):
        error = ConnectionError('down')
        fn = Mock(side_effect=error)
        sleep = Mock()

        result = retry_with_backoff(fn, max_retries=3, sleep=sleep)

        assert result.success is False
        assert result.outcome == EXHAUSTED
        assert result.attempts == 3
        assert fn.call_count == 3
        assert sleep.call_count == 2
        assert result.error is error

    def test_zero_max_retries_never_calls(self):
        fn = Mock()

        result = retry_with_backoff(fn, max_retries=0, sleep=Mock())

        assert result.outcome == EXHAUSTED
        assert result.attempts == 0
        fn.assert_not_called()

    def test_exhausted_by_duration(self):
        clock = FakeClock()
        sleep = Mock(side_effect=lambda delay: setattr(clock, 'now', clock.now + delay))
        fn = Mock(side_effect=ConnectionError('down'))

        result = retry_with_backoff(fn, initial_delay=10.0, max_retry_duration=60.0,
                                    sleep=sleep, clock=clock)

        # attempts at t=0, 10, 30; the next check at t=70 gives up
        assert result.outcome == EXHAUSTED
        assert result.attempts == 3
        assert isinstance(result.error, ConnectionError)
        assert result.elapsed == 70.0

    def test_cancelled_before_first_attempt(self):
        cancel = threading.Event()
        cancel.set()
        fn = Mock()

        result = retry_with_backoff(fn, cancel_event=cancel, sleep=Mock())

        assert result.outcome == CANCELLED
        assert result.attempts == 0
        fn.assert_not_called()

    def test_cancelled_between_attempts(self):
        cancel = threading.Event()
        fn = Mock(side_effect=ConnectionError('down'))

        result = retry_with_backoff(fn, cancel_event=cancel, sleep=lambda delay: cancel.set())

        assert result.success is False
        assert result.outcome == CANCELLED
        assert result.attempts == 1

    def test_cancel_event_wait_is_used_without_sleep(self):
        cancel = Mock()
        cancel.is_set.return_value = False
        cancel.wait.return_value = True
        fn = Mock(side_effect=ConnectionError('down'))

        result = retry_with_backoff(fn, initial_delay=5.0, cancel_event=cancel)

        cancel.wait.assert_called_once_with(5.0)
        assert result.outcome == CANCELLED


def test_network_failures_from_http_client_are_retried():
    session = Mock()
    session.request.side_effect = requests.exceptions.ConnectionError(
        "HTTPSConnectionPool(host='hooks.example.com', port=443): Max retries exceeded"
    )
    client = HttpClient(session=session, sleep=Mock())
    calls = []

    def deliver():
        calls.append(1)
        if len(calls) < 3:
            return client.request('https://hooks.example.com/notify', method='POST', body={})
        return 'ok'

    result = retry_with_backoff(deliver, sleep=Mock())

    assert result.success is True
    assert result.outcome == DELIVERED
    assert result.attempts == 3
    assert session.request.call_count == 2
