"""
Unit Tests for MPesaProvider
All HTTP is mocked at the requests.Session level; no network calls are made.
"""

import base64
from unittest.mock import Mock

import pytest
from cryptography.hazmat.primitives.asymmetric.padding import PKCS1v15

from conftest import build_mock_response
from daraja_gateway.errors import (
    EncryptionFailed,
    HttpError,
    InvalidCredentials,
    InvalidPhone,
    RequestFailed,
    ValidationError,
)
from daraja_gateway.providers.mpesa_provider import BASE_URLS, MPesaProvider
from daraja_gateway.utils.http import HttpClient

TOKEN_BODY = {'access_token': 'sandbox-token', 'expires_in': '3599'}

STK_ACK = {
    'MerchantRequestID': '29115-34620561-1',
    'CheckoutRequestID': 'ws_CO_191220191020363925',
    'ResponseCode': '0',
    'ResponseDescription': 'Success. Request accepted for processing',
    'CustomerMessage': 'Success. Request accepted for processing',
}

B2C_ACK = {
    'ConversationID': 'AG_20191219_00005797af5d7d75f652',
    'OriginatorConversationID': '16740-34861180-1',
    'ResponseCode': '0',
    'ResponseDescription': 'Accept the service request successfully.',
}


class DarajaStub:
    """Routes mocked session calls: OAuth gets a token, everything else `command`."""

    def __init__(self, command=None):
        self.command = command if command is not None else [build_mock_response(STK_ACK)]
        self.calls = []

    def __call__(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if '/oauth/v1/generate' in url:
            return build_mock_response(TOKEN_BODY)
        if isinstance(self.command, list):
            return self.command.pop(0) if len(self.command) > 1 else self.command[0]
        return self.command

    def command_calls(self):
        return [call for call in self.calls if '/oauth/' not in call[1]]

    def token_calls(self):
        return [call for call in self.calls if '/oauth/' in call[1]]


@pytest.fixture
def stub():
    return DarajaStub()


@pytest.fixture
def sleep():
    return Mock()


def make_provider(stub, sleep=None, **overrides):
    config = {
        'consumer_key': 'test_consumer_key',
        'consumer_secret': 'test_consumer_secret',
        'environment': 'sandbox',
        'shortcode': '174379',
        'passkey': 'test_passkey',
        'initiator_name': 'testapi',
        'security_credential': 'encrypted_cred_b64==',
        'callback_url': 'https://example.com/api/v1/mpesa/callbacks/stk',
        'result_url': 'https://example.com/api/v1/mpesa/callbacks/b2c/result',
        'queue_timeout_url': 'https://example.com/api/v1/mpesa/callbacks/timeout',
    }
    config.update(overrides)
    session = Mock()
    session.request.side_effect = stub
    return MPesaProvider(config, http=HttpClient(session=session, sleep=sleep or Mock()))


@pytest.fixture
def provider(stub, sleep):
    return make_provider(stub, sleep)


class TestMPesaProviderInit:

    def test_sandbox_by_default(self, stub):
        provider = make_provider(stub, environment=None)

        assert provider.environment == 'sandbox'
        assert provider.base_url == 'https://sandbox.safaricom.co.ke'

    def test_production_base_url(self, stub):
        provider = make_provider(stub, environment='Production')

        assert provider.base_url == BASE_URLS['production'] == 'https://api.safaricom.co.ke'

    @pytest.mark.parametrize('missing', ['consumer_key', 'consumer_secret'])
    def test_credentials_required(self, stub, missing):
        with pytest.raises(InvalidCredentials):
            make_provider(stub, **{missing: ''})

    def test_unknown_environment(self, stub):
        with pytest.raises(ValidationError, match='staging'):
            make_provider(stub, environment='staging')

    def test_shortcode_is_text(self, stub):
        assert make_provider(stub, shortcode=174379).shortcode == '174379'


class TestStkPush:

    def test_stk_push_uses_config_defaults(self, provider, stub):
        response = provider.stk_push({
            'amount': 1,
            'phone_number': '0712345678',
            'account_reference': 'INV-001',
        })

        assert response['CheckoutRequestID'] == 'ws_CO_191220191020363925'
        method, url, kwargs = stub.command_calls()[0]
        assert method == 'POST'
        assert url == 'https://sandbox.safaricom.co.ke/mpesa/stkpush/v1/processrequest'
        assert kwargs['headers']['Authorization'] == 'Bearer sandbox-token'
        body = kwargs['json']
        assert body['BusinessShortCode'] == '174379'
        assert body['CallBackURL'] == 'https://example.com/api/v1/mpesa/callbacks/stk'
        assert base64.b64decode(body['Password']).decode() == '174379test_passkey' + body['Timestamp']

    def test_request_overrides_config(self, provider, stub):
        provider.stk_push({
            'amount': 1,
            'phone_number': '0712345678',
            'account_reference': 'INV-001',
            'shortcode': '600000',
            'callback_url': 'https://other.example.com/cb',
        })

        body = stub.command_calls()[0][2]['json']
        assert body['BusinessShortCode'] == '600000'
        assert body['CallBackURL'] == 'https://other.example.com/cb'

    def test_validation_runs_before_any_network_call(self, provider, stub):
        with pytest.raises(ValidationError):
            provider.stk_push({'amount': 0.4, 'phone_number': '0712345678',
                               'account_reference': 'INV-001'})

        assert stub.calls == []

    def test_invalid_phone_before_any_network_call(self, provider, stub):
        with pytest.raises(InvalidPhone):
            provider.stk_push({'amount': 10, 'phone_number': '12345',
                               'account_reference': 'INV-001'})

        assert stub.calls == []

    def test_missing_passkey_is_a_validation_error(self, stub):
        provider = make_provider(stub, passkey='')

        with pytest.raises(ValidationError, match='passkey'):
            provider.stk_push({'amount': 1, 'phone_number': '0712345678',
                               'account_reference': 'INV-001'})

    def test_token_is_reused_across_calls(self, provider, stub):
        request = {'amount': 1, 'phone_number': '0712345678', 'account_reference': 'A'}

        provider.stk_push(request)
        provider.stk_push(request)
        provider.stk_query({'checkout_request_id': 'ws_CO_191220191020363925'})

        assert len(stub.token_calls()) == 1
        assert len(stub.command_calls()) == 3

    def test_sandbox_stk_push_retries_four_times(self, stub, sleep):
        stub.command = build_mock_response({'errorMessage': 'Service unavailable'}, status_code=503)
        provider = make_provider(stub, sleep)

        with pytest.raises(RequestFailed):
            provider.stk_push({'amount': 1, 'phone_number': '0712345678', 'account_reference': 'A'})

        assert len(stub.command_calls()) == 5
        assert sleep.call_count == 4
        # first backoff is 3s +/-25%
        assert 2.25 <= sleep.call_args_list[0][0][0] <= 3.75

    def test_sandbox_query_uses_default_policy(self, stub, sleep):
        stub.command = build_mock_response({'errorMessage': 'busy'}, status_code=503)
        provider = make_provider(stub, sleep)

        with pytest.raises(RequestFailed):
            provider.stk_query({'checkout_request_id': 'ws_CO_1'})

        assert len(stub.command_calls()) == 4

    def test_production_retries_twice(self, stub, sleep):
        stub.command = build_mock_response({'errorMessage': 'busy'}, status_code=502)
        provider = make_provider(stub, sleep, environment='production')

        with pytest.raises(RequestFailed):
            provider.stk_push({'amount': 1, 'phone_number': '0712345678', 'account_reference': 'A'})

        assert len(stub.command_calls()) == 3
        assert 0.75 <= sleep.call_args_list[0][0][0] <= 1.25

    def test_unauthorized_clears_token_cache(self, stub):
        stub.command = [
            build_mock_response({'errorCode': '404.001.03', 'errorMessage': 'Invalid Access Token'},
                                status_code=401),
            build_mock_response(STK_ACK),
        ]
        provider = make_provider(stub)
        request = {'amount': 1, 'phone_number': '0712345678', 'account_reference': 'A'}

        with pytest.raises(HttpError):
            provider.stk_push(request)
        provider.stk_push(request)

        assert len(stub.token_calls()) == 2

    def test_other_http_errors_keep_the_token(self, stub):
        stub.command = [
            build_mock_response({'errorMessage': 'Bad Request'}, status_code=400),
            build_mock_response(STK_ACK),
        ]
        provider = make_provider(stub)
        request = {'amount': 1, 'phone_number': '0712345678', 'account_reference': 'A'}

        with pytest.raises(HttpError):
            provider.stk_push(request)
        provider.stk_push(request)

        assert len(stub.token_calls()) == 1


class TestPrivilegedCommands:

    def test_b2c_with_precomputed_credential(self, stub):
        stub.command = build_mock_response(B2C_ACK)
        provider = make_provider(stub)

        response = provider.b2c({'amount': 100, 'phone_number': '0712345678'})

        assert response['ConversationID'] == B2C_ACK['ConversationID']
        method, url, kwargs = stub.command_calls()[0]
        assert url == 'https://sandbox.safaricom.co.ke/mpesa/b2c/v3/paymentrequest'
        body = kwargs['json']
        assert body['SecurityCredential'] == 'encrypted_cred_b64=='
        assert body['InitiatorName'] == 'testapi'
        assert body['PartyA'] == '174379'
        assert body['ResultURL'] == 'https://example.com/api/v1/mpesa/callbacks/b2c/result'
        assert body['QueueTimeOutURL'] == 'https://example.com/api/v1/mpesa/callbacks/timeout'

    def test_credential_encrypted_from_certificate(self, stub, rsa_private_key, certificate_pem):
        stub.command = build_mock_response(B2C_ACK)
        provider = make_provider(stub, security_credential='', initiator_password='Safaricom999!*!',
                                 certificate_pem=certificate_pem)

        provider.b2c({'amount': 100, 'phone_number': '0712345678'})

        credential = stub.command_calls()[0][2]['json']['SecurityCredential']
        plain = rsa_private_key.decrypt(base64.b64decode(credential), PKCS1v15())
        assert plain == b'Safaricom999!*!'

    def test_credential_is_not_cached(self, stub, certificate_pem):
        stub.command = build_mock_response(B2C_ACK)
        provider = make_provider(stub, security_credential='', initiator_password='pw',
                                 certificate_pem=certificate_pem)

        provider.b2c({'amount': 100, 'phone_number': '0712345678'})
        provider.b2c({'amount': 100, 'phone_number': '0712345678'})

        first, second = [call[2]['json']['SecurityCredential'] for call in stub.command_calls()]
        assert first != second

    def test_no_credential_source_raises_before_network(self, stub):
        provider = make_provider(stub, security_credential='')

        with pytest.raises(InvalidCredentials):
            provider.b2c({'amount': 100, 'phone_number': '0712345678'})

        assert stub.calls == []

    def test_bad_certificate_raises_encryption_failed(self, stub):
        provider = make_provider(stub, security_credential='', initiator_password='pw',
                                 certificate_pem='-----BEGIN CERTIFICATE-----\nxx\n-----END CERTIFICATE-----')

        with pytest.raises(EncryptionFailed):
            provider.reversal({'transaction_id': 'OEI2AK4Q16', 'amount': 10})

        assert stub.calls == []

    def test_initiator_required(self, stub):
        provider = make_provider(stub, initiator_name='')

        with pytest.raises(ValidationError, match='initiator_name'):
            provider.transaction_status({'transaction_id': 'OEI2AK4Q16'})

        assert stub.calls == []

    def test_missing_result_url_is_a_validation_error(self, stub):
        provider = make_provider(stub, result_url='')

        with pytest.raises(ValidationError, match='result_url'):
            provider.b2c({'amount': 100, 'phone_number': '0712345678'})

    @pytest.mark.parametrize('method, request_body, path', [
        ('b2b', {'receiver_shortcode': '600001', 'amount': 100}, '/mpesa/b2b/v1/paymentrequest'),
        ('reversal', {'transaction_id': 'OEI2AK4Q16', 'amount': 10}, '/mpesa/reversal/v1/request'),
        ('transaction_status', {'transaction_id': 'OEI2AK4Q16'}, '/mpesa/transactionstatus/v1/query'),
    ])
    def test_privileged_endpoints(self, stub, method, request_body, path):
        stub.command = build_mock_response(B2C_ACK)
        provider = make_provider(stub)

        getattr(provider, method)(request_body)

        _, url, kwargs = stub.command_calls()[0]
        assert url == f'https://sandbox.safaricom.co.ke{path}'
        assert kwargs['json']['Initiator'] == 'testapi'
        assert kwargs['json']['SecurityCredential'] == 'encrypted_cred_b64=='

    def test_privileged_commands_use_default_retry_policy(self, stub, sleep):
        stub.command = build_mock_response({'errorMessage': 'busy'}, status_code=500)
        provider = make_provider(stub, sleep)

        with pytest.raises(RequestFailed):
            provider.b2c({'amount': 100, 'phone_number': '0712345678'})

        assert len(stub.command_calls()) == 4


class TestC2BAndQR:

    def test_c2b_simulate_in_sandbox(self, stub):
        stub.command = build_mock_response({'ResponseCode': '0'})
        provider = make_provider(stub)

        provider.c2b_simulate({'amount': 10, 'phone_number': '0708374149', 'bill_ref_number': 'inv'})

        _, url, kwargs = stub.command_calls()[0]
        assert url.endswith('/mpesa/c2b/v2/simulate')
        assert kwargs['json']['ShortCode'] == '174379'
        assert kwargs['json']['Msisdn'] == 254708374149

    def test_c2b_simulate_refused_in_production(self, stub):
        provider = make_provider(stub, environment='production')

        with pytest.raises(ValidationError, match='sandbox'):
            provider.c2b_simulate({'amount': 10, 'phone_number': '0708374149'})

        assert stub.calls == []

    def test_c2b_register_urls(self, stub):
        stub.command = build_mock_response({'ResponseCode': '0'})
        provider = make_provider(stub)

        provider.c2b_register_urls({
            'confirmation_url': 'https://example.com/c2b/confirmation',
            'validation_url': 'https://example.com/c2b/validation',
            'response_type': 'Cancelled',
        })

        _, url, kwargs = stub.command_calls()[0]
        assert url.endswith('/mpesa/c2b/v2/registerurl')
        assert kwargs['json']['ResponseType'] == 'Cancelled'

    def test_dynamic_qr(self, stub):
        stub.command = build_mock_response({'ResponseCode': '00', 'QRCode': 'iVBORw0KGgo='})
        provider = make_provider(stub)

        response = provider.dynamic_qr({
            'merchant_name': 'TEST SUPERMARKET', 'ref_no': 'Invoice Test',
            'amount': 1, 'trx_code': 'BG', 'cpi': '373132',
        })

        assert response['QRCode'] == 'iVBORw0KGgo='


class TestTokenHelpers:

    def test_get_access_token(self, provider):
        assert provider.get_access_token().value == 'sandbox-token'

    def test_clear_token_cache(self, provider, stub):
        provider.get_access_token()
        provider.clear_token_cache()
        provider.get_access_token()

        assert len(stub.token_calls()) == 2
