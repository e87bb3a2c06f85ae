"""
Pytest Configuration and Fixtures
"""
import datetime
import json
from unittest.mock import Mock

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from daraja_gateway import create_app


def build_mock_response(json_data=None, status_code=200, text=None, content_type='application/json'):
    """Return a mock requests.Response."""
    resp = Mock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 400
    if text is None:
        text = json.dumps(json_data) if json_data is not None else ''
    resp.text = text
    if json_data is not None:
        resp.json.return_value = json_data
    else:
        resp.json.side_effect = ValueError('No JSON object could be decoded')
    resp.headers = {'Content-Type': content_type}
    return resp


@pytest.fixture
def mock_response():
    return build_mock_response


@pytest.fixture(scope='function')
def app():
    """Create application for testing"""
    app = create_app('testing')

    # Establish application context
    ctx = app.app_context()
    ctx.push()

    yield app

    ctx.pop()


@pytest.fixture(scope='function')
def client(app):
    """Create a test client"""
    return app.test_client()


@pytest.fixture(scope='session')
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope='session')
def certificate_pem(rsa_private_key):
    """Self-signed certificate standing in for Safaricom's public certificate"""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, 'apicrypt.safaricom.co.ke')])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(rsa_private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(rsa_private_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope='session')
def public_key_pem(rsa_private_key):
    return rsa_private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture
def stk_callback_payload():
    """Successful STK Push callback as Daraja sends it"""
    return {
        'Body': {
            'stkCallback': {
                'MerchantRequestID': '29115-34620561-1',
                'CheckoutRequestID': 'ws_CO_191220191020363925',
                'ResultCode': 0,
                'ResultDesc': 'The service request is processed successfully.',
                'CallbackMetadata': {
                    'Item': [
                        {'Name': 'Amount', 'Value': 1.00},
                        {'Name': 'MpesaReceiptNumber', 'Value': 'NLJ7RT61SV'},
                        {'Name': 'TransactionDate', 'Value': 20191219102115},
                        {'Name': 'PhoneNumber', 'Value': 254708374149},
                    ]
                },
            }
        }
    }


@pytest.fixture
def stk_cancelled_payload():
    """STK Push the customer cancelled; no CallbackMetadata"""
    return {
        'Body': {
            'stkCallback': {
                'MerchantRequestID': '29115-34620561-2',
                'CheckoutRequestID': 'ws_CO_191220191020363926',
                'ResultCode': 1032,
                'ResultDesc': 'Request cancelled by user',
            }
        }
    }


@pytest.fixture
def b2c_result_payload():
    return {
        'Result': {
            'ResultType': 0,
            'ResultCode': 0,
            'ResultDesc': 'The service request is processed successfully.',
            'OriginatorConversationID': 'AG_20191219_00005797af5d7d75f652',
            'ConversationID': 'AG_20191219_00004e48cf7e3533f581',
            'TransactionID': 'NLJ41HAY6Q',
            'ResultParameters': {
                'ResultParameter': [
                    {'Key': 'TransactionAmount', 'Value': 10},
                    {'Key': 'TransactionReceipt', 'Value': 'NLJ41HAY6Q'},
                    {'Key': 'ReceiverPartyPublicName', 'Value': '254708374149 - John Doe'},
                    {'Key': 'TransactionCompletedDateTime', 'Value': '19.12.2019 11:45:50'},
                ]
            },
            'ReferenceData': {
                'ReferenceItem': {
                    'Key': 'QueueTimeoutURL',
                    'Value': 'https://internalsandbox.safaricom.co.ke/mpesa/b2cresults/v1/submit',
                }
            },
        }
    }


@pytest.fixture
def c2b_confirmation_payload():
    return {
        'TransactionType': 'Pay Bill',
        'TransID': 'RKTQDM7W6S',
        'TransTime': '20191122063845',
        'TransAmount': '10',
        'BusinessShortCode': '600638',
        'BillRefNumber': 'invoice008',
        'InvoiceNumber': '',
        'OrgAccountBalance': '',
        'ThirdPartyTransID': '',
        'MSISDN': '25470****149',
        'FirstName': 'John',
        'MiddleName': '',
        'LastName': 'Doe',
    }
