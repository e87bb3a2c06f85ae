"""
M-Pesa Express (STK Push)
Sends a PIN prompt to the customer's phone, and queries its status.

    POST /mpesa/stkpush/v1/processrequest
    POST /mpesa/stkpushquery/v1/query

Password = Base64(BusinessShortCode + Passkey + Timestamp). Daraja checks it
against the Timestamp field, so one timestamp is generated per request and
used for both.
"""

import base64
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from daraja_gateway.commands.base import post_command
from daraja_gateway.utils.http import HttpClient

STK_PUSH_PATH = '/mpesa/stkpush/v1/processrequest'
STK_QUERY_PATH = '/mpesa/stkpushquery/v1/query'

# Daraja hard limits; longer values are cut, not rejected
ACCOUNT_REFERENCE_MAX = 12
TRANSACTION_DESC_MAX = 13

NAIROBI_TZ = timezone(timedelta(hours=3), 'EAT')


def get_timestamp(now: Optional[datetime] = None) -> str:
    """Daraja timestamp, YYYYMMDDHHmmss in Nairobi time."""
    now = now or datetime.now(NAIROBI_TZ)
    return now.strftime('%Y%m%d%H%M%S')


def get_stk_push_password(shortcode: str, passkey: str, timestamp: str) -> str:
    raw = f'{shortcode}{passkey}{timestamp}'
    return base64.b64encode(raw.encode('utf-8')).decode('utf-8')


def build_stk_push_payload(data: Dict[str, Any], timestamp: str) -> Dict[str, Any]:
    """
    Build the processrequest body

    Args:
        data: Fields loaded through StkPushRequestSchema
        timestamp: Value from get_timestamp(), used for Password and Timestamp
    """
    shortcode = data['shortcode']
    return {
        'BusinessShortCode': shortcode,
        'Password': get_stk_push_password(shortcode, data['passkey'], timestamp),
        'Timestamp': timestamp,
        'TransactionType': data['transaction_type'],
        'Amount': data['amount'],
        'PartyA': data['phone_number'],
        'PartyB': data.get('party_b') or shortcode,
        'PhoneNumber': data['phone_number'],
        'CallBackURL': data['callback_url'],
        'AccountReference': data['account_reference'][:ACCOUNT_REFERENCE_MAX],
        'TransactionDesc': data['transaction_desc'][:TRANSACTION_DESC_MAX],
    }


def build_stk_query_payload(data: Dict[str, Any], timestamp: str) -> Dict[str, Any]:
    shortcode = data['shortcode']
    return {
        'BusinessShortCode': shortcode,
        'Password': get_stk_push_password(shortcode, data['passkey'], timestamp),
        'Timestamp': timestamp,
        'CheckoutRequestID': data['checkout_request_id'],
    }


def process_stk_push(
    http: HttpClient,
    base_url: str,
    access_token: str,
    data: Dict[str, Any],
    **transport_opts,
) -> Dict[str, Any]:
    """
    Initiate an STK Push

    Returns Daraja's acknowledgement (MerchantRequestID, CheckoutRequestID,
    ResponseCode, ResponseDescription, CustomerMessage). The payment outcome
    arrives later on the callback URL.
    """
    payload = build_stk_push_payload(data, get_timestamp())
    return post_command(http, f'{base_url}{STK_PUSH_PATH}', access_token, payload,
                        **transport_opts)


def process_stk_query(
    http: HttpClient,
    base_url: str,
    access_token: str,
    data: Dict[str, Any],
    **transport_opts,
) -> Dict[str, Any]:
    """Query the status of an STK Push by CheckoutRequestID."""
    payload = build_stk_query_payload(data, get_timestamp())
    return post_command(http, f'{base_url}{STK_QUERY_PATH}', access_token, payload,
                        **transport_opts)
