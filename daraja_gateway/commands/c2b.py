"""
C2B - Customer to Business
    POST /mpesa/c2b/v2/registerurl
    POST /mpesa/c2b/v2/simulate        (sandbox only)

Register the confirmation / validation URLs once per shortcode. In
production a change of URLs goes through Safaricom support.
"""

from typing import Any, Dict

from daraja_gateway.commands.base import post_command
from daraja_gateway.utils.http import HttpClient
from daraja_gateway.utils.phone import msisdn_to_int

C2B_REGISTER_PATH = '/mpesa/c2b/v2/registerurl'
C2B_SIMULATE_PATH = '/mpesa/c2b/v2/simulate'


def build_c2b_simulate_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build the simulate body

    Msisdn goes out as a JSON number. BillRefNumber is the account number for
    paybills and null for till (buy goods) payments.
    """
    is_buy_goods = data['command_id'] == 'CustomerBuyGoodsOnline'
    return {
        'ShortCode': data['shortcode'],
        'CommandID': data['command_id'],
        'Amount': data['amount'],
        'Msisdn': msisdn_to_int(data['phone_number']),
        'BillRefNumber': None if is_buy_goods else data['bill_ref_number'],
    }


def build_c2b_register_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'ShortCode': data['shortcode'],
        'ResponseType': data['response_type'],
        'ConfirmationURL': data['confirmation_url'],
        'ValidationURL': data['validation_url'],
    }


def simulate_c2b(
    http: HttpClient,
    base_url: str,
    access_token: str,
    data: Dict[str, Any],
    **transport_opts,
) -> Dict[str, Any]:
    """Simulate a customer paying a paybill or till (sandbox only)."""
    payload = build_c2b_simulate_payload(data)
    return post_command(http, f'{base_url}{C2B_SIMULATE_PATH}', access_token, payload,
                        **transport_opts)


def register_c2b_urls(
    http: HttpClient,
    base_url: str,
    access_token: str,
    data: Dict[str, Any],
    **transport_opts,
) -> Dict[str, Any]:
    """
    Register C2B confirmation and validation URLs

    response_type decides what Daraja does when the validation URL is
    unreachable: "Completed" accepts the payment, "Cancelled" rejects it.
    """
    payload = build_c2b_register_payload(data)
    return post_command(http, f'{base_url}{C2B_REGISTER_PATH}', access_token, payload,
                        **transport_opts)
