"""
B2B - Business to Business payments
    POST /mpesa/b2b/v1/paymentrequest
"""

from typing import Any, Dict

from daraja_gateway.commands.base import post_command
from daraja_gateway.utils.http import HttpClient

B2B_PATH = '/mpesa/b2b/v1/paymentrequest'


def build_b2b_payload(
    data: Dict[str, Any],
    initiator_name: str,
    security_credential: str,
) -> Dict[str, Any]:
    payload = {
        'Initiator': initiator_name,
        'SecurityCredential': security_credential,
        'CommandID': data['command_id'],
        # Daraja spells the receiver field "Reciever"
        'SenderIdentifierType': data['sender_identifier_type'],
        'RecieverIdentifierType': data['receiver_identifier_type'],
        'Amount': data['amount'],
        'PartyA': data['shortcode'],
        'PartyB': data['receiver_shortcode'],
        'AccountReference': data['account_reference'],
        'Remarks': data['remarks'],
        'QueueTimeOutURL': data['timeout_url'],
        'ResultURL': data['result_url'],
    }
    if data.get('requester'):
        payload['Requester'] = data['requester']
    return payload


def process_b2b(
    http: HttpClient,
    base_url: str,
    access_token: str,
    security_credential: str,
    initiator_name: str,
    data: Dict[str, Any],
    **transport_opts,
) -> Dict[str, Any]:
    """Move funds between two shortcodes; the result arrives on ResultURL."""
    payload = build_b2b_payload(data, initiator_name, security_credential)
    return post_command(http, f'{base_url}{B2B_PATH}', access_token, payload,
                        **transport_opts)
