"""
Transaction Reversal
    POST /mpesa/reversal/v1/request
"""

from typing import Any, Dict

from daraja_gateway.commands.base import post_command
from daraja_gateway.utils.http import HttpClient

REVERSAL_PATH = '/mpesa/reversal/v1/request'


def build_reversal_payload(
    data: Dict[str, Any],
    initiator_name: str,
    security_credential: str,
) -> Dict[str, Any]:
    return {
        'Initiator': initiator_name,
        'SecurityCredential': security_credential,
        'CommandID': 'TransactionReversal',
        'TransactionID': data['transaction_id'],
        'Amount': data['amount'],
        'ReceiverParty': data['shortcode'],
        'RecieverIdentifierType': data['receiver_identifier_type'],
        'ResultURL': data['result_url'],
        'QueueTimeOutURL': data['timeout_url'],
        'Remarks': data['remarks'],
        'Occasion': data['occasion'],
    }


def process_reversal(
    http: HttpClient,
    base_url: str,
    access_token: str,
    security_credential: str,
    initiator_name: str,
    data: Dict[str, Any],
    **transport_opts,
) -> Dict[str, Any]:
    """
    Reverse a completed M-Pesa transaction

    The acknowledgement means the request was queued. Listen on ResultURL
    before treating the transaction as reversed.
    """
    payload = build_reversal_payload(data, initiator_name, security_credential)
    return post_command(http, f'{base_url}{REVERSAL_PATH}', access_token, payload,
                        **transport_opts)
