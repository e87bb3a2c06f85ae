"""
Transaction Status Query
    POST /mpesa/transactionstatus/v1/query

Takes an M-Pesa TransactionID (e.g. "OEI2AK4Q16"), not a CheckoutRequestID.
Use the STK query for pending STK Pushes.
"""

from typing import Any, Dict

from daraja_gateway.commands.base import post_command
from daraja_gateway.utils.http import HttpClient

TRANSACTION_STATUS_PATH = '/mpesa/transactionstatus/v1/query'


def build_transaction_status_payload(
    data: Dict[str, Any],
    initiator_name: str,
    security_credential: str,
) -> Dict[str, Any]:
    return {
        'Initiator': initiator_name,
        'SecurityCredential': security_credential,
        'CommandID': 'TransactionStatusQuery',
        'TransactionID': data['transaction_id'],
        'PartyA': data['shortcode'],
        'IdentifierType': data['identifier_type'],
        'ResultURL': data['result_url'],
        'QueueTimeOutURL': data['timeout_url'],
        'Remarks': data['remarks'],
        'Occasion': data['occasion'],
    }


def query_transaction_status(
    http: HttpClient,
    base_url: str,
    access_token: str,
    security_credential: str,
    initiator_name: str,
    data: Dict[str, Any],
    **transport_opts,
) -> Dict[str, Any]:
    payload = build_transaction_status_payload(data, initiator_name, security_credential)
    return post_command(http, f'{base_url}{TRANSACTION_STATUS_PATH}', access_token, payload,
                        **transport_opts)
