"""
B2C - Business to Customer payments
    POST /mpesa/b2c/v3/paymentrequest

Asynchronous: the acknowledgement only confirms receipt. The outcome is
POSTed to ResultURL and correlated by ConversationID.
"""

import uuid
from typing import Any, Dict, Optional

from daraja_gateway.commands.base import post_command
from daraja_gateway.utils.http import HttpClient

B2C_PATH = '/mpesa/b2c/v3/paymentrequest'


def new_originator_conversation_id() -> str:
    return f'AG_{uuid.uuid4().hex}'


def build_b2c_payload(
    data: Dict[str, Any],
    initiator_name: str,
    security_credential: str,
    originator_conversation_id: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        'OriginatorConversationID': originator_conversation_id or new_originator_conversation_id(),
        'InitiatorName': initiator_name,
        'SecurityCredential': security_credential,
        'CommandID': data['command_id'],
        'Amount': data['amount'],
        'PartyA': data['shortcode'],
        'PartyB': data['phone_number'],
        'Remarks': data['remarks'],
        'QueueTimeOutURL': data['timeout_url'],
        'ResultURL': data['result_url'],
        'Occasion': data['occasion'],
    }


def process_b2c(
    http: HttpClient,
    base_url: str,
    access_token: str,
    security_credential: str,
    initiator_name: str,
    data: Dict[str, Any],
    **transport_opts,
) -> Dict[str, Any]:
    """
    Send money from a shortcode to a customer

    Args:
        data: Fields loaded through B2CRequestSchema

    Returns:
        OriginatorConversationID, ConversationID, ResponseCode, ResponseDescription
    """
    payload = build_b2c_payload(data, initiator_name, security_credential)
    return post_command(http, f'{base_url}{B2C_PATH}', access_token, payload,
                        **transport_opts)
