"""
Dynamic QR - LIPA NA M-PESA QR codes
    POST /mpesa/qrcode/v1/generate

TrxCode:
    BG  Pay merchant (buy goods)
    WA  Withdraw cash at agent till
    PB  Paybill or business number
    SM  Send money (mobile number)
    SB  Send to business
"""

from typing import Any, Dict

from daraja_gateway.commands.base import post_command
from daraja_gateway.errors import InvalidResponse
from daraja_gateway.utils.http import HttpClient

QR_CODE_PATH = '/mpesa/qrcode/v1/generate'


def build_dynamic_qr_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'MerchantName': data['merchant_name'],
        'RefNo': data['ref_no'],
        'Amount': data['amount'],
        'TrxCode': data['trx_code'],
        'CPI': data['cpi'],
        'Size': data['size'],
    }


def generate_dynamic_qr(
    http: HttpClient,
    base_url: str,
    access_token: str,
    data: Dict[str, Any],
    **transport_opts,
) -> Dict[str, Any]:
    """
    Generate a QR code

    Returns:
        ResponseCode, RequestID, ResponseDescription and QRCode, a base64 PNG
    """
    payload = build_dynamic_qr_payload(data)
    response = post_command(http, f'{base_url}{QR_CODE_PATH}', access_token, payload,
                            **transport_opts)
    if not response.get('QRCode'):
        raise InvalidResponse('Daraja returned no QRCode image', response=response)
    return response
