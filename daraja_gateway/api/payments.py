"""
Payment API Endpoints
Thin JSON front for the outbound Daraja commands. Bodies use the provider's
snake_case request fields; DarajaError is rendered by the app error handler.

Every response is an acknowledgement only. Final outcomes arrive on the
callback routes.
"""

from flask import Blueprint, jsonify, request

from daraja_gateway.providers import get_provider

payments_bp = Blueprint('payments', __name__)


def _body():
    return request.get_json(silent=True)


@payments_bp.route('/stk-push', methods=['POST'])
def stk_push():
    """
    Initiate an STK Push

    Body:
        {
            "amount": 100,
            "phone_number": "0712345678",
            "account_reference": "INV-001",
            "transaction_desc": "Payment"
        }
    """
    response = get_provider().stk_push(_body())
    return jsonify({'success': True, 'data': response}), 202


@payments_bp.route('/stk-query', methods=['POST'])
def stk_query():
    """Body: {"checkout_request_id": "ws_CO_..."}"""
    response = get_provider().stk_query(_body())
    return jsonify({'success': True, 'data': response}), 200


@payments_bp.route('/transaction-status', methods=['POST'])
def transaction_status():
    """Body: {"transaction_id": "OEI2AK4Q16", "identifier_type": 4}"""
    response = get_provider().transaction_status(_body())
    return jsonify({'success': True, 'data': response}), 202


@payments_bp.route('/b2c', methods=['POST'])
def b2c():
    """
    Pay a customer

    Body:
        {
            "amount": 500,
            "phone_number": "254712345678",
            "command_id": "BusinessPayment",
            "remarks": "Refund"
        }
    """
    response = get_provider().b2c(_body())
    return jsonify({'success': True, 'data': response}), 202


@payments_bp.route('/reversal', methods=['POST'])
def reversal():
    """Body: {"transaction_id": "OEI2AK4Q16", "amount": 100}"""
    response = get_provider().reversal(_body())
    return jsonify({'success': True, 'data': response}), 202


@payments_bp.route('/qr-code', methods=['POST'])
def qr_code():
    """
    Generate a dynamic QR code

    Body:
        {
            "merchant_name": "TEST SUPERMARKET",
            "ref_no": "Invoice Test",
            "amount": 1,
            "trx_code": "BG",
            "cpi": "373132"
        }
    """
    response = get_provider().dynamic_qr(_body())
    return jsonify({'success': True, 'data': response}), 200
