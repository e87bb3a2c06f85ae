"""
Webhook API Endpoints
Receives the callbacks Daraja POSTs for every asynchronous command.

Daraja keeps retrying a callback until it gets HTTP 200, so every callback
that passes the IP check is acknowledged, whatever its business outcome and
whatever the registered handler does with it.
"""

from flask import Blueprint, current_app, jsonify, request

from daraja_gateway.services.webhook_service import (
    ACCEPTED_RESPONSE,
    C2B_ACCEPT,
    C2B_REJECT,
    handle_webhook,
)
from daraja_gateway.utils.logger import get_logger

webhooks_bp = Blueprint('webhooks', __name__)
logger = get_logger(__name__)


def _client_ip():
    """First X-Forwarded-For hop when behind a proxy, else the peer address."""
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr


def _dispatch(source):
    """
    Run the webhook pipeline for one callback

    Returns:
        (WebhookResult, handler return value)
    """
    result = handle_webhook(
        request.get_json(silent=True),
        request_ip=_client_ip(),
        allowed_ips=current_app.config.get('MPESA_ALLOWED_IPS') or None,
        skip_ip_check=current_app.config.get('MPESA_SKIP_IP_CHECK', False),
    )

    if result.rejected_ip:
        return result, None

    if not result.success:
        logger.warning(f'Unrecognised {source} callback: {result.error}')
        return result, None

    handler = current_app.extensions['daraja'].get('webhook_handler')
    if handler is None:
        logger.info(f'No webhook handler registered; {source} callback '
                    f'{result.event.correlation_id} acknowledged only')
        return result, None

    try:
        return result, handler(result.event)
    except Exception:
        logger.exception(f'Webhook handler failed for {source} callback '
                         f'{result.event.correlation_id}')
        return result, None


def _forbidden(result):
    return jsonify({'error': 'Forbidden', 'message': result.error}), 403


def _acknowledge(source):
    result, _ = _dispatch(source)
    if result.rejected_ip:
        return _forbidden(result)
    return jsonify(ACCEPTED_RESPONSE), 200


@webhooks_bp.route('/stk', methods=['POST'])
def stk_callback():
    """STK Push result (Body.stkCallback)"""
    return _acknowledge('stk')


@webhooks_bp.route('/b2c/result', methods=['POST'])
def b2c_result():
    return _acknowledge('b2c')


@webhooks_bp.route('/b2b/result', methods=['POST'])
def b2b_result():
    return _acknowledge('b2b')


@webhooks_bp.route('/reversal/result', methods=['POST'])
def reversal_result():
    return _acknowledge('reversal')


@webhooks_bp.route('/transaction-status/result', methods=['POST'])
def transaction_status_result():
    return _acknowledge('transaction-status')


@webhooks_bp.route('/timeout', methods=['POST'])
def queue_timeout():
    """Daraja gave up waiting in its queue; the command outcome is unknown"""
    return _acknowledge('timeout')


@webhooks_bp.route('/c2b/confirmation', methods=['POST'])
def c2b_confirmation():
    return _acknowledge('c2b-confirmation')


@webhooks_bp.route('/c2b/validation', methods=['POST'])
def c2b_validation():
    """
    C2B validation request

    Accepted unless the registered handler returns False for the event.
    """
    result, decision = _dispatch('c2b-validation')
    if result.rejected_ip:
        return _forbidden(result)
    if decision is False:
        return jsonify(C2B_REJECT), 200
    return jsonify(C2B_ACCEPT), 200
