"""
Health Check Endpoints
"""

from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Liveness check

    Reports the Daraja environment and whether credentials are configured;
    it never calls Daraja.
    """
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'service': 'daraja-gateway',
        'version': '1.0.0',
        'environment': current_app.config.get('MPESA_ENV', 'sandbox'),
        'credentials_configured': bool(
            current_app.config.get('MPESA_CONSUMER_KEY')
            and current_app.config.get('MPESA_CONSUMER_SECRET')
        ),
    }), 200
