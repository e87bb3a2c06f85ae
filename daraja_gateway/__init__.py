from flask import Flask, jsonify
from flask_cors import CORS

from daraja_gateway.config import config
from daraja_gateway.errors import DarajaError
from daraja_gateway.utils.logger import RequestLogger, configure_app_logging


def create_app(config_name='development', webhook_handler=None):
    """
    Application factory pattern

    Args:
        config_name: Key into daraja_gateway.config.config
        webhook_handler: Callable(event) invoked with every recognised callback
    """
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])

    configure_app_logging(app)
    RequestLogger(app)
    CORS(app)

    # Per-app state; the provider is built lazily on first use
    app.extensions['daraja'] = {
        'provider': None,
        'webhook_handler': webhook_handler,
    }

    # Register blueprints
    from daraja_gateway.api import register_blueprints
    register_blueprints(app)

    # Error handlers
    register_error_handlers(app)

    return app


def register_error_handlers(app):
    """Register error handlers"""

    @app.errorhandler(DarajaError)
    def daraja_error(error):
        if error.http_status >= 500:
            app.logger.error('%s: %s', error.code, error.message)
        return jsonify({
            'error': error.code,
            'message': error.message,
            'status_code': error.status_code,
            'request_id': error.request_id,
        }), error.http_status

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({'error': 'Bad request', 'message': str(error)}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found', 'message': str(error)}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed', 'message': str(error)}), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error', 'message': str(error)}), 500
