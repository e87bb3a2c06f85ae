from typing import Any, Dict

from flask import current_app

from daraja_gateway.providers.mpesa_provider import BASE_URLS, MPesaProvider


def get_provider() -> MPesaProvider:
    """
    Get the MPesaProvider bound to the current Flask app.

    The instance is built once per app so its token cache is shared by
    every request.
    """
    state = current_app.extensions['daraja']
    if state.get('provider') is None:
        state['provider'] = MPesaProvider(_get_provider_config())
    return state['provider']


def _get_provider_config() -> Dict[str, Any]:
    """Get provider configuration from Flask app config."""
    from daraja_gateway.config import provider_config
    return provider_config(current_app.config)


__all__ = ['get_provider', 'MPesaProvider', 'BASE_URLS']
