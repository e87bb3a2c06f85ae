import os
from dotenv import load_dotenv

from daraja_gateway.utils.encryption import load_certificate_file

load_dotenv()


def _env_list(name, default=''):
    return [item.strip() for item in os.getenv(name, default).split(',') if item.strip()]


def _env_bool(name, default='false'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')

    LOG_DIR = os.getenv('LOG_DIR')

    # Daraja credentials
    MPESA_CONSUMER_KEY = os.getenv('MPESA_CONSUMER_KEY')
    MPESA_CONSUMER_SECRET = os.getenv('MPESA_CONSUMER_SECRET')
    MPESA_ENV = os.getenv('MPESA_ENV', 'sandbox')
    MPESA_SHORTCODE = os.getenv('MPESA_SHORTCODE', '')
    MPESA_PASSKEY = os.getenv('MPESA_PASSKEY', '')

    # Initiator (B2C, B2B, reversal, transaction status)
    MPESA_INITIATOR_NAME = os.getenv('MPESA_INITIATOR_NAME', '')
    MPESA_INITIATOR_PASSWORD = os.getenv('MPESA_INITIATOR_PASSWORD', '')
    MPESA_SECURITY_CREDENTIAL = os.getenv('MPESA_SECURITY_CREDENTIAL', '')
    MPESA_CERTIFICATE_PEM = os.getenv('MPESA_CERTIFICATE_PEM', '')
    MPESA_CERTIFICATE_PATH = os.getenv('MPESA_CERTIFICATE_PATH', '')

    # Callback / result URLs
    MPESA_CALLBACK_URL = os.getenv('MPESA_CALLBACK_URL', '')
    MPESA_RESULT_URL = os.getenv('MPESA_RESULT_URL', '')
    MPESA_QUEUE_TIMEOUT_URL = os.getenv('MPESA_QUEUE_TIMEOUT_URL', '')

    MPESA_TIMEOUT = int(os.getenv('MPESA_TIMEOUT', '30'))

    # Webhook IP allowlist; empty means the built-in Safaricom list
    MPESA_ALLOWED_IPS = _env_list('MPESA_ALLOWED_IPS')
    MPESA_SKIP_IP_CHECK = _env_bool('MPESA_SKIP_IP_CHECK')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False
    MPESA_ENV = os.getenv('MPESA_ENV', 'production')
    # Callbacks must come from Safaricom in production
    MPESA_SKIP_IP_CHECK = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    LOG_DIR = None
    MPESA_CONSUMER_KEY = 'test_consumer_key'
    MPESA_CONSUMER_SECRET = 'test_consumer_secret'
    MPESA_ENV = 'sandbox'
    MPESA_SHORTCODE = '174379'
    MPESA_PASSKEY = 'test_passkey'
    MPESA_INITIATOR_NAME = 'testapi'
    MPESA_SECURITY_CREDENTIAL = 'encrypted_cred_b64=='
    MPESA_CERTIFICATE_PEM = ''
    MPESA_CERTIFICATE_PATH = ''
    MPESA_CALLBACK_URL = 'https://example.com/api/v1/mpesa/callbacks/stk'
    MPESA_RESULT_URL = 'https://example.com/api/v1/mpesa/callbacks/b2c/result'
    MPESA_QUEUE_TIMEOUT_URL = 'https://example.com/api/v1/mpesa/callbacks/timeout'
    MPESA_ALLOWED_IPS = []
    MPESA_SKIP_IP_CHECK = False


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def provider_config(app_config):
    """Map Flask config onto the MPesaProvider config dict."""
    certificate = app_config.get('MPESA_CERTIFICATE_PEM', '')
    if not certificate and app_config.get('MPESA_CERTIFICATE_PATH'):
        certificate = load_certificate_file(app_config['MPESA_CERTIFICATE_PATH'])

    return {
        'consumer_key':        app_config.get('MPESA_CONSUMER_KEY'),
        'consumer_secret':     app_config.get('MPESA_CONSUMER_SECRET'),
        'environment':         app_config.get('MPESA_ENV', 'sandbox'),
        'shortcode':           app_config.get('MPESA_SHORTCODE', ''),
        'passkey':             app_config.get('MPESA_PASSKEY', ''),
        'initiator_name':      app_config.get('MPESA_INITIATOR_NAME', ''),
        'initiator_password':  app_config.get('MPESA_INITIATOR_PASSWORD', ''),
        'security_credential': app_config.get('MPESA_SECURITY_CREDENTIAL', ''),
        'certificate_pem':     certificate,
        'callback_url':        app_config.get('MPESA_CALLBACK_URL', ''),
        'result_url':          app_config.get('MPESA_RESULT_URL', ''),
        'queue_timeout_url':   app_config.get('MPESA_QUEUE_TIMEOUT_URL', ''),
        'timeout':             app_config.get('MPESA_TIMEOUT', 30),
    }
