"""
M-Pesa Payment Provider
Based on the Safaricom Daraja API.

Supported flows
---------------
STK Push (Lipa na M-Pesa Online)
    POST /mpesa/stkpush/v1/processrequest
    POST /mpesa/stkpushquery/v1/query         (status poll)

B2C / B2B (disbursements, business transfers)
    POST /mpesa/b2c/v3/paymentrequest
    POST /mpesa/b2b/v1/paymentrequest

Reversal and Transaction Status
    POST /mpesa/reversal/v1/request
    POST /mpesa/transactionstatus/v1/query

C2B (paybill / till, server-to-server confirmation)
    POST /mpesa/c2b/v2/registerurl
    POST /mpesa/c2b/v2/simulate               (sandbox only)

Dynamic QR
    POST /mpesa/qrcode/v1/generate

Authentication
    GET  /oauth/v1/generate?grant_type=client_credentials  (Basic auth)
    One TokenManager per provider instance; tokens are refreshed 60s early.

Required config keys
--------------------
    consumer_key        - From the Safaricom Developer Portal app
    consumer_secret     - From the Safaricom Developer Portal app

Optional config keys
--------------------
    environment         - "sandbox" (default) | "production"
    shortcode           - Business shortcode (paybill or till)
    passkey             - Lipa na M-Pesa Online passkey (STK Push / Query)
    initiator_name      - API operator username (B2C, B2B, reversal, status)
    initiator_password  - Plain initiator password, encrypted per call with
    certificate_pem       the environment's certificate
    security_credential - Pre-encrypted initiator password; wins over the above
    callback_url        - STK Push callback endpoint
    result_url          - Result endpoint for asynchronous commands
    queue_timeout_url   - Timeout endpoint for asynchronous commands
    timeout             - Per-request timeout in seconds (default 30)

Per-call request fields override the config defaults.
"""

import logging
from typing import Any, Dict, Optional, Type

from marshmallow import Schema

from daraja_gateway.commands import (
    generate_dynamic_qr,
    load_request,
    process_b2b,
    process_b2c,
    process_reversal,
    process_stk_push,
    process_stk_query,
    query_transaction_status,
    register_c2b_urls,
    simulate_c2b,
)
from daraja_gateway.errors import HttpError, InvalidCredentials, ValidationError
from daraja_gateway.schemas import (
    B2BRequestSchema,
    B2CRequestSchema,
    C2BRegisterUrlRequestSchema,
    C2BSimulateRequestSchema,
    DynamicQRRequestSchema,
    ReversalRequestSchema,
    StkPushRequestSchema,
    StkQueryRequestSchema,
    TransactionStatusRequestSchema,
)
from daraja_gateway.services.auth_service import AccessToken, TokenManager
from daraja_gateway.utils.encryption import encrypt_security_credential
from daraja_gateway.utils.http import DEFAULT_TIMEOUT, HttpClient

logger = logging.getLogger(__name__)

# Daraja base URLs
BASE_URLS = {
    'sandbox':    'https://sandbox.safaricom.co.ke',
    'production': 'https://api.safaricom.co.ke',
}

# (retries, base delay in seconds); the sandbox is slow and flaky under load
_RETRY_POLICY = {
    'sandbox':    (3, 2.0),
    'production': (2, 1.0),
}
_SANDBOX_STK_RETRY_POLICY = (4, 3.0)


class MPesaProvider:
    """M-Pesa (Daraja API) client: one instance per credential pair."""

    def __init__(
        self,
        config: Dict[str, Any],
        http: Optional[HttpClient] = None,
        token_manager: Optional[TokenManager] = None,
    ):
        self.consumer_key    = config.get('consumer_key') or ''
        self.consumer_secret = config.get('consumer_secret') or ''
        self.environment     = (config.get('environment') or 'sandbox').lower()

        if not self.consumer_key or not self.consumer_secret:
            raise InvalidCredentials("MPesaProvider: 'consumer_key' and 'consumer_secret' are required")
        if self.environment not in BASE_URLS:
            raise ValidationError(
                f"MPesaProvider: environment must be 'sandbox' or 'production', got '{self.environment}'"
            )

        self.shortcode           = str(config.get('shortcode') or '')
        self.passkey             = config.get('passkey') or ''
        self.initiator_name      = config.get('initiator_name') or ''
        self.initiator_password  = config.get('initiator_password') or ''
        self.certificate_pem     = config.get('certificate_pem') or ''
        self.security_credential = config.get('security_credential') or ''
        self.callback_url        = config.get('callback_url') or ''
        self.result_url          = config.get('result_url') or ''
        self.queue_timeout_url   = config.get('queue_timeout_url') or ''
        self.timeout             = config.get('timeout') or DEFAULT_TIMEOUT

        self.base_url = BASE_URLS[self.environment]

        self._http = http or HttpClient()
        self._tokens = token_manager or TokenManager(
            self.consumer_key,
            self.consumer_secret,
            self.base_url,
            http=self._http,
            timeout=self.timeout,
        )

    # STK Push

    def stk_push(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send an M-Pesa Express prompt to the customer's phone

        request fields:
            amount             - KES, rounded half-up, at least 1
            phone_number       - Any common Kenyan format
            account_reference  - Shown to the customer; cut to 12 characters
            transaction_desc   - Optional; cut to 13 characters
            transaction_type   - CustomerPayBillOnline (default) | CustomerBuyGoodsOnline
            party_b            - Till number for buy goods; defaults to shortcode
            callback_url, shortcode, passkey - Override the config

        Returns Daraja's acknowledgement; poll stk_query() with its
        CheckoutRequestID or wait for the callback.
        """
        data = self._load(StkPushRequestSchema, request, shortcode=self.shortcode,
                          passkey=self.passkey, callback_url=self.callback_url)
        return self._call(process_stk_push, data, stk=True)

    def stk_query(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Query an STK Push by checkout_request_id."""
        data = self._load(StkQueryRequestSchema, request, shortcode=self.shortcode,
                          passkey=self.passkey)
        return self._call(process_stk_query, data)

    # Privileged commands (initiator + security credential)

    def b2c(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Pay a customer from the shortcode

        command_id: BusinessPayment (default) | SalaryPayment | PromotionPayment
        """
        data = self._load(B2CRequestSchema, request, **self._result_defaults())
        return self._call_privileged(process_b2c, data)

    def b2b(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Pay another business

        command_id: BusinessPayBill (default) | BusinessBuyGoods |
                    DisburseFundsToBusiness | BusinessToBusinessTransfer
        """
        data = self._load(B2BRequestSchema, request, **self._result_defaults())
        return self._call_privileged(process_b2b, data)

    def reversal(self, request: Dict[str, Any]) -> Dict[str, Any]:
        data = self._load(ReversalRequestSchema, request, **self._result_defaults())
        return self._call_privileged(process_reversal, data)

    def transaction_status(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Query any M-Pesa transaction by its TransactionID; result arrives on result_url."""
        data = self._load(TransactionStatusRequestSchema, request, **self._result_defaults())
        return self._call_privileged(query_transaction_status, data)

    # C2B

    def c2b_simulate(self, request: Dict[str, Any]) -> Dict[str, Any]:
        if self.environment != 'sandbox':
            raise ValidationError('MPesaProvider: C2B simulate is only available in the sandbox environment')
        data = self._load(C2BSimulateRequestSchema, request, shortcode=self.shortcode)
        return self._call(simulate_c2b, data)

    def c2b_register_urls(self, request: Dict[str, Any]) -> Dict[str, Any]:
        data = self._load(C2BRegisterUrlRequestSchema, request, shortcode=self.shortcode)
        return self._call(register_c2b_urls, data)

    # Dynamic QR

    def dynamic_qr(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Generate a LIPA NA M-PESA QR code; QRCode in the response is a base64 PNG."""
        data = self._load(DynamicQRRequestSchema, request)
        return self._call(generate_dynamic_qr, data)

    # Token helpers

    def get_access_token(self) -> AccessToken:
        return self._tokens.get_access_token()

    def clear_token_cache(self) -> None:
        """Force the OAuth token to be refetched on the next call."""
        self._tokens.clear_cache()

    # Private helpers

    @staticmethod
    def _load(schema_cls: Type[Schema], request: Optional[Dict[str, Any]], **defaults) -> Dict[str, Any]:
        """Validate a request, filling missing fields from configured defaults."""
        if request is not None and not isinstance(request, dict):
            return load_request(schema_cls, request)
        merged = {key: value for key, value in defaults.items() if value}
        merged.update(request or {})
        return load_request(schema_cls, merged)

    def _result_defaults(self) -> Dict[str, Any]:
        return {
            'shortcode': self.shortcode,
            'result_url': self.result_url,
            'timeout_url': self.queue_timeout_url,
        }

    def _transport_opts(self, stk: bool = False) -> Dict[str, Any]:
        if stk and self.environment == 'sandbox':
            retries, delay = _SANDBOX_STK_RETRY_POLICY
        else:
            retries, delay = _RETRY_POLICY[self.environment]
        return {'timeout': self.timeout, 'retries': retries, 'retry_delay': delay}

    def _build_security_credential(self) -> str:
        """
        Pre-computed credential if configured, else encrypt the initiator
        password. Never cached.
        """
        if self.security_credential:
            return self.security_credential

        if not self.initiator_password or not self.certificate_pem:
            raise InvalidCredentials(
                'MPesaProvider: provide security_credential (pre-encrypted) '
                'or initiator_password + certificate_pem'
            )
        return encrypt_security_credential(self.initiator_password, self.certificate_pem)

    def _call(self, command, data: Dict[str, Any], stk: bool = False) -> Dict[str, Any]:
        token = self._tokens.get_access_token()
        try:
            return command(self._http, self.base_url, token.value, data,
                           **self._transport_opts(stk))
        except HttpError as exc:
            self._on_http_error(exc)
            raise

    def _call_privileged(self, command, data: Dict[str, Any]) -> Dict[str, Any]:
        if not self.initiator_name:
            raise ValidationError('MPesaProvider: initiator_name is required for this command')

        security_credential = self._build_security_credential()
        token = self._tokens.get_access_token()
        try:
            return command(self._http, self.base_url, token.value, security_credential,
                           self.initiator_name, data, **self._transport_opts())
        except HttpError as exc:
            self._on_http_error(exc)
            raise

    def _on_http_error(self, exc: HttpError) -> None:
        if exc.status_code == 401:
            logger.warning('Daraja rejected the access token; clearing the token cache')
            self._tokens.clear_cache()
