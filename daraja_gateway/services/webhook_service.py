"""
Webhook Service
Verifies, parses and classifies the callbacks Daraja POSTs to us.

Each callback runs through received -> IP-checked -> parsed -> dispatched.
Nothing is stored between calls; callers own persistence.

Unrecognised or malformed bodies are routine, so parsers return None (and
parse_webhook an UnrecognizedEvent) instead of raising.
"""

import ipaddress
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional, Union

from marshmallow import Schema, ValidationError

from daraja_gateway.schemas.webhook_schema import (
    C2BCallbackSchema,
    MPesaCallbackSchema,
    ResultCallbackSchema,
)

logger = logging.getLogger(__name__)

NAIROBI_TZ = timezone(timedelta(hours=3), 'EAT')

# Safaricom callback origin addresses
SAFARICOM_IPS = (
    '196.201.214.200',
    '196.201.214.206',
    '196.201.213.114',
    '196.201.214.207',
    '196.201.214.208',
    '196.201.213.44',
    '196.201.212.127',
    '196.201.212.138',
    '196.201.212.129',
    '196.201.212.136',
    '196.201.212.74',
    '196.201.212.69',
)

# Daraja stops retrying a callback once it gets this back with HTTP 200
ACCEPTED_RESPONSE = {'ResultCode': 0, 'ResultDesc': 'Accepted'}

# C2B validation URL answers
C2B_ACCEPT = {'ResultCode': '0', 'ResultDesc': 'Accepted'}
C2B_REJECT = {'ResultCode': 'C2B00016', 'ResultDesc': 'Rejected'}


# Events

@dataclass(frozen=True)
class StkCallbackEvent:
    """STK Push outcome, correlated by CheckoutRequestID"""
    merchant_request_id: str
    checkout_request_id: str
    result_code: int
    result_desc: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)
    kind: str = field(default='stk_callback', init=False)

    @property
    def correlation_id(self) -> str:
        return self.checkout_request_id

    @property
    def succeeded(self) -> bool:
        return self.result_code == 0


@dataclass(frozen=True)
class ResultEvent:
    """B2C, B2B, Reversal or Transaction Status result, correlated by ConversationID"""
    conversation_id: str
    originator_conversation_id: Optional[str]
    result_code: int
    result_desc: str
    result_type: Optional[int] = None
    transaction_id: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)
    kind: str = field(default='result', init=False)

    @property
    def correlation_id(self) -> str:
        return self.conversation_id

    @property
    def succeeded(self) -> bool:
        return self.result_code == 0


@dataclass(frozen=True)
class C2BEvent:
    """C2B validation or confirmation, correlated by TransID"""
    trans_id: str
    trans_amount: Any
    business_shortcode: Any
    transaction_type: Optional[str] = None
    trans_time: Optional[str] = None
    bill_ref_number: Optional[str] = None
    msisdn: Any = None
    raw: Dict[str, Any] = field(default_factory=dict)
    kind: str = field(default='c2b', init=False)

    @property
    def correlation_id(self) -> str:
        return self.trans_id

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(frozen=True)
class UnrecognizedEvent:
    raw: Any = None
    kind: str = field(default='unrecognized', init=False)

    @property
    def correlation_id(self) -> None:
        return None

    @property
    def succeeded(self) -> bool:
        return False


WebhookEvent = Union[StkCallbackEvent, ResultEvent, C2BEvent, UnrecognizedEvent]


@dataclass(frozen=True)
class WebhookResult:
    success: bool
    event_type: Optional[str]
    event: Optional[WebhookEvent] = None
    error: Optional[str] = None
    rejected_ip: bool = False


# IP verification

def verify_webhook_ip(ip: Optional[str], allowed_ips: Optional[Iterable[str]] = None) -> bool:
    """
    Check a request IP against the allowlist

    Args:
        ip: Originating address of the callback request
        allowed_ips: Addresses or CIDR networks; defaults to SAFARICOM_IPS

    Returns:
        False for malformed addresses or anything outside the list
    """
    if not ip:
        return False

    try:
        address = ipaddress.ip_address(str(ip).strip())
    except ValueError:
        return False

    for entry in allowed_ips if allowed_ips is not None else SAFARICOM_IPS:
        try:
            network = ipaddress.ip_network(str(entry).strip(), strict=False)
        except ValueError:
            logger.warning('Ignoring malformed allowlist entry: %r', entry)
            continue
        if address in network:
            return True
    return False


# Parsing

def _load(schema: Schema, body: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(body, dict):
        return None
    try:
        return schema.load(body)
    except ValidationError:
        return None


def _name_value_pairs(items: Any, key_field: str) -> Dict[str, Any]:
    """Flatten [{Name|Key: ..., Value: ...}] lists, skipping junk entries."""
    if isinstance(items, dict):
        items = [items]
    if not isinstance(items, list):
        return {}

    pairs = {}
    for item in items:
        if isinstance(item, dict) and isinstance(item.get(key_field), str):
            pairs[item[key_field]] = item.get('Value')
    return pairs


def parse_stk_push_webhook(body: Any) -> Optional[StkCallbackEvent]:
    loaded = _load(MPesaCallbackSchema(), body)
    if loaded is None:
        return None

    callback = loaded['Body']['stkCallback']
    metadata = callback.get('CallbackMetadata') or {}
    return StkCallbackEvent(
        merchant_request_id=callback['MerchantRequestID'],
        checkout_request_id=callback['CheckoutRequestID'],
        result_code=callback['ResultCode'],
        result_desc=callback['ResultDesc'],
        metadata=_name_value_pairs(metadata.get('Item'), 'Name'),
        raw=body,
    )


def parse_result_webhook(body: Any) -> Optional[ResultEvent]:
    loaded = _load(ResultCallbackSchema(), body)
    if loaded is None:
        return None

    result = loaded['Result']
    parameters = result.get('ResultParameters') or {}
    if isinstance(parameters, dict):
        parameters = parameters.get('ResultParameter')
    return ResultEvent(
        conversation_id=result['ConversationID'],
        originator_conversation_id=result.get('OriginatorConversationID'),
        result_code=result['ResultCode'],
        result_desc=result['ResultDesc'],
        result_type=result.get('ResultType'),
        transaction_id=result.get('TransactionID'),
        parameters=_name_value_pairs(parameters, 'Key'),
        raw=body,
    )


def parse_c2b_webhook(body: Any) -> Optional[C2BEvent]:
    loaded = _load(C2BCallbackSchema(), body)
    if loaded is None:
        return None

    return C2BEvent(
        trans_id=loaded['TransID'],
        trans_amount=loaded['TransAmount'],
        business_shortcode=loaded['BusinessShortCode'],
        transaction_type=loaded.get('TransactionType'),
        trans_time=loaded.get('TransTime'),
        bill_ref_number=loaded.get('BillRefNumber'),
        msisdn=loaded.get('MSISDN'),
        raw=body,
    )


def parse_webhook(body: Any) -> WebhookEvent:
    """Narrow a callback body to the first matching event type."""
    for parser in (parse_stk_push_webhook, parse_result_webhook, parse_c2b_webhook):
        event = parser(body)
        if event is not None:
            return event

    keys = list(body.keys()) if isinstance(body, dict) else type(body).__name__
    logger.warning('Unrecognised webhook payload shape: %s', keys)
    return UnrecognizedEvent(raw=body)


# Field extraction from STK callbacks

def _stk_metadata(webhook: Union[StkCallbackEvent, Dict[str, Any], None]) -> Dict[str, Any]:
    if isinstance(webhook, StkCallbackEvent):
        return webhook.metadata
    if not isinstance(webhook, dict):
        return {}

    body = webhook.get('Body')
    callback = body.get('stkCallback') if isinstance(body, dict) else None
    if not isinstance(callback, dict):
        return {}
    metadata = callback.get('CallbackMetadata')
    if not isinstance(metadata, dict):
        return {}
    return _name_value_pairs(metadata.get('Item'), 'Name')


def extract_receipt_number(webhook) -> Optional[str]:
    """M-Pesa receipt number of a successful STK Push, e.g. "NLJ7RT61SV"."""
    value = _stk_metadata(webhook).get('MpesaReceiptNumber')
    return str(value) if value is not None else None


def extract_amount(webhook) -> Optional[float]:
    value = _stk_metadata(webhook).get('Amount')
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def extract_phone_number(webhook) -> Optional[str]:
    value = _stk_metadata(webhook).get('PhoneNumber')
    return str(value) if value is not None else None


def extract_transaction_date(webhook) -> Optional[datetime]:
    """TransactionDate (YYYYMMDDHHmmss, Nairobi time) as an aware datetime."""
    value = _stk_metadata(webhook).get('TransactionDate')
    if value is None:
        return None
    try:
        parsed = datetime.strptime(str(value), '%Y%m%d%H%M%S')
    except ValueError:
        return None
    return parsed.replace(tzinfo=NAIROBI_TZ)


# Pipeline

def handle_webhook(
    body: Any,
    request_ip: Optional[str] = None,
    allowed_ips: Optional[Iterable[str]] = None,
    skip_ip_check: bool = False,
) -> WebhookResult:
    """
    Verify and parse an inbound Daraja callback

    Args:
        body: Parsed JSON body
        request_ip: Originating IP (first X-Forwarded-For entry or remote addr)
        allowed_ips: Override for SAFARICOM_IPS
        skip_ip_check: Local development and tests only

    Returns:
        WebhookResult; an IP outside the allowlist is rejected before the
        body is looked at
    """
    if not skip_ip_check and not verify_webhook_ip(request_ip, allowed_ips):
        logger.warning('Rejected webhook from non-whitelisted IP %s', request_ip)
        return WebhookResult(
            success=False,
            event_type=None,
            error=f'IP address {request_ip} is not in the Safaricom whitelist',
            rejected_ip=True,
        )

    event = parse_webhook(body)
    if isinstance(event, UnrecognizedEvent):
        return WebhookResult(
            success=False,
            event_type=event.kind,
            event=event,
            error='Unknown or malformed webhook payload',
        )

    logger.info('Received %s webhook %s (succeeded=%s)',
                event.kind, event.correlation_id, event.succeeded)
    return WebhookResult(success=True, event_type=event.kind, event=event)
