"""
Schemas Package
Marshmallow schemas for request validation and callback shape checks
"""

from daraja_gateway.schemas.command_schema import (
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
from daraja_gateway.schemas.webhook_schema import (
    C2BCallbackSchema,
    MPesaCallbackSchema,
    ResultCallbackSchema,
)

__all__ = [
    'B2BRequestSchema',
    'B2CRequestSchema',
    'C2BRegisterUrlRequestSchema',
    'C2BSimulateRequestSchema',
    'DynamicQRRequestSchema',
    'ReversalRequestSchema',
    'StkPushRequestSchema',
    'StkQueryRequestSchema',
    'TransactionStatusRequestSchema',
    'C2BCallbackSchema',
    'MPesaCallbackSchema',
    'ResultCallbackSchema',
]
