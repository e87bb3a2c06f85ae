"""
Webhook Validation Schemas
Shape checks for the callback bodies Daraja POSTs to us. Unknown keys are
kept: Daraja adds fields between API versions.
"""

from marshmallow import INCLUDE, Schema, fields


class _CallbackSchema(Schema):
    class Meta:
        unknown = INCLUDE


class CallbackItemSchema(_CallbackSchema):
    Name = fields.Str(required=True)
    Value = fields.Raw(allow_none=True)


class CallbackMetadataSchema(_CallbackSchema):
    Item = fields.List(fields.Nested(CallbackItemSchema), load_default=list)


class StkCallbackSchema(_CallbackSchema):
    """Body.stkCallback of an STK Push result"""
    MerchantRequestID = fields.Str(required=True)
    CheckoutRequestID = fields.Str(required=True)
    ResultCode = fields.Int(required=True)
    ResultDesc = fields.Str(required=True)
    CallbackMetadata = fields.Nested(CallbackMetadataSchema, load_default=None)


class StkBodySchema(_CallbackSchema):
    stkCallback = fields.Nested(StkCallbackSchema, required=True)


class MPesaCallbackSchema(_CallbackSchema):
    """STK Push callback envelope"""
    Body = fields.Nested(StkBodySchema, required=True)


class ResultSchema(_CallbackSchema):
    """Result of B2C, B2B, Reversal and Transaction Status commands"""
    ResultType = fields.Int(load_default=None)
    ResultCode = fields.Int(required=True)
    ResultDesc = fields.Str(required=True)
    OriginatorConversationID = fields.Str(load_default=None)
    ConversationID = fields.Str(required=True)
    TransactionID = fields.Str(load_default=None, allow_none=True)
    ResultParameters = fields.Raw(load_default=None)
    ReferenceData = fields.Raw(load_default=None)


class ResultCallbackSchema(_CallbackSchema):
    Result = fields.Nested(ResultSchema, required=True)


class C2BCallbackSchema(_CallbackSchema):
    """C2B validation / confirmation request"""
    TransactionType = fields.Str(load_default=None)
    TransID = fields.Str(required=True)
    TransTime = fields.Str(load_default=None)
    TransAmount = fields.Raw(required=True)
    BusinessShortCode = fields.Raw(required=True)
    BillRefNumber = fields.Str(load_default=None, allow_none=True)
    InvoiceNumber = fields.Str(load_default=None, allow_none=True)
    OrgAccountBalance = fields.Raw(load_default=None)
    ThirdPartyTransID = fields.Str(load_default=None, allow_none=True)
    MSISDN = fields.Raw(load_default=None)
    FirstName = fields.Str(load_default=None, allow_none=True)
    MiddleName = fields.Str(load_default=None, allow_none=True)
    LastName = fields.Str(load_default=None, allow_none=True)
