"""
Command Request Schemas
Caller-supplied fields for each Daraja command, validated before any token
or credential work is done
"""

from marshmallow import Schema, fields, validate

from daraja_gateway.schemas.fields import Amount, CallbackUrl, PhoneNumber, ShortCode

STK_TRANSACTION_TYPES = ('CustomerPayBillOnline', 'CustomerBuyGoodsOnline')
B2C_COMMAND_IDS = ('BusinessPayment', 'SalaryPayment', 'PromotionPayment')
B2B_COMMAND_IDS = (
    'BusinessPayBill',
    'BusinessBuyGoods',
    'DisburseFundsToBusiness',
    'BusinessToBusinessTransfer',
)
C2B_COMMAND_IDS = ('CustomerPayBillOnline', 'CustomerBuyGoodsOnline')
C2B_RESPONSE_TYPES = ('Completed', 'Cancelled')
QR_TRX_CODES = ('BG', 'WA', 'PB', 'SM', 'SB')

# 1 MSISDN, 2 till number, 4 organisation shortcode
IDENTIFIER_TYPES = (1, 2, 4)

_required_text = {'required': True, 'validate': validate.Length(min=1)}


class StkPushRequestSchema(Schema):
    """Lipa na M-Pesa Online (STK Push) request"""
    shortcode = ShortCode(required=True)
    passkey = fields.Str(**_required_text)
    amount = Amount(required=True)
    phone_number = PhoneNumber(required=True)
    callback_url = CallbackUrl(required=True)
    account_reference = fields.Str(**_required_text)
    transaction_desc = fields.Str(load_default='Payment')
    transaction_type = fields.Str(
        load_default='CustomerPayBillOnline',
        validate=validate.OneOf(STK_TRANSACTION_TYPES),
    )
    # Till number for CustomerBuyGoodsOnline; defaults to the shortcode
    party_b = ShortCode(load_default=None)


class StkQueryRequestSchema(Schema):
    shortcode = ShortCode(required=True)
    passkey = fields.Str(**_required_text)
    checkout_request_id = fields.Str(**_required_text)


class B2CRequestSchema(Schema):
    """Business to customer payment request"""
    shortcode = ShortCode(required=True)
    amount = Amount(required=True)
    phone_number = PhoneNumber(required=True)
    command_id = fields.Str(
        load_default='BusinessPayment',
        validate=validate.OneOf(B2C_COMMAND_IDS),
    )
    remarks = fields.Str(load_default='Payment')
    occasion = fields.Str(load_default='')
    result_url = CallbackUrl(required=True)
    timeout_url = CallbackUrl(required=True)


class B2BRequestSchema(Schema):
    """Business to business payment request"""
    shortcode = ShortCode(required=True)
    receiver_shortcode = ShortCode(required=True)
    amount = Amount(required=True)
    command_id = fields.Str(
        load_default='BusinessPayBill',
        validate=validate.OneOf(B2B_COMMAND_IDS),
    )
    sender_identifier_type = fields.Int(
        load_default=4, validate=validate.OneOf(IDENTIFIER_TYPES)
    )
    receiver_identifier_type = fields.Int(
        load_default=4, validate=validate.OneOf(IDENTIFIER_TYPES)
    )
    account_reference = fields.Str(load_default='')
    remarks = fields.Str(load_default='B2B Payment')
    requester = PhoneNumber(load_default=None)
    result_url = CallbackUrl(required=True)
    timeout_url = CallbackUrl(required=True)


class ReversalRequestSchema(Schema):
    transaction_id = fields.Str(**_required_text)
    shortcode = ShortCode(required=True)
    amount = Amount(required=True)
    receiver_identifier_type = fields.Int(
        load_default=4, validate=validate.OneOf(IDENTIFIER_TYPES)
    )
    remarks = fields.Str(load_default='Reversal')
    occasion = fields.Str(load_default='Reversal')
    result_url = CallbackUrl(required=True)
    timeout_url = CallbackUrl(required=True)


class TransactionStatusRequestSchema(Schema):
    transaction_id = fields.Str(**_required_text)
    shortcode = ShortCode(required=True)
    identifier_type = fields.Int(
        load_default=4, validate=validate.OneOf(IDENTIFIER_TYPES)
    )
    remarks = fields.Str(load_default='Status')
    occasion = fields.Str(load_default='Query')
    result_url = CallbackUrl(required=True)
    timeout_url = CallbackUrl(required=True)


class C2BSimulateRequestSchema(Schema):
    """Sandbox-only simulated customer payment"""
    shortcode = ShortCode(required=True)
    amount = Amount(required=True)
    phone_number = PhoneNumber(required=True)
    command_id = fields.Str(
        load_default='CustomerPayBillOnline',
        validate=validate.OneOf(C2B_COMMAND_IDS),
    )
    bill_ref_number = fields.Str(load_default='')


class C2BRegisterUrlRequestSchema(Schema):
    shortcode = ShortCode(required=True)
    response_type = fields.Str(
        load_default='Completed',
        validate=validate.OneOf(C2B_RESPONSE_TYPES),
    )
    confirmation_url = CallbackUrl(required=True)
    validation_url = CallbackUrl(required=True)


class DynamicQRRequestSchema(Schema):
    """LIPA NA M-PESA dynamic QR code request"""
    merchant_name = fields.Str(**_required_text)
    ref_no = fields.Str(**_required_text)
    amount = Amount(required=True)
    trx_code = fields.Str(required=True, validate=validate.OneOf(QR_TRX_CODES))
    # Till, paybill, MSISDN or business number depending on trx_code
    cpi = ShortCode(required=True)
    size = fields.Str(load_default='300')
