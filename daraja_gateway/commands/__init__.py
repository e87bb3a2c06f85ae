"""
Commands Package
Request builders for each Daraja transaction type
"""

from daraja_gateway.commands.b2b import build_b2b_payload, process_b2b
from daraja_gateway.commands.b2c import build_b2c_payload, process_b2c
from daraja_gateway.commands.base import load_request
from daraja_gateway.commands.c2b import (
    build_c2b_register_payload,
    build_c2b_simulate_payload,
    register_c2b_urls,
    simulate_c2b,
)
from daraja_gateway.commands.qr_code import build_dynamic_qr_payload, generate_dynamic_qr
from daraja_gateway.commands.reversal import build_reversal_payload, process_reversal
from daraja_gateway.commands.stk_push import (
    build_stk_push_payload,
    build_stk_query_payload,
    get_stk_push_password,
    get_timestamp,
    process_stk_push,
    process_stk_query,
)
from daraja_gateway.commands.transaction_status import (
    build_transaction_status_payload,
    query_transaction_status,
)

__all__ = [
    'load_request',
    'build_stk_push_payload',
    'build_stk_query_payload',
    'get_stk_push_password',
    'get_timestamp',
    'process_stk_push',
    'process_stk_query',
    'build_b2c_payload',
    'process_b2c',
    'build_b2b_payload',
    'process_b2b',
    'build_reversal_payload',
    'process_reversal',
    'build_transaction_status_payload',
    'query_transaction_status',
    'build_c2b_simulate_payload',
    'build_c2b_register_payload',
    'simulate_c2b',
    'register_c2b_urls',
    'build_dynamic_qr_payload',
    'generate_dynamic_qr',
]
