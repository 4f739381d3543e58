"""x402 payment protocol support"""

from printpay.infrastructure.x402.base import PaymentFacilitator
from printpay.infrastructure.x402.codec import decode_payment, encode_payment, encode_settlement_response
from printpay.infrastructure.x402.facilitator import HttpFacilitator
from printpay.infrastructure.x402.mock import MockFacilitator

__all__ = [
    "PaymentFacilitator",
    "HttpFacilitator",
    "MockFacilitator",
    "decode_payment",
    "encode_payment",
    "encode_settlement_response",
]
