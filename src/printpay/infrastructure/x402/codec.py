"""X-PAYMENT / X-PAYMENT-RESPONSE header codec"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Dict

from printpay.domain.errors import PaymentDecodeError
from printpay.domain.models.payment import PaymentEnvelope, SettlementResult

EXACT_AUTHORIZATION_FIELDS = ("from", "to", "value", "validAfter", "validBefore", "nonce")


def _b64decode(value: str) -> bytes:
    padded = value.strip() + "=" * (-len(value.strip()) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError):
        return base64.urlsafe_b64decode(padded)


def _validate_exact_payload(payload: Dict[str, Any]) -> None:
    if not isinstance(payload.get("signature"), str):
        raise PaymentDecodeError("Invalid exact payload: missing signature")
    authorization = payload.get("authorization")
    if not isinstance(authorization, dict):
        raise PaymentDecodeError("Invalid exact payload: missing authorization")
    missing = [name for name in EXACT_AUTHORIZATION_FIELDS if name not in authorization]
    if missing:
        raise PaymentDecodeError(f"Invalid exact payload: authorization missing {', '.join(missing)}")


def decode_payment(header: str, x402_version: int = 1) -> PaymentEnvelope:
    """Decode an X-PAYMENT header into a payment envelope.

    The envelope's version is normalized to the server's protocol version.

    Raises:
        PaymentDecodeError: If the header is not base64 JSON of a known shape
    """
    try:
        data = json.loads(_b64decode(header).decode("utf-8"))
    except (binascii.Error, ValueError, UnicodeDecodeError) as e:
        raise PaymentDecodeError(f"Invalid payment header: {e}") from e

    if not isinstance(data, dict):
        raise PaymentDecodeError("Invalid payment header: expected a JSON object")

    scheme = data.get("scheme")
    network = data.get("network")
    payload = data.get("payload")
    if not isinstance(scheme, str) or not scheme:
        raise PaymentDecodeError("Invalid payment header: missing scheme")
    if not isinstance(network, str) or not network:
        raise PaymentDecodeError("Invalid payment header: missing network")
    if not isinstance(payload, dict):
        raise PaymentDecodeError("Invalid payment header: missing payload")
    if scheme == "exact":
        _validate_exact_payload(payload)

    return PaymentEnvelope(x402_version=x402_version, scheme=scheme, network=network, payload=payload)


def encode_payment(envelope: PaymentEnvelope) -> str:
    """Encode an envelope the way a paying client would send it."""
    raw = json.dumps(envelope.to_dict(), separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def encode_settlement_response(settlement: SettlementResult) -> str:
    """Encode a settlement for the X-PAYMENT-RESPONSE header."""
    raw = json.dumps(settlement.to_dict(), separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")
