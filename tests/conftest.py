"""Shared fixtures for payment and checkout tests"""

from __future__ import annotations

import base64
import json
from typing import Any, Callable, Dict

import pytest

from printpay.domain.config.payment import PaymentConfig
from printpay.domain.models.order import ShippingAddress

PAYER = "0x1111111111111111111111111111111111111111"
CREATOR = "0x2222222222222222222222222222222222222222"


def build_envelope(network: str = "base", scheme: str = "exact", **overrides: Any) -> Dict[str, Any]:
    envelope: Dict[str, Any] = {
        "x402Version": 1,
        "scheme": scheme,
        "network": network,
        "payload": {
            "signature": "0x" + "ab" * 65,
            "authorization": {
                "from": PAYER,
                "to": "0xDDeAeb4639A7fC213264b57c8dc81a36229687dB",
                "value": "20000000",
                "validAfter": "0",
                "validBefore": "9999999999",
                "nonce": "0x" + "00" * 32,
            },
        },
    }
    envelope.update(overrides)
    return envelope


@pytest.fixture
def payment_header() -> Callable[..., str]:
    """Factory for base64 X-PAYMENT headers signed by PAYER"""

    def _make(network: str = "base", scheme: str = "exact", **overrides: Any) -> str:
        raw = json.dumps(build_envelope(network, scheme, **overrides)).encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    return _make


@pytest.fixture
def payment_config() -> PaymentConfig:
    return PaymentConfig(facilitator="mock")


@pytest.fixture
def address_payload() -> Dict[str, str]:
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "country": "US",
        "region": "NY",
        "address1": "1 Main St",
        "city": "New York",
        "zip": "10001",
    }


@pytest.fixture
def shipping_address(address_payload) -> ShippingAddress:
    return ShippingAddress(**address_payload)
