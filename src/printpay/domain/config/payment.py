"""Payment (x402) configuration model."""

from typing import Literal, Optional

from eth_utils import is_hex_address
from pydantic import BaseModel, Field, field_validator


class PaymentConfig(BaseModel):
    """Configuration for accepting x402 payments.

    Attributes:
        pay_to: Merchant address receiving settled funds
        facilitator: Facilitator implementation ("http" or "mock")
        facilitator_url: Base URL of the x402 facilitator service
        facilitator_api_key: Optional bearer token for the facilitator
        network: Default network payments are requested on
        x402_version: Protocol version advertised in 402 responses
        max_timeout_seconds: Validity window offered to payers
        mime_type: MIME type of the paid resource
        timeout: HTTP timeout for facilitator calls, in seconds
    """

    pay_to: str = "0xDDeAeb4639A7fC213264b57c8dc81a36229687dB"
    facilitator: Literal["http", "mock"] = "http"
    facilitator_url: str = "https://x402.org/facilitator"
    facilitator_api_key: Optional[str] = None
    network: str = "base"
    x402_version: int = Field(1, ge=1)
    max_timeout_seconds: int = Field(300, gt=0)
    mime_type: str = "application/json"
    timeout: float = Field(30.0, gt=0.0)

    @field_validator("pay_to")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not (value.startswith("0x") and is_hex_address(value)):
            raise ValueError("pay_to must be a 0x-prefixed 20-byte hex address")
        return value

    @field_validator("facilitator_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")
