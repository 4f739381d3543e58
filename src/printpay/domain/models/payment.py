"""x402 payment models: what we ask for, what the payer presents, what the facilitator says"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class PaymentOffer:
    """A priced resource, before it is resolved into payment requirements.

    ``pricing`` is extra metadata echoed in 402 bodies (dynamic prices).
    """

    price: str
    network: str
    resource: str
    description: str
    mime_type: str = "application/json"
    pricing: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class PaymentRequirement:
    """One accepted way to pay for a resource."""

    scheme: str
    network: str
    max_amount_required: str  # atomic units
    resource: str
    description: str
    mime_type: str
    pay_to: str
    max_timeout_seconds: int
    asset: str
    extra: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire (camelCase) representation."""
        data: Dict[str, Any] = {
            "scheme": self.scheme,
            "network": self.network,
            "maxAmountRequired": self.max_amount_required,
            "resource": self.resource,
            "description": self.description,
            "mimeType": self.mime_type,
            "payTo": self.pay_to,
            "maxTimeoutSeconds": self.max_timeout_seconds,
            "asset": self.asset,
        }
        if self.extra is not None:
            data["extra"] = dict(self.extra)
        return data


@dataclass(frozen=True)
class PaymentEnvelope:
    """Decoded payment instrument presented in the X-PAYMENT header.

    The payload is opaque here; only scheme and network are used for matching.
    """

    x402_version: int
    scheme: str
    network: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def payer(self) -> Optional[str]:
        authorization = self.payload.get("authorization")
        if isinstance(authorization, dict):
            return authorization.get("from")
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x402Version": self.x402_version,
            "scheme": self.scheme,
            "network": self.network,
            "payload": self.payload,
        }


@dataclass(frozen=True)
class VerificationResult:
    is_valid: bool
    invalid_reason: Optional[str] = None
    payer: Optional[str] = None


@dataclass(frozen=True)
class SettlementResult:
    success: bool
    transaction: Optional[str] = None
    network: Optional[str] = None
    payer: Optional[str] = None
    error_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "transaction": self.transaction,
            "network": self.network,
            "payer": self.payer,
        }


def find_matching_requirement(
    requirements: List[PaymentRequirement], envelope: PaymentEnvelope
) -> Optional[PaymentRequirement]:
    """Select the requirement whose scheme and network match the envelope."""
    for requirement in requirements:
        if requirement.scheme == envelope.scheme and requirement.network == envelope.network:
            return requirement
    return None
