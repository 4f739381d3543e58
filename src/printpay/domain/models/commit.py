"""Payment commit models - phases, intermediate states and terminal outcomes"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from printpay.domain.errors import SettlementInconsistency
from printpay.domain.models.payment import (
    PaymentEnvelope,
    PaymentRequirement,
    SettlementResult,
    VerificationResult,
)

T = TypeVar("T")


class CommitPhase(str, Enum):
    """Phases of the verify -> act -> settle protocol"""

    LOOKUP = "lookup"
    PRICING = "pricing"
    REQUIREMENT_BUILT = "requirement_built"
    AWAITING_PAYMENT = "awaiting_payment"
    DECODING = "decoding"
    MATCHING = "matching"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    TERMINAL = "terminal"


class CommitStatus(str, Enum):
    """How a verified payment ended"""

    SETTLED = "settled"
    SETTLEMENT_FAILED = "settlement_failed"  # purchase honored, funds not collected
    SIDE_EFFECT_FAILED = "side_effect_failed"  # nothing charged


@dataclass(frozen=True)
class PaymentRejection:
    """Terminal of the authorization phases: the caller must (re)send payment."""

    phase: CommitPhase
    reason: str
    accepts: List[PaymentRequirement]
    x402_version: int = 1
    payer: Optional[str] = None
    pricing: Optional[Dict[str, Any]] = None

    status_code = 402

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "x402Version": self.x402_version,
            "error": self.reason,
            "accepts": [r.to_dict() for r in self.accepts],
        }
        if self.payer is not None:
            body["payer"] = self.payer
        if self.pricing is not None:
            body["pricing"] = self.pricing
        return body


@dataclass
class VerifiedPayment:
    """A payment that passed verification but has not been settled.

    Only the payment gate creates these, and each can be committed once.
    """

    envelope: PaymentEnvelope
    requirement: PaymentRequirement
    verification: VerificationResult
    accepts: List[PaymentRequirement]
    committed: bool = field(default=False, init=False)

    @property
    def payer(self) -> Optional[str]:
        return self.verification.payer or self.envelope.payer


@dataclass(frozen=True)
class EffectSucceeded(Generic[T]):
    payment: VerifiedPayment
    value: T


@dataclass(frozen=True)
class EffectFailed:
    payment: VerifiedPayment
    error: BaseException


@dataclass(frozen=True)
class SplitOutcome:
    """Result of the best-effort post-settlement value split"""

    attempted: bool
    succeeded: bool = False
    reference: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class CommitOutcome(Generic[T]):
    """Terminal of a committed payment"""

    status: CommitStatus
    value: Optional[T] = None
    settlement: Optional[SettlementResult] = None
    error: Optional[BaseException] = None
    split: Optional[SplitOutcome] = None
    warnings: List[SettlementInconsistency] = field(default_factory=list)

    @property
    def settled(self) -> bool:
        return self.status == CommitStatus.SETTLED

    @property
    def purchase_honored(self) -> bool:
        """True when the side effect happened, whether or not funds settled."""
        return self.status in (CommitStatus.SETTLED, CommitStatus.SETTLEMENT_FAILED)

    @property
    def settlement_attempted(self) -> bool:
        return self.settlement is not None
