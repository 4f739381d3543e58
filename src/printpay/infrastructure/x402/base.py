"""Base payment facilitator interface"""

from abc import ABC, abstractmethod

from printpay.domain.models.payment import (
    PaymentEnvelope,
    PaymentRequirement,
    SettlementResult,
    VerificationResult,
)


class PaymentFacilitator(ABC):
    """Abstract base class for x402 facilitators"""

    @abstractmethod
    async def verify(
        self, envelope: PaymentEnvelope, requirement: PaymentRequirement
    ) -> VerificationResult:
        """Check that a payment is valid for a requirement without moving funds

        Args:
            envelope: Decoded payment presented by the payer
            requirement: Requirement the payment was matched against

        Returns:
            Verification result with an invalid reason when rejected
        """

    @abstractmethod
    async def settle(
        self, envelope: PaymentEnvelope, requirement: PaymentRequirement
    ) -> SettlementResult:
        """Move the funds of a previously verified payment

        Args:
            envelope: Decoded payment presented by the payer
            requirement: Requirement the payment was matched against

        Returns:
            Settlement result
        """

    async def aclose(self) -> None:
        """Release network resources"""
