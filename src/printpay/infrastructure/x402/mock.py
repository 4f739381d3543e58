"""Mock facilitator for local development and testing"""

import logging
import uuid
from typing import Optional

from printpay.domain.models.payment import (
    PaymentEnvelope,
    PaymentRequirement,
    SettlementResult,
    VerificationResult,
)
from printpay.infrastructure.x402.base import PaymentFacilitator

logger = logging.getLogger(__name__)


class MockFacilitator(PaymentFacilitator):
    """Facilitator that accepts every well-formed payment without touching a chain"""

    def __init__(
        self,
        valid: bool = True,
        invalid_reason: Optional[str] = None,
        settle_success: bool = True,
    ):
        """Initialize mock facilitator

        Args:
            valid: Whether verification succeeds
            invalid_reason: Reason reported when verification fails
            settle_success: Whether settlement succeeds
        """
        self.valid = valid
        self.invalid_reason = invalid_reason or "invalid_exact_evm_payload_signature"
        self.settle_success = settle_success
        self.verify_calls = 0
        self.settle_calls = 0

    async def verify(
        self, envelope: PaymentEnvelope, requirement: PaymentRequirement
    ) -> VerificationResult:
        self.verify_calls += 1
        if not self.valid:
            return VerificationResult(False, self.invalid_reason, envelope.payer)
        return VerificationResult(True, payer=envelope.payer)

    async def settle(
        self, envelope: PaymentEnvelope, requirement: PaymentRequirement
    ) -> SettlementResult:
        self.settle_calls += 1
        if not self.settle_success:
            return SettlementResult(False, network=requirement.network, error_reason="mock_settlement_failed")
        tx = "0x" + uuid.uuid4().hex * 2
        logger.info(f"Mock settlement of {requirement.max_amount_required} on {requirement.network}: {tx}")
        return SettlementResult(True, transaction=tx, network=requirement.network, payer=envelope.payer)
