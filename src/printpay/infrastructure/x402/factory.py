"""Factory for creating payment facilitators"""

import logging
from typing import Optional

import httpx

from printpay.domain.config.payment import PaymentConfig
from printpay.infrastructure.retry import RetryPolicy, RetryPresets
from printpay.infrastructure.x402.base import PaymentFacilitator
from printpay.infrastructure.x402.facilitator import HttpFacilitator
from printpay.infrastructure.x402.mock import MockFacilitator

logger = logging.getLogger(__name__)


class FacilitatorFactory:
    """Factory for creating facilitator instances"""

    FACILITATORS = {
        "http": HttpFacilitator,
        "mock": MockFacilitator,
    }

    @classmethod
    def create(
        cls,
        config: PaymentConfig,
        client: Optional[httpx.AsyncClient] = None,
        verify_retry: RetryPolicy = RetryPresets.API_CALL,
    ) -> PaymentFacilitator:
        """Create facilitator instance

        Args:
            config: Payment configuration (``facilitator`` selects the kind)
            client: Optional shared HTTP client
            verify_retry: Retry policy for verification calls

        Returns:
            PaymentFacilitator instance

        Raises:
            ValueError: If facilitator kind is not supported
        """
        kind = config.facilitator.lower()
        if kind not in cls.FACILITATORS:
            available = ", ".join(cls.FACILITATORS.keys())
            raise ValueError(f"Unknown facilitator: {config.facilitator}. Available facilitators: {available}")

        logger.info(f"Creating {kind} facilitator")
        if kind == "mock":
            return MockFacilitator()
        return HttpFacilitator(config, client=client, verify_retry=verify_retry)
