"""HTTP client for a remote x402 facilitator (/verify and /settle)"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from printpay.domain.config.payment import PaymentConfig
from printpay.domain.models.payment import (
    PaymentEnvelope,
    PaymentRequirement,
    SettlementResult,
    VerificationResult,
)
from printpay.infrastructure.http_client import post_json_with_retries, request_json
from printpay.infrastructure.retry import RetryPolicy, RetryPresets
from printpay.infrastructure.x402.base import PaymentFacilitator

logger = logging.getLogger(__name__)

SERVICE = "facilitator"


class HttpFacilitator(PaymentFacilitator):
    """Facilitator reached over HTTP.

    Verification has no side effects and is retried; settlement moves funds
    and is attempted exactly once per call.
    """

    def __init__(
        self,
        config: PaymentConfig,
        client: Optional[httpx.AsyncClient] = None,
        verify_retry: RetryPolicy = RetryPresets.API_CALL,
    ):
        self.base_url = config.facilitator_url
        self.x402_version = config.x402_version
        self.timeout = config.timeout
        self.verify_retry = verify_retry
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=config.timeout)
        self.headers = {"Content-Type": "application/json"}
        if config.facilitator_api_key:
            self.headers["Authorization"] = f"Bearer {config.facilitator_api_key}"

    def _body(self, envelope: PaymentEnvelope, requirement: PaymentRequirement) -> Dict[str, Any]:
        return {
            "x402Version": self.x402_version,
            "paymentPayload": envelope.to_dict(),
            "paymentRequirements": requirement.to_dict(),
        }

    async def verify(
        self, envelope: PaymentEnvelope, requirement: PaymentRequirement
    ) -> VerificationResult:
        data = await post_json_with_retries(
            self.client,
            f"{self.base_url}/verify",
            service=SERVICE,
            payload=self._body(envelope, requirement),
            headers=self.headers,
            timeout=self.timeout,
            retry=self.verify_retry,
            label="Facilitator verify",
        )
        data = data or {}
        return VerificationResult(
            is_valid=bool(data.get("isValid")),
            invalid_reason=data.get("invalidReason"),
            payer=data.get("payer"),
        )

    async def settle(
        self, envelope: PaymentEnvelope, requirement: PaymentRequirement
    ) -> SettlementResult:
        data = await request_json(
            self.client,
            "POST",
            f"{self.base_url}/settle",
            service=SERVICE,
            json=self._body(envelope, requirement),
            headers=self.headers,
            timeout=self.timeout,
        )
        data = data or {}
        return SettlementResult(
            success=bool(data.get("success")),
            transaction=data.get("transaction") or None,
            network=data.get("network"),
            payer=data.get("payer"),
            error_reason=data.get("errorReason"),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
