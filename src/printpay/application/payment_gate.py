"""Payment gate - verify a payment, perform the purchase, settle only on success.

The gate is a small state machine. ``authorize`` drives a request from
pricing to either a ``PaymentRejection`` (402) or a ``VerifiedPayment``;
``commit`` runs the caller's side effect and settles the verified payment
only when the side effect produced an ``EffectSucceeded``. Settlement is
attempted at most once per verified payment and never after a failed side
effect. There is no rollback: a settlement failure after a successful side
effect is recorded as a ``SettlementInconsistency`` for manual reconciliation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar, Union

from eth_utils import to_checksum_address

from printpay.domain.config.payment import PaymentConfig
from printpay.domain.errors import PaymentDecodeError, SettlementInconsistency, SideEffectError
from printpay.domain.models.commit import (
    CommitOutcome,
    CommitPhase,
    CommitStatus,
    EffectFailed,
    EffectSucceeded,
    PaymentRejection,
    SplitOutcome,
    VerifiedPayment,
)
from printpay.domain.models.payment import (
    PaymentEnvelope,
    PaymentOffer,
    PaymentRequirement,
    SettlementResult,
    find_matching_requirement,
)
from printpay.domain.pricing import AtomicAmount, process_price_to_atomic_amount
from printpay.infrastructure.x402.base import PaymentFacilitator
from printpay.infrastructure.x402.codec import decode_payment

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXACT_SCHEME = "exact"
PAYMENT_HEADER = "X-PAYMENT"
PAYMENT_RESPONSE_HEADER = "X-PAYMENT-RESPONSE"

Authorization = Union[VerifiedPayment, PaymentRejection]


@dataclass
class _AuthorizationState:
    """Mutable per-request state threaded through the authorization phases"""

    phase: CommitPhase
    header: Optional[str]
    offer: Optional[PaymentOffer] = None
    lookup: Optional[Callable[[], Awaitable[PaymentOffer]]] = None
    atomic: Optional[AtomicAmount] = None
    requirements: List[PaymentRequirement] = field(default_factory=list)
    envelope: Optional[PaymentEnvelope] = None
    requirement: Optional[PaymentRequirement] = None
    result: Optional[Authorization] = None


class PaymentGate:
    """Coordinates verify -> side effect -> settle for x402 payments"""

    def __init__(self, facilitator: PaymentFacilitator, config: PaymentConfig):
        """Initialize payment gate

        Args:
            facilitator: Verifier/settler for presented payments
            config: Payment configuration (pay-to address, protocol version)
        """
        self.facilitator = facilitator
        self.config = config
        self._steps: Dict[CommitPhase, Callable[[_AuthorizationState], Awaitable[CommitPhase]]] = {
            CommitPhase.LOOKUP: self._lookup,
            CommitPhase.PRICING: self._price,
            CommitPhase.REQUIREMENT_BUILT: self._build_requirements,
            CommitPhase.AWAITING_PAYMENT: self._await_payment,
            CommitPhase.DECODING: self._decode,
            CommitPhase.MATCHING: self._match,
            CommitPhase.VERIFYING: self._verify,
        }

    # ------------------------------------------------------------------
    # Authorization: LOOKUP? -> PRICING -> ... -> VERIFIED | TERMINAL
    # ------------------------------------------------------------------

    async def authorize(self, offer: PaymentOffer, payment_header: Optional[str]) -> Authorization:
        """Verify the payment presented for a fixed-price offer

        Raises:
            ConfigurationError: If the offer's price or network is invalid
        """
        state = _AuthorizationState(phase=CommitPhase.PRICING, header=payment_header, offer=offer)
        return await self._drive(state)

    async def authorize_deferred(
        self,
        lookup: Callable[[], Awaitable[PaymentOffer]],
        payment_header: Optional[str],
    ) -> Authorization:
        """Verify a payment for an offer whose price is only known after a lookup

        Exceptions raised by ``lookup`` propagate unchanged.
        """
        state = _AuthorizationState(phase=CommitPhase.LOOKUP, header=payment_header, lookup=lookup)
        return await self._drive(state)

    def requirements_for(self, offer: PaymentOffer) -> List[PaymentRequirement]:
        """The requirements a 402 for this offer would advertise"""
        atomic = process_price_to_atomic_amount(offer.price, offer.network)
        return [self._requirement(offer, atomic)]

    async def _drive(self, state: _AuthorizationState) -> Authorization:
        while state.phase not in (CommitPhase.VERIFIED, CommitPhase.TERMINAL):
            current = state.phase
            state.phase = await self._steps[current](state)
            logger.debug(f"Payment gate: {current.value} -> {state.phase.value}")
        assert state.result is not None
        return state.result

    def _reject(self, state: _AuthorizationState, reason: str, payer: Optional[str] = None) -> CommitPhase:
        state.result = PaymentRejection(
            phase=state.phase,
            reason=reason,
            accepts=list(state.requirements),
            x402_version=self.config.x402_version,
            payer=payer,
            pricing=state.offer.pricing if state.offer else None,
        )
        logger.info(f"Payment required at {state.phase.value}: {reason}")
        return CommitPhase.TERMINAL

    async def _lookup(self, state: _AuthorizationState) -> CommitPhase:
        assert state.lookup is not None
        state.offer = await state.lookup()
        return CommitPhase.PRICING

    async def _price(self, state: _AuthorizationState) -> CommitPhase:
        assert state.offer is not None
        state.atomic = process_price_to_atomic_amount(state.offer.price, state.offer.network)
        return CommitPhase.REQUIREMENT_BUILT

    async def _build_requirements(self, state: _AuthorizationState) -> CommitPhase:
        assert state.offer is not None and state.atomic is not None
        state.requirements = [self._requirement(state.offer, state.atomic)]
        return CommitPhase.AWAITING_PAYMENT

    async def _await_payment(self, state: _AuthorizationState) -> CommitPhase:
        if not state.header:
            return self._reject(state, f"{PAYMENT_HEADER} header is required")
        return CommitPhase.DECODING

    async def _decode(self, state: _AuthorizationState) -> CommitPhase:
        try:
            state.envelope = decode_payment(state.header or "", self.config.x402_version)
        except PaymentDecodeError as e:
            return self._reject(state, str(e) or "Invalid payment")
        return CommitPhase.MATCHING

    async def _match(self, state: _AuthorizationState) -> CommitPhase:
        assert state.envelope is not None
        state.requirement = find_matching_requirement(state.requirements, state.envelope)
        if state.requirement is None:
            return self._reject(state, "Unable to find matching payment requirements")
        return CommitPhase.VERIFYING

    async def _verify(self, state: _AuthorizationState) -> CommitPhase:
        assert state.envelope is not None and state.requirement is not None
        verification = await self.facilitator.verify(state.envelope, state.requirement)
        if not verification.is_valid:
            return self._reject(
                state, verification.invalid_reason or "Payment verification failed", verification.payer
            )
        state.result = VerifiedPayment(
            envelope=state.envelope,
            requirement=state.requirement,
            verification=verification,
            accepts=list(state.requirements),
        )
        logger.info(f"Payment verified for {state.requirement.resource} (payer {state.result.payer})")
        return CommitPhase.VERIFIED

    def _requirement(self, offer: PaymentOffer, atomic: AtomicAmount) -> PaymentRequirement:
        return PaymentRequirement(
            scheme=EXACT_SCHEME,
            network=offer.network,
            max_amount_required=atomic.max_amount_required,
            resource=offer.resource,
            description=offer.description,
            mime_type=offer.mime_type,
            pay_to=to_checksum_address(self.config.pay_to),
            max_timeout_seconds=self.config.max_timeout_seconds,
            asset=to_checksum_address(atomic.asset.address),
            extra=dict(atomic.asset.eip712) if atomic.asset.eip712 else None,
        )

    # ------------------------------------------------------------------
    # Commit: side effect -> settle (success only) -> outcome
    # ------------------------------------------------------------------

    async def commit(
        self,
        payment: VerifiedPayment,
        side_effect: Callable[[], Awaitable[T]],
        after_settlement: Optional[Callable[[T], Awaitable[str]]] = None,
    ) -> CommitOutcome[T]:
        """Run the purchase side effect and settle only if it succeeded

        Args:
            payment: Verified, not yet committed payment
            side_effect: The irreversible purchase action
            after_settlement: Best-effort value split run once after a successful
                settlement; returns a reference (e.g. a transaction hash)

        Returns:
            Commit outcome

        Raises:
            RuntimeError: If the payment was already committed
        """
        if payment.committed:
            raise RuntimeError("Payment has already been committed")
        payment.committed = True

        effect = await self._perform(payment, side_effect)
        if isinstance(effect, EffectFailed):
            logger.error(
                f"Side effect failed for {payment.requirement.resource}; payment not settled: {effect.error}"
            )
            return CommitOutcome(status=CommitStatus.SIDE_EFFECT_FAILED, error=effect.error)

        settlement = await self._settle(effect)
        if not settlement.success:
            inconsistency = SettlementInconsistency(
                f"Settlement failed after successful purchase of {payment.requirement.resource}: "
                f"{settlement.error_reason or 'unknown error'}",
                payer=payment.payer,
            )
            logger.error(f"{inconsistency} - flagged for manual reconciliation")
            return CommitOutcome(
                status=CommitStatus.SETTLEMENT_FAILED,
                value=effect.value,
                settlement=settlement,
                split=SplitOutcome(attempted=False),
                warnings=[inconsistency],
            )

        logger.info(f"Payment settled for {payment.requirement.resource}: {settlement.transaction}")
        split = None
        if after_settlement is not None:
            split = await self._split(effect, after_settlement)
        return CommitOutcome(
            status=CommitStatus.SETTLED, value=effect.value, settlement=settlement, split=split
        )

    async def run(
        self,
        offer: PaymentOffer,
        payment_header: Optional[str],
        side_effect: Callable[[], Awaitable[T]],
        after_settlement: Optional[Callable[[T], Awaitable[str]]] = None,
    ) -> Union[PaymentRejection, CommitOutcome[T]]:
        """authorize + commit in one call"""
        authorization = await self.authorize(offer, payment_header)
        if isinstance(authorization, PaymentRejection):
            return authorization
        return await self.commit(authorization, side_effect, after_settlement)

    async def _perform(
        self, payment: VerifiedPayment, side_effect: Callable[[], Awaitable[T]]
    ) -> Union[EffectSucceeded[T], EffectFailed]:
        try:
            value = await side_effect()
        except Exception as e:
            error = SideEffectError(f"Side effect failed: {e}")
            error.__cause__ = e
            return EffectFailed(payment=payment, error=error)
        return EffectSucceeded(payment=payment, value=value)

    async def _settle(self, effect: EffectSucceeded[T]) -> SettlementResult:
        """Settle a payment; reachable only with a succeeded side effect"""
        if not isinstance(effect, EffectSucceeded):
            raise TypeError("Settlement requires a succeeded side effect")
        payment = effect.payment
        try:
            return await self.facilitator.settle(payment.envelope, payment.requirement)
        except Exception as e:
            logger.exception("Settlement call raised")
            return SettlementResult(
                success=False, network=payment.requirement.network, error_reason=str(e) or "Settlement error"
            )

    async def _split(
        self, effect: EffectSucceeded[T], after_settlement: Callable[[T], Awaitable[str]]
    ) -> SplitOutcome:
        try:
            reference = await after_settlement(effect.value)
        except Exception as e:
            logger.error(f"[Split Payment] Failed to transfer margin: {e}")
            return SplitOutcome(attempted=True, succeeded=False, error=str(e))
        return SplitOutcome(attempted=True, succeeded=True, reference=reference)
